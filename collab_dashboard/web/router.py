"""Web routes for Jinja2 templates."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from collab_dashboard.auth import (
    get_current_session,
    get_github_client,
    get_optional_session,
    get_session_store,
)
from collab_dashboard.auth.models import SessionData
from collab_dashboard.auth.session_store import SessionStore
from collab_dashboard.config import get_settings
from collab_dashboard.github.client import GitHubAuthError, GitHubClient
from collab_dashboard.services.collaborators import RepoFilterOptions, load_dashboard
from collab_dashboard.web.context import get_base_context, templates

logger = logging.getLogger(__name__)

web_router = APIRouter()
settings = get_settings()


@web_router.get("/", response_class=HTMLResponse, response_model=None)
async def index(
    request: Request,
    session: Annotated[SessionData | None, Depends(get_optional_session)],
) -> HTMLResponse | RedirectResponse:
    """Render landing page."""
    if session:
        return RedirectResponse(url="/dashboard", status_code=302)

    context = get_base_context(request)
    return templates.TemplateResponse(request, "index.html", context)


@web_router.get("/dashboard", response_class=HTMLResponse, response_model=None)
async def dashboard(
    request: Request,
    session: Annotated[SessionData, Depends(get_current_session)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    github: Annotated[GitHubClient, Depends(get_github_client)],
    ignore_forks: Annotated[bool, Query()] = False,
    ignore_archived: Annotated[bool, Query()] = False,
) -> HTMLResponse | RedirectResponse:
    """Render owned repositories and their collaborators."""
    t0 = time.perf_counter()
    filters = RepoFilterOptions(ignore_forks=ignore_forks, ignore_archived=ignore_archived)

    try:
        data = await load_dashboard(github, session, filters, settings.max_concurrency)
    except GitHubAuthError:
        # Token revoked on GitHub's side: the session is useless now
        logger.info(f"Access token for {session.user_login} rejected, ending session")
        await store.delete(session.session_id)
        request.session.clear()
        return RedirectResponse(url="/auth/login", status_code=302)

    logger.debug(f"dashboard load took {time.perf_counter() - t0:.3f}s")

    context = get_base_context(request, session)
    context["data"] = data
    context["filters"] = filters
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        context,
        status_code=502 if data.error else 200,
    )
