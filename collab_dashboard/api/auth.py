"""Authentication endpoints: GitHub OAuth login, callback and logout."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from collab_dashboard.auth import (
    get_github_client,
    get_optional_session,
    get_session_store,
    verify_csrf,
)
from collab_dashboard.auth.models import SessionData
from collab_dashboard.auth.oauth import missing_scopes, new_token, states_match
from collab_dashboard.auth.session_store import SessionStore
from collab_dashboard.config import get_settings
from collab_dashboard.constants import OAUTH_SCOPES, OAUTH_STATE_KEY, SESSION_ID_KEY
from collab_dashboard.github.client import GitHubAuthError, GitHubClient, GitHubError
from collab_dashboard.utils.metrics import metrics
from collab_dashboard.web.context import render_error

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


def _login_failed(request: Request, message: str, status_code: int, outcome: str) -> HTMLResponse:
    metrics.oauth_logins_total.inc(outcome=outcome)
    return render_error(request, "Sign-in failed", message, status_code=status_code)


@router.get("/auth/login")
async def auth_login(
    request: Request,
    session: Annotated[SessionData | None, Depends(get_optional_session)],
    github: Annotated[GitHubClient, Depends(get_github_client)],
) -> RedirectResponse:
    """Initiate GitHub OAuth login."""
    if session:
        return RedirectResponse(url="/dashboard", status_code=302)

    state = new_token()
    request.session[OAUTH_STATE_KEY] = state

    url = github.authorize_url(
        client_id=settings.github_client_id,
        redirect_uri=settings.callback_url,
        scopes=OAUTH_SCOPES,
        state=state,
    )
    logger.info("Starting GitHub OAuth flow")
    return RedirectResponse(url=url, status_code=302)


@router.get("/auth/callback", response_model=None)
async def auth_callback(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
    github: Annotated[GitHubClient, Depends(get_github_client)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> RedirectResponse | HTMLResponse:
    """Handle GitHub OAuth callback."""
    # The state is single-use whatever happens next
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)

    if error:
        logger.warning(f"GitHub returned OAuth error: {error}")
        return _login_failed(request, error_description or error, 400, "denied")

    if not code or not state:
        return _login_failed(request, "The callback is missing the code or state parameter.", 400, "invalid")

    if not states_match(expected_state, state):
        logger.warning("OAuth state mismatch")
        return _login_failed(
            request, "The sign-in request expired or was tampered with. Please try again.", 400, "invalid"
        )

    try:
        token = await github.exchange_code(
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            code=code,
            redirect_uri=settings.callback_url,
            state=state,
        )
    except GitHubAuthError as e:
        logger.warning(f"OAuth token exchange rejected: {e}")
        return _login_failed(request, f"GitHub rejected the sign-in: {e}", 400, "rejected")
    except GitHubError as e:
        logger.error(f"OAuth token exchange failed: {e}")
        return _login_failed(request, "Could not reach GitHub to complete sign-in.", 502, "error")

    missing = missing_scopes(token.scopes)
    if missing:
        logger.warning(f"OAuth token missing scopes: {', '.join(missing)}")
        return _login_failed(
            request,
            f"OAuth scopes are insufficient. Required scopes: {', '.join(OAUTH_SCOPES)}",
            400,
            "insufficient_scope",
        )

    access_token = token.access_token or ""
    try:
        user = await github.get_authenticated_user(access_token)
    except GitHubError as e:
        logger.error(f"Failed to fetch authenticated user: {e}")
        return _login_failed(request, "Could not load your GitHub profile.", 502, "error")

    # Replace any previous session instead of reusing its identifier
    previous = request.session.get(SESSION_ID_KEY)
    if previous:
        await store.delete(previous)

    session = await store.create(access_token=access_token, user=user, scopes=sorted(token.scopes))
    request.session.clear()
    request.session[SESSION_ID_KEY] = session.session_id

    metrics.oauth_logins_total.inc(outcome="success")
    logger.info(f"GitHub OAuth completed for {user.login}")
    return RedirectResponse(url="/dashboard", status_code=302)


@router.post("/logout")
async def logout(
    request: Request,
    session: Annotated[SessionData, Depends(verify_csrf)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> RedirectResponse:
    """Log out the current user."""
    await store.delete(session.session_id)
    request.session.clear()
    logger.info(f"{session.user_login} logged out")
    return RedirectResponse(url="/", status_code=303)
