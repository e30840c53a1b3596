"""Authentication dependencies for FastAPI."""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from collab_dashboard.auth.models import SessionData
from collab_dashboard.auth.session_store import SessionStore
from collab_dashboard.constants import CSRF_FORM_FIELD, CSRF_HEADER_NAME, SESSION_ID_KEY
from collab_dashboard.github.client import GitHubClient


def get_session_store(request: Request) -> SessionStore:
    """Session store attached to the application."""
    return request.app.state.session_store


def get_github_client(request: Request) -> GitHubClient:
    """Shared GitHub API client attached to the application."""
    return request.app.state.github


async def get_optional_session(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionData | None:
    """Get the current session from the cookie if logged in."""
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        return None

    session = await store.get(session_id)

    # Cookie points at a session the store no longer knows: clear it
    if session is None:
        request.session.pop(SESSION_ID_KEY, None)

    return session


async def get_current_session(
    session: Annotated[SessionData | None, Depends(get_optional_session)],
) -> SessionData:
    """Get the current session, raising 401 if not authenticated."""
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authentication required",
        )
    return session


async def verify_csrf(
    request: Request,
    session: Annotated[SessionData, Depends(get_current_session)],
) -> SessionData:
    """Require the session's CSRF token on state-changing requests.

    Accepted from the X-CSRF-Token header, or from a ``csrf_token`` field
    when the request is a form post.
    """
    token = request.headers.get(CSRF_HEADER_NAME)
    if token is None and request.headers.get("content-type", "").startswith(
        ("application/x-www-form-urlencoded", "multipart/form-data")
    ):
        form = await request.form()
        value = form.get(CSRF_FORM_FIELD)
        token = value if isinstance(value, str) else None

    if not token or not secrets.compare_digest(token.strip(), session.csrf_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="invalid csrf token",
        )
    return session
