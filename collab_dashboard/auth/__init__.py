"""Authentication module."""

from collab_dashboard.auth.dependencies import (
    get_current_session,
    get_github_client,
    get_optional_session,
    get_session_store,
    verify_csrf,
)
from collab_dashboard.auth.models import SessionData
from collab_dashboard.auth.session_store import (
    MemorySessionStore,
    RedisSessionStore,
    SessionStore,
    build_session_store,
)

__all__ = [
    "MemorySessionStore",
    "RedisSessionStore",
    "SessionData",
    "SessionStore",
    "build_session_store",
    "get_current_session",
    "get_github_client",
    "get_optional_session",
    "get_session_store",
    "verify_csrf",
]
