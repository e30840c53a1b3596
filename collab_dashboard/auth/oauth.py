"""GitHub OAuth helpers: state generation and scope checks."""

import secrets

from collab_dashboard.constants import OAUTH_SCOPES, TOKEN_BYTES

# A broader org scope also grants read:org
_IMPLIED_BY = {
    "read:org": {"write:org", "admin:org"},
}


def new_token() -> str:
    """Random URL-safe token for OAuth state, session ids and CSRF tokens."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def states_match(expected: str | None, received: str | None) -> bool:
    """Constant-time comparison that fails closed on missing values."""
    if not expected or not received:
        return False
    return secrets.compare_digest(expected, received)


def missing_scopes(granted: set[str], required: tuple[str, ...] = OAUTH_SCOPES) -> list[str]:
    """Required scopes the token was not granted, in declaration order."""
    missing = []
    for scope in required:
        if scope in granted or granted & _IMPLIED_BY.get(scope, set()):
            continue
        missing.append(scope)
    return missing
