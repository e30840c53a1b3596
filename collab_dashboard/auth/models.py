"""Authentication-related Pydantic models."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class SessionData(BaseModel):
    """Server-side record behind the session cookie.

    Only ``session_id`` is ever sent to the browser; the access token stays
    in the session store.
    """

    session_id: str
    access_token: str
    user_id: int
    user_login: str
    avatar_url: str | None = None
    csrf_token: str
    scopes: list[str] = Field(default_factory=list)
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return datetime.now(UTC) >= self.expires_at
