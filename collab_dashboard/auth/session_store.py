"""Server-side session storage.

Two backends share one interface: an in-process dict guarded by an
asyncio.Lock (single worker) and redis (several workers or restarts).
The store lives on ``app.state`` and reaches handlers through
``collab_dashboard.auth.dependencies.get_session_store``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

import redis.asyncio as redis
from pydantic import ValidationError

from collab_dashboard.auth.models import SessionData
from collab_dashboard.auth.oauth import new_token
from collab_dashboard.config import Settings
from collab_dashboard.constants import REDIS_SESSION_PREFIX
from collab_dashboard.github.models import GitHubUser

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Keyed store of SessionData with a fixed time to live."""

    def __init__(self, ttl_seconds: int) -> None:
        self.ttl_seconds = ttl_seconds

    async def create(self, access_token: str, user: GitHubUser, scopes: list[str]) -> SessionData:
        """Create and persist a session for a freshly authenticated user."""
        now = datetime.now(UTC)
        session = SessionData(
            session_id=new_token(),
            access_token=access_token,
            user_id=user.id,
            user_login=user.login,
            avatar_url=user.avatar_url,
            csrf_token=new_token(),
            scopes=scopes,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        await self.save(session)
        logger.info(f"Created session for {user.login}")
        return session

    @abstractmethod
    async def save(self, session: SessionData) -> None:
        """Insert or replace a session."""

    @abstractmethod
    async def get(self, session_id: str) -> SessionData | None:
        """Return a live session, or None when unknown or expired."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove a session. Returns True if it existed."""

    async def purge_expired(self) -> int:
        """Drop expired sessions. Backends with native expiry have nothing to do."""
        return 0

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class MemorySessionStore(SessionStore):
    """In-process session store for a single worker."""

    def __init__(self, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self._sessions: dict[str, SessionData] = {}
        self._lock = asyncio.Lock()

    async def save(self, session: SessionData) -> None:
        async with self._lock:
            self._sessions[session.session_id] = session

    async def get(self, session_id: str) -> SessionData | None:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.is_expired:
                del self._sessions[session_id]
                return None
            return session

    async def delete(self, session_id: str) -> bool:
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def purge_expired(self) -> int:
        async with self._lock:
            expired = [sid for sid, session in self._sessions.items() if session.is_expired]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Redis-backed session store; expiry is delegated to SETEX."""

    def __init__(self, url: str, ttl_seconds: int, client: redis.Redis | None = None) -> None:
        super().__init__(ttl_seconds)
        self._client = client or redis.from_url(url, encoding="utf-8", decode_responses=True)

    def _key(self, session_id: str) -> str:
        return f"{REDIS_SESSION_PREFIX}{session_id}"

    async def save(self, session: SessionData) -> None:
        remaining = int((session.expires_at - datetime.now(UTC)).total_seconds())
        if remaining <= 0:
            return
        await self._client.setex(self._key(session.session_id), remaining, session.model_dump_json())

    async def get(self, session_id: str) -> SessionData | None:
        raw = await self._client.get(self._key(session_id))
        if not raw:
            return None
        try:
            session = SessionData.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session record")
            await self._client.delete(self._key(session_id))
            return None
        return None if session.is_expired else session

    async def delete(self, session_id: str) -> bool:
        return bool(await self._client.delete(self._key(session_id)))

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


def build_session_store(settings: Settings) -> SessionStore:
    """Pick the backend from configuration."""
    if settings.redis_url:
        logger.info("Using redis session store")
        return RedisSessionStore(str(settings.redis_url), settings.session_ttl_seconds)
    return MemorySessionStore(settings.session_ttl_seconds)
