"""Main FastAPI application."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.sessions import SessionMiddleware

from collab_dashboard import __version__
from collab_dashboard.api import api_router
from collab_dashboard.auth.session_store import SessionStore, build_session_store
from collab_dashboard.config import get_settings
from collab_dashboard.constants import SESSION_COOKIE_NAME, SESSION_PURGE_INTERVAL
from collab_dashboard.github.client import GitHubClient
from collab_dashboard.utils.logging import get_logger, setup_logging
from collab_dashboard.utils.metrics import MetricsMiddleware, metrics
from collab_dashboard.web import web_router

settings = get_settings()
setup_logging()
logger = get_logger(__name__)

# Paths answered with JSON rather than a login redirect when unauthenticated
JSON_PATHS = ("/remove",)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' https://avatars.githubusercontent.com data:; "
            "connect-src 'self'; "
            "form-action 'self' https://github.com; "
            "frame-ancestors 'none';"
        )
        if settings.secure_cookies:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


async def periodic_session_purge(store: SessionStore, shutdown_event: asyncio.Event) -> None:
    """Background task that drops expired sessions from the store."""
    while not shutdown_event.is_set():
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=SESSION_PURGE_INTERVAL)
            break  # Shutdown requested
        except TimeoutError:
            pass

        try:
            purged = await store.purge_expired()
            if purged:
                logger.info(f"Purged {purged} expired sessions")
        except Exception as e:
            logger.error(f"Session purge failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    store: SessionStore = app.state.session_store
    github: GitHubClient = app.state.github

    if await store.ping():
        logger.info(f"Session store ready ({type(store).__name__})")

    shutdown_event = asyncio.Event()
    purge_task = asyncio.create_task(
        periodic_session_purge(store, shutdown_event),
        name="session_purge",
    )
    logger.info(f"Serving {settings.app_name}, OAuth callback {settings.callback_url}")

    yield

    logger.info("Shutting down...")
    shutdown_event.set()
    try:
        await asyncio.wait_for(purge_task, timeout=5.0)
    except TimeoutError:
        purge_task.cancel()

    await github.aclose()
    logger.info("GitHub client closed")

    await store.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    lifespan=lifespan,
)

# Shared resources handed to routes through dependencies
app.state.github = GitHubClient(
    api_url=settings.github_api_url,
    oauth_url=settings.github_oauth_url,
)
app.state.session_store = build_session_store(settings)

# Middleware (order matters - first added = last executed)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(MetricsMiddleware)  # Collect HTTP metrics
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=SESSION_COOKIE_NAME,
    max_age=settings.session_ttl_seconds,
    same_site="lax",
    https_only=settings.secure_cookies,
)

# Routers
app.include_router(api_router)
app.include_router(web_router)


@app.exception_handler(401)
async def unauthorized_handler(request: Request, exc: HTTPException) -> Response:
    """Redirect pages to login on 401; JSON endpoints get a 401 body."""
    request.session.clear()
    if request.url.path.startswith(JSON_PATHS):
        return JSONResponse(status_code=401, content={"detail": "authentication required"})
    return RedirectResponse(url="/auth/login", status_code=302)


# Store app start time for uptime tracking
_app_start_time = datetime.now(UTC)


@app.get("/health", include_in_schema=True, tags=["monitoring"])
async def health_check() -> JSONResponse:
    """Health check endpoint for monitoring and load balancers."""
    health_status = {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": (datetime.now(UTC) - _app_start_time).total_seconds(),
        "version": __version__,
        "checks": {},
    }

    try:
        await app.state.session_store.ping()
        health_status["checks"]["session_store"] = {"status": "healthy"}
    except Exception:
        health_status["checks"]["session_store"] = {"status": "unhealthy"}
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/metrics", include_in_schema=True, tags=["monitoring"])
async def prometheus_metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=metrics.format_prometheus(),
        media_type="text/plain; charset=utf-8",
    )
