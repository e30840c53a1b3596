"""Template setup and context helpers."""

from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from collab_dashboard.auth.models import SessionData
from collab_dashboard.config import get_settings

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def permission_badge(label: str) -> str:
    """CSS modifier for a permission label."""
    return {
        "admin": "badge-admin",
        "maintain": "badge-maintain",
        "write": "badge-write",
        "triage": "badge-triage",
    }.get(label, "badge-read")


templates.env.filters["permission_badge"] = permission_badge


def get_base_context(request: Request, session: SessionData | None = None) -> dict[str, Any]:
    """Get base context for all templates."""
    return {
        "request": request,
        "app_name": get_settings().app_name,
        "session": session,
        "user_login": session.user_login if session else None,
        "avatar_url": session.avatar_url if session else None,
        "csrf_token": session.csrf_token if session else None,
    }


def render_error(
    request: Request,
    title: str,
    message: str,
    status_code: int = 400,
    session: SessionData | None = None,
) -> HTMLResponse:
    """Render the generic error page."""
    context = get_base_context(request, session)
    context["title"] = title
    context["message"] = message
    return templates.TemplateResponse(request, "error.html", context, status_code=status_code)
