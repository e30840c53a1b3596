"""Server-rendered pages."""

from collab_dashboard.web.router import web_router

__all__ = ["web_router"]
