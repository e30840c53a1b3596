"""HTTP endpoints."""

from collab_dashboard.api.router import api_router

__all__ = ["api_router"]
