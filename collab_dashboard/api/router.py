"""Main API router."""

from fastapi import APIRouter

from collab_dashboard.api.auth import router as auth_router
from collab_dashboard.api.collaborators import router as collaborators_router

api_router = APIRouter()

api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(collaborators_router, tags=["collaborators"])
