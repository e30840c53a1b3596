"""Collaborator management endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from collab_dashboard.auth import get_github_client, verify_csrf
from collab_dashboard.auth.models import SessionData
from collab_dashboard.config import get_settings
from collab_dashboard.github.client import GitHubClient
from collab_dashboard.schemas import RemoveOutcome, RemoveRequest
from collab_dashboard.services.collaborators import remove_collaborators

router = APIRouter()
settings = get_settings()


@router.post("/remove", response_model=list[RemoveOutcome])
async def remove(
    payload: RemoveRequest,
    session: Annotated[SessionData, Depends(verify_csrf)],
    github: Annotated[GitHubClient, Depends(get_github_client)],
) -> list[RemoveOutcome]:
    """Remove collaborators in bulk.

    Returns one outcome per requested item, in request order. Individual
    failures (already removed, permission denied, ...) never fail the batch.
    """
    return await remove_collaborators(github, session, payload.items, settings.max_concurrency)
