"""Pydantic schemas for API validation and serialization."""

from pydantic import BaseModel, Field

from collab_dashboard.constants import MAX_REMOVE_BATCH


class RemoveItem(BaseModel):
    """One (repository, collaborator) pair to remove.

    ``repo`` is ``owner/name``; a bare ``name`` means a repository owned by
    the signed-in user.
    """

    repo: str = Field(min_length=1, max_length=256)
    username: str = Field(min_length=1, max_length=100)


class RemoveRequest(BaseModel):
    """Body of ``POST /remove``."""

    items: list[RemoveItem] = Field(max_length=MAX_REMOVE_BATCH)


class RemoveOutcome(BaseModel):
    """Result for one requested pair, in request order."""

    repo: str
    username: str
    success: bool
    error: str | None = None
