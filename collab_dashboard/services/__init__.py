"""Business logic on top of the GitHub client."""

from collab_dashboard.services.collaborators import (
    DashboardData,
    RepoFilterOptions,
    RepoWithCollaborators,
    load_dashboard,
    remove_collaborators,
)

__all__ = [
    "DashboardData",
    "RepoFilterOptions",
    "RepoWithCollaborators",
    "load_dashboard",
    "remove_collaborators",
]
