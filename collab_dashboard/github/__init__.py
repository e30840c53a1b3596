"""GitHub API integration."""

from collab_dashboard.github.client import (
    GitHubAuthError,
    GitHubClient,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
)
from collab_dashboard.github.models import (
    AccessToken,
    Collaborator,
    GitHubUser,
    Repository,
    RepositoryPermissions,
)

__all__ = [
    "AccessToken",
    "Collaborator",
    "GitHubAuthError",
    "GitHubClient",
    "GitHubConnectionError",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubPermissionError",
    "GitHubRateLimitError",
    "GitHubUser",
    "Repository",
    "RepositoryPermissions",
]
