"""Typed views of the GitHub REST payloads the dashboard reads."""

from pydantic import BaseModel, Field


class GitHubUser(BaseModel):
    """GitHub user data from ``GET /user``."""

    id: int
    login: str
    name: str | None = None
    avatar_url: str | None = None


class Owner(BaseModel):
    login: str


class RepositoryPermissions(BaseModel):
    """Permission flags GitHub attaches to repositories and collaborators."""

    admin: bool = False
    maintain: bool = False
    push: bool = False
    triage: bool = False
    pull: bool = False


class Repository(BaseModel):
    """Repository summary from ``GET /user/repos``."""

    id: int
    name: str
    full_name: str
    owner: Owner
    private: bool = False
    archived: bool = False
    fork: bool = False
    html_url: str | None = None
    permissions: RepositoryPermissions = Field(default_factory=RepositoryPermissions)


class Collaborator(BaseModel):
    """Repository collaborator from ``GET /repos/{owner}/{repo}/collaborators``."""

    id: int
    login: str
    avatar_url: str | None = None
    html_url: str | None = None
    permissions: RepositoryPermissions = Field(default_factory=RepositoryPermissions)
    role_name: str | None = None

    @property
    def permission_label(self) -> str:
        """Highest permission level held, as GitHub names it in the UI."""
        if self.permissions.admin:
            return "admin"
        if self.permissions.maintain:
            return "maintain"
        if self.permissions.push:
            return "write"
        if self.permissions.triage:
            return "triage"
        return "read"


class AccessToken(BaseModel):
    """Response of the OAuth code exchange.

    GitHub answers 200 even for failures and reports them in ``error``.
    """

    access_token: str | None = None
    token_type: str | None = None
    scope: str | None = None
    error: str | None = None
    error_description: str | None = None

    @property
    def scopes(self) -> set[str]:
        """Granted scopes; GitHub separates them with commas, some proxies with spaces."""
        if not self.scope:
            return set()
        return {s.strip() for s in self.scope.replace(" ", ",").split(",") if s.strip()}
