"""Collaborator audit: load the dashboard and remove collaborators in bulk."""

import asyncio
import logging
from dataclasses import dataclass, field

from collab_dashboard.auth.models import SessionData
from collab_dashboard.github.client import (
    GitHubAuthError,
    GitHubClient,
    GitHubError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
)
from collab_dashboard.github.models import Collaborator, Repository
from collab_dashboard.schemas import RemoveItem, RemoveOutcome
from collab_dashboard.utils.logging import LogContext
from collab_dashboard.utils.metrics import metrics

logger = logging.getLogger(__name__)


@dataclass
class RepoFilterOptions:
    """Dashboard filters taken from the query string."""

    ignore_forks: bool = False
    ignore_archived: bool = False

    def apply(self, repos: list[Repository]) -> list[Repository]:
        return [
            repo
            for repo in repos
            if not (self.ignore_forks and repo.fork) and not (self.ignore_archived and repo.archived)
        ]


@dataclass
class RepoWithCollaborators:
    """A repository with its collaborators, or the error that prevented loading them."""

    repo: Repository
    collaborators: list[Collaborator] = field(default_factory=list)
    can_remove: bool = False
    error: str | None = None


@dataclass
class DashboardData:
    """Everything the dashboard template renders."""

    repositories: list[RepoWithCollaborators] = field(default_factory=list)
    error: str | None = None

    @property
    def collaborator_count(self) -> int:
        return sum(len(entry.collaborators) for entry in self.repositories)

    @property
    def failed_count(self) -> int:
        return sum(1 for entry in self.repositories if entry.error)


async def load_dashboard(
    github: GitHubClient,
    session: SessionData,
    filters: RepoFilterOptions,
    max_concurrency: int,
) -> DashboardData:
    """Fetch owned repositories and their collaborators.

    Collaborator lists are fetched concurrently, at most ``max_concurrency``
    at a time. A failure for one repository is recorded on that entry only.

    Raises:
        GitHubAuthError: The access token was rejected; the caller should
            end the session.
    """
    log = LogContext(logger, user=session.user_login)

    try:
        repos = await github.list_owned_repositories(session.access_token)
    except GitHubAuthError:
        raise
    except GitHubError as e:
        log.error(f"Failed to list repositories: {e}")
        return DashboardData(error=f"Could not load repositories from GitHub: {e}")

    owner_login = session.user_login.lower()
    repos = [repo for repo in filters.apply(repos) if repo.owner.login.lower() == owner_login]
    semaphore = asyncio.Semaphore(max_concurrency)

    async def load_repo(repo: Repository) -> RepoWithCollaborators:
        entry = RepoWithCollaborators(repo=repo, can_remove=repo.permissions.admin)
        async with semaphore:
            try:
                collaborators = await github.list_collaborators(
                    session.access_token, repo.owner.login, repo.name
                )
            except GitHubAuthError:
                raise
            except GitHubError as e:
                log.warning(f"Failed to list collaborators for {repo.full_name}: {e}")
                entry.error = str(e)
                return entry

        entry.collaborators = sorted(
            (c for c in collaborators if c.login.lower() != repo.owner.login.lower()),
            key=lambda c: c.login.lower(),
        )
        return entry

    # A rejected token cancels the remaining fetches
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(load_repo(repo)) for repo in repos]
    except BaseExceptionGroup as eg:
        auth_errors = eg.subgroup(GitHubAuthError)
        if auth_errors is None:
            raise
        raise auth_errors.exceptions[0] from None

    data = DashboardData(repositories=[task.result() for task in tasks])
    log.info(
        f"Loaded {len(data.repositories)} repositories, {data.collaborator_count} collaborators "
        f"({data.failed_count} failed)"
    )
    return data


def split_repo(repo: str, default_owner: str) -> tuple[str, str]:
    """Split ``owner/name`` (or a bare ``name``) into its parts.

    Raises:
        ValueError: Not a valid repository reference
    """
    value = repo.strip()
    if "/" in value:
        owner, _, name = value.partition("/")
    else:
        owner, name = default_owner, value
    owner, name = owner.strip(), name.strip()
    if not owner or not name or "/" in name:
        raise ValueError(f"invalid repository name: {repo!r}")
    return owner, name


def _failure_reason(error: GitHubError) -> str:
    if isinstance(error, GitHubNotFoundError):
        return "not a collaborator or repository not found"
    if isinstance(error, GitHubRateLimitError):
        return "rate limited by GitHub, try again later"
    if isinstance(error, GitHubPermissionError):
        return "permission denied"
    if isinstance(error, GitHubAuthError):
        return "GitHub rejected the access token, sign in again"
    return str(error)


async def remove_collaborators(
    github: GitHubClient,
    session: SessionData,
    items: list[RemoveItem],
    max_concurrency: int,
) -> list[RemoveOutcome]:
    """Remove each requested collaborator, independently of the others.

    Returns one outcome per item, in request order. Nothing here raises for
    a single bad item; upstream failures become failed outcomes.
    """
    log = LogContext(logger, user=session.user_login)
    semaphore = asyncio.Semaphore(max_concurrency)

    async def remove_one(item: RemoveItem) -> RemoveOutcome:
        username = item.username.strip()
        try:
            owner, name = split_repo(item.repo, session.user_login)
        except ValueError as e:
            return RemoveOutcome(repo=item.repo, username=username, success=False, error=str(e))

        full_name = f"{owner}/{name}"

        def failed(reason: str) -> RemoveOutcome:
            return RemoveOutcome(repo=full_name, username=username, success=False, error=reason)

        if owner.lower() != session.user_login.lower():
            return failed(f"repository is not owned by {session.user_login}")
        if not username:
            return failed("username must not be empty")
        if username.lower() == owner.lower():
            return failed("cannot remove the repository owner")

        async with semaphore:
            try:
                await github.remove_collaborator(session.access_token, owner, name, username)
            except GitHubError as e:
                log.warning(f"Failed to remove {username} from {full_name}: {e}")
                return failed(_failure_reason(e))

        log.info(f"Removed {username} from {full_name}")
        return RemoveOutcome(repo=full_name, username=username, success=True)

    outcomes = await asyncio.gather(*(remove_one(item) for item in items))

    for outcome in outcomes:
        metrics.collaborator_removals_total.inc(outcome="removed" if outcome.success else "failed")
    removed = sum(1 for outcome in outcomes if outcome.success)
    log.info(f"Bulk removal finished: {removed}/{len(outcomes)} removed")
    return list(outcomes)
