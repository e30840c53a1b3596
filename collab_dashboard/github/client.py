"""GitHub REST API client.

Handles the OAuth code exchange and the handful of endpoints the dashboard
needs: the authenticated user, owned repositories, repository collaborators
and collaborator removal.
Documentation: https://docs.github.com/en/rest
"""

import logging
import time
from collections.abc import Mapping
from typing import Any, TypeVar
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ValidationError

from collab_dashboard.constants import (
    GITHUB_API_URL,
    GITHUB_API_VERSION,
    GITHUB_OAUTH_URL,
    GITHUB_PAGE_SIZE,
    GITHUB_USER_AGENT,
    HTTPX_TIMEOUT,
    MAX_PAGES,
)
from collab_dashboard.github.models import AccessToken, Collaborator, GitHubUser, Repository
from collab_dashboard.utils.metrics import metrics
from collab_dashboard.utils.pagination import parse_next_link
from collab_dashboard.utils.retry import DEFAULT_RETRY_CONFIG, NO_RETRY, RetryConfig, retry_async

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)

# Connection pool limits
_POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)


class GitHubError(Exception):
    """Base exception for GitHub errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubAuthError(GitHubError):
    """Token missing, expired or revoked (401)."""


class GitHubPermissionError(GitHubError):
    """Token valid but not allowed to perform the operation (403)."""


class GitHubRateLimitError(GitHubPermissionError):
    """Primary or secondary rate limit hit."""


class GitHubNotFoundError(GitHubError):
    """Resource missing or hidden from this token (404)."""


class GitHubConnectionError(GitHubError):
    """Network failure or timeout talking to GitHub."""


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


def raise_for_status(response: httpx.Response) -> None:
    """Map an unsuccessful GitHub response onto the GitHubError hierarchy."""
    status = response.status_code
    if status < 400:
        return

    message = _error_message(response)
    if status == 401:
        raise GitHubAuthError(message, status)
    if status in (403, 429):
        if status == 429 or response.headers.get("x-ratelimit-remaining") == "0":
            raise GitHubRateLimitError(message, status)
        raise GitHubPermissionError(message, status)
    if status == 404:
        raise GitHubNotFoundError(message, status)
    raise GitHubError(f"GitHub API error {status}: {message}", status)


def _json_body(response: httpx.Response, path: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise GitHubError(f"Unexpected payload for {path}: not JSON", response.status_code) from e


def _parse(model: type[_ModelT], item: Any, path: str) -> _ModelT:
    """Validate one record, reporting schema drift as a GitHubError."""
    try:
        return model.model_validate(item)
    except ValidationError as e:
        raise GitHubError(
            f"Unexpected payload for {path}: {e.error_count()} invalid field(s) in {model.__name__}"
        ) from e


class GitHubClient:
    """Async client for the GitHub REST API.

    One instance is shared by the whole application; the underlying
    httpx.AsyncClient is created on first use and pooled across requests.
    Every call takes the user's access token explicitly, the client itself
    holds no per-user state.

    Usage:
        client = GitHubClient()
        user = await client.get_authenticated_user(token)
        repos = await client.list_owned_repositories(token)
        await client.remove_collaborator(token, "octocat", "hello-world", "hubot")
        await client.aclose()
    """

    def __init__(
        self,
        api_url: str = GITHUB_API_URL,
        oauth_url: str = GITHUB_OAUTH_URL,
        timeout: float = HTTPX_TIMEOUT,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            api_url: REST API root (GitHub Enterprise uses ``https://host/api/v3``)
            oauth_url: Host serving ``/login/oauth/*``
            timeout: Per-request timeout in seconds
            retry_config: Retry policy for idempotent reads
            transport: Optional httpx transport, used by tests to fake GitHub
        """
        self.api_url = api_url.rstrip("/")
        self.oauth_url = oauth_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Persistent httpx client, created lazily."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=_POOL_LIMITS,
                headers={"User-Agent": GITHUB_USER_AGENT},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the pooled connection. Call during app shutdown."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _api_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        retry: RetryConfig | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, recording metrics and mapping transport errors."""
        start = time.monotonic()
        try:
            response = await retry_async(
                self.http.request,
                method,
                url,
                config=retry or self.retry_config,
                operation_name=f"github.{operation}",
                **kwargs,
            )
        except httpx.TimeoutException as e:
            metrics.github_api_requests_total.inc(operation=operation, status="timeout")
            raise GitHubConnectionError(f"GitHub request timed out: {e}") from e
        except httpx.HTTPError as e:
            metrics.github_api_requests_total.inc(operation=operation, status="error")
            raise GitHubConnectionError(f"Cannot reach GitHub: {e}") from e
        finally:
            metrics.github_api_duration_seconds.observe(time.monotonic() - start, operation=operation)

        metrics.github_api_requests_total.inc(operation=operation, status=str(response.status_code))
        return response

    async def _get_paginated(
        self,
        token: str,
        path: str,
        params: Mapping[str, str | int],
        operation: str,
    ) -> list[dict[str, Any]]:
        """Fetch every page of a list endpoint by following ``rel="next"`` links."""
        url: str | None = f"{self.api_url}{path}?{urlencode(params)}"
        items: list[dict[str, Any]] = []
        pages = 0

        while url and pages < MAX_PAGES:
            response = await self._request("GET", url, operation, headers=self._api_headers(token))
            raise_for_status(response)
            page = _json_body(response, path)
            if not isinstance(page, list):
                raise GitHubError(f"Unexpected payload for {path}: expected a list")
            items.extend(page)
            url = parse_next_link(response.headers.get("link"))
            pages += 1

        if url:
            logger.warning(f"Stopped following {path} pagination after {MAX_PAGES} pages")
        return items

    # ==================== OAuth ====================

    def authorize_url(self, client_id: str, redirect_uri: str, scopes: tuple[str, ...], state: str) -> str:
        """Build the URL the browser is sent to for consent."""
        params = {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes),
            "state": state,
        }
        return f"{self.oauth_url}/login/oauth/authorize?{urlencode(params)}"

    async def exchange_code(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
        state: str,
    ) -> AccessToken:
        """Exchange an authorization code for an access token.

        Raises:
            GitHubAuthError: GitHub rejected the exchange
            GitHubError: Unexpected response
        """
        response = await self._request(
            "POST",
            f"{self.oauth_url}/login/oauth/access_token",
            "exchange_code",
            retry=NO_RETRY,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
                "state": state,
            },
            headers={"Accept": "application/json"},
        )

        if response.status_code != 200:
            raise GitHubAuthError(
                f"Token exchange failed with status {response.status_code}", response.status_code
            )

        try:
            token = AccessToken.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GitHubError(f"Malformed token response: {e}") from e

        if token.error:
            raise GitHubAuthError(token.error_description or token.error)
        if not token.access_token:
            raise GitHubAuthError("No access token received")
        if (token.token_type or "").lower() != "bearer":
            raise GitHubAuthError(f"Unsupported token type: {token.token_type}")
        return token

    # ==================== Users ====================

    async def get_authenticated_user(self, token: str) -> GitHubUser:
        """Get the user the token belongs to."""
        response = await self._request(
            "GET", f"{self.api_url}/user", "get_user", headers=self._api_headers(token)
        )
        raise_for_status(response)
        return _parse(GitHubUser, _json_body(response, "/user"), "/user")

    # ==================== Repositories ====================

    async def list_owned_repositories(self, token: str) -> list[Repository]:
        """List every repository owned by the authenticated user."""
        payload = await self._get_paginated(
            token,
            "/user/repos",
            {"affiliation": "owner", "sort": "full_name", "per_page": GITHUB_PAGE_SIZE},
            "list_repos",
        )
        return [_parse(Repository, item, "/user/repos") for item in payload]

    async def list_collaborators(self, token: str, owner: str, repo: str) -> list[Collaborator]:
        """List the direct collaborators of a repository (includes the owner)."""
        path = f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/collaborators"
        payload = await self._get_paginated(
            token,
            path,
            {"affiliation": "direct", "per_page": GITHUB_PAGE_SIZE},
            "list_collaborators",
        )
        return [_parse(Collaborator, item, path) for item in payload]

    async def remove_collaborator(self, token: str, owner: str, repo: str, username: str) -> None:
        """Remove a collaborator from a repository.

        Not retried: a DELETE that timed out may already have been applied.

        Raises:
            GitHubNotFoundError: Repository missing or user not a collaborator
            GitHubPermissionError: Token lacks admin rights on the repository
            GitHubError: Any other upstream failure
        """
        url = (
            f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"
            f"/collaborators/{quote(username, safe='')}"
        )
        response = await self._request(
            "DELETE", url, "remove_collaborator", retry=NO_RETRY, headers=self._api_headers(token)
        )
        raise_for_status(response)
