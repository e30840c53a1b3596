"""Pytest configuration and fixtures."""

import os
import re
from collections.abc import AsyncGenerator
from urllib.parse import parse_qs

# Required configuration must exist before the application is imported
os.environ.update(
    {
        "GITHUB_CLIENT_ID": "test-client-id",
        "GITHUB_CLIENT_SECRET": "test-client-secret",
        "SESSION_SECRET": "test-session-secret-with-enough-entropy",
        "BASE_URL": "http://test",
        "APP_ENV": "test",
    }
)
os.environ.pop("REDIS_URL", None)

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from collab_dashboard.auth.dependencies import get_github_client, get_session_store
from collab_dashboard.auth.session_store import MemorySessionStore
from collab_dashboard.github.client import GitHubClient
from collab_dashboard.main import app
from collab_dashboard.utils.retry import RetryConfig

FAKE_API_URL = "https://api.github.test"
FAKE_OAUTH_URL = "https://github.test"
OWNER = "octocat"

_PERMISSION_FLAGS = {
    "admin": {"admin": True, "maintain": True, "push": True, "triage": True, "pull": True},
    "maintain": {"admin": False, "maintain": True, "push": True, "triage": True, "pull": True},
    "write": {"admin": False, "maintain": False, "push": True, "triage": True, "pull": True},
    "triage": {"admin": False, "maintain": False, "push": False, "triage": True, "pull": True},
    "read": {"admin": False, "maintain": False, "push": False, "triage": False, "pull": True},
}


class FakeGitHub:
    """In-memory stand-in for the GitHub OAuth and REST endpoints."""

    def __init__(self) -> None:
        self.user = {
            "id": 583231,
            "login": OWNER,
            "name": "The Octocat",
            "avatar_url": "https://avatars.githubusercontent.com/u/583231",
        }
        self.token = "gho_faketoken"
        self.valid_codes = {"good-code"}
        self.scope = "read:org,repo"
        self.token_type = "bearer"
        self.page_size = 100
        self.repos: dict[str, dict] = {}
        self.collaborators: dict[str, list[dict]] = {}
        self.failing_repos: set[str] = set()
        self.forbidden_repos: set[str] = set()
        self.repos_status: int | None = None
        self.repos_body: str | None = None
        self.unauthorized_repos: set[str] = set()
        self.revoked = False
        self.requests: list[httpx.Request] = []
        self._next_id = 1

    def add_repo(
        self,
        name: str,
        collaborators: dict[str, str] | None = None,
        owner: str = OWNER,
        fork: bool = False,
        archived: bool = False,
        private: bool = False,
    ) -> str:
        full_name = f"{owner}/{name}"
        self._next_id += 1
        self.repos[full_name] = {
            "id": self._next_id,
            "name": name,
            "full_name": full_name,
            "owner": {"login": owner},
            "private": private,
            "archived": archived,
            "fork": fork,
            "html_url": f"https://github.test/{full_name}",
            "permissions": _PERMISSION_FLAGS["admin"],
        }
        self.collaborators[full_name] = [self.collaborator(owner, "admin")] + [
            self.collaborator(login, permission) for login, permission in (collaborators or {}).items()
        ]
        return full_name

    def collaborator(self, login: str, permission: str = "write") -> dict:
        self._next_id += 1
        return {
            "id": self._next_id,
            "login": login,
            "html_url": f"https://github.test/{login}",
            "permissions": _PERMISSION_FLAGS[permission],
            "role_name": permission,
        }

    def collaborator_logins(self, full_name: str) -> list[str]:
        return [c["login"] for c in self.collaborators[full_name]]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "github.test" and path == "/login/oauth/access_token":
            return self._exchange(request)

        if self.revoked or request.headers.get("authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"message": "Bad credentials"})

        if path == "/user":
            return httpx.Response(200, json=self.user)

        if path == "/user/repos":
            if self.repos_status:
                return httpx.Response(self.repos_status, json={"message": "Server Error"})
            if self.repos_body is not None:
                return httpx.Response(200, text=self.repos_body)
            return self._paginate(request, list(self.repos.values()))

        parts = path.strip("/").split("/")
        if len(parts) >= 4 and parts[0] == "repos" and parts[3] == "collaborators":
            full_name = f"{parts[1]}/{parts[2]}"
            if full_name not in self.repos:
                return httpx.Response(404, json={"message": "Not Found"})

            if len(parts) == 4 and request.method == "GET":
                if full_name in self.unauthorized_repos:
                    return httpx.Response(401, json={"message": "Bad credentials"})
                if full_name in self.failing_repos:
                    return httpx.Response(500, json={"message": "Server Error"})
                return self._paginate(request, self.collaborators[full_name])

            if len(parts) == 5 and request.method == "DELETE":
                if full_name in self.forbidden_repos:
                    return httpx.Response(403, json={"message": "Must have admin rights to Repository."})
                remaining = [c for c in self.collaborators[full_name] if c["login"] != parts[4]]
                if len(remaining) == len(self.collaborators[full_name]):
                    return httpx.Response(404, json={"message": "Not Found"})
                self.collaborators[full_name] = remaining
                return httpx.Response(204)

        return httpx.Response(404, json={"message": "Not Found"})

    def _exchange(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        code = form.get("code", [""])[0]
        if code not in self.valid_codes:
            return httpx.Response(
                200,
                json={
                    "error": "bad_verification_code",
                    "error_description": "The code passed is incorrect or expired.",
                },
            )
        return httpx.Response(
            200,
            json={"access_token": self.token, "token_type": self.token_type, "scope": self.scope},
        )

    def _paginate(self, request: httpx.Request, items: list[dict]) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        start = (page - 1) * self.page_size
        headers = {}
        if start + self.page_size < len(items):
            next_url = request.url.copy_set_param("page", str(page + 1))
            headers["Link"] = f'<{next_url}>; rel="next"'
        return httpx.Response(200, json=items[start : start + self.page_size], headers=headers)


@pytest.fixture
def fake_github() -> FakeGitHub:
    """GitHub with two owned repositories and a few collaborators."""
    fake = FakeGitHub()
    fake.add_repo("hello-world", {"hubot": "write", "monalisa": "admin"})
    fake.add_repo("spoon-knife", {"hubot": "read"})
    return fake


@pytest_asyncio.fixture
async def github_client(fake_github: FakeGitHub) -> AsyncGenerator[GitHubClient, None]:
    """GitHub client wired to the fake, without retry delays."""
    client = GitHubClient(
        api_url=FAKE_API_URL,
        oauth_url=FAKE_OAUTH_URL,
        retry_config=RetryConfig(max_retries=1, base_delay=0.0),
        transport=httpx.MockTransport(fake_github.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore(ttl_seconds=3600)


@pytest_asyncio.fixture
async def client(
    github_client: GitHubClient, session_store: MemorySessionStore
) -> AsyncGenerator[AsyncClient, None]:
    """Create an unauthenticated test client."""
    app.dependency_overrides[get_github_client] = lambda: github_client
    app.dependency_overrides[get_session_store] = lambda: session_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def log_in(client: AsyncClient, code: str = "good-code") -> httpx.Response:
    """Run the OAuth round trip against the fake and return the callback response."""
    response = await client.get("/auth/login")
    state = httpx.URL(response.headers["location"]).params["state"]
    return await client.get("/auth/callback", params={"code": code, "state": state})


def extract_csrf_token(html: str) -> str:
    match = re.search(r'<meta name="csrf-token" content="([^"]+)">', html)
    assert match, "dashboard should expose the CSRF token"
    return match.group(1)


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient) -> AsyncClient:
    """Client that completed the OAuth flow."""
    response = await log_in(client)
    assert response.status_code == 302
    return client


@pytest_asyncio.fixture
async def csrf_token(authenticated_client: AsyncClient) -> str:
    response = await authenticated_client.get("/dashboard")
    return extract_csrf_token(response.text)


@pytest.fixture
def login():
    return log_in


@pytest.fixture
def csrf_from():
    return extract_csrf_token
