"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import RedisDsn, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from collab_dashboard.constants import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_SESSION_TTL_HOURS,
    GITHUB_API_URL,
    GITHUB_OAUTH_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Required
    github_client_id: str
    github_client_secret: str
    session_secret: str
    base_url: str

    # App
    app_env: Literal["development", "production", "test"] = "development"
    app_name: str = "GitHub Collaborator Dashboard"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None

    # Sessions
    session_ttl_hours: int = DEFAULT_SESSION_TTL_HOURS
    redis_url: RedisDsn | None = None

    # Upstream
    github_api_url: str = GITHUB_API_URL
    github_oauth_url: str = GITHUB_OAUTH_URL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    @field_validator("github_client_id", "github_client_secret", "session_secret", "base_url")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Treat empty values the same as missing ones."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """BASE_URL must be an absolute http(s) URL; the trailing slash is dropped."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("BASE_URL must be an absolute http(s) URL")
        return v.rstrip("/")

    @field_validator("github_api_url", "github_oauth_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("max_concurrency", "session_ttl_hours")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def callback_url(self) -> str:
        """OAuth redirect URI registered with GitHub."""
        return f"{self.base_url}/auth/callback"

    @property
    def secure_cookies(self) -> bool:
        """Only mark cookies Secure when served over https."""
        return self.base_url.startswith("https://")

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_hours * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


class ConfigError(RuntimeError):
    """Configuration is missing or invalid; the process must not start."""


REQUIRED_ENV_VARS = ("GITHUB_CLIENT_ID", "GITHUB_CLIENT_SECRET", "SESSION_SECRET", "BASE_URL")


def load_settings() -> Settings:
    """Load settings, turning validation errors into one readable ConfigError.

    Raises:
        ConfigError: A required variable is unset or a value is invalid
    """
    try:
        return get_settings()
    except ValidationError as e:
        problems = []
        for error in e.errors():
            name = str(error["loc"][0]).upper() if error["loc"] else "SETTINGS"
            if error["type"] == "missing":
                problems.append(f"missing required env var: {name}")
            else:
                problems.append(f"invalid {name}: {error['msg']}")
        raise ConfigError("configuration error: " + "; ".join(problems)) from e
