"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from collab_dashboard.__main__ import main
from collab_dashboard.config import (
    REQUIRED_ENV_VARS,
    ConfigError,
    Settings,
    get_settings,
    load_settings,
)


@pytest.fixture
def fresh_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestRequiredConfiguration:
    """The four required variables gate startup."""

    @pytest.mark.parametrize("name", REQUIRED_ENV_VARS)
    def test_missing_variable_is_rejected(self, monkeypatch: pytest.MonkeyPatch, name: str):
        monkeypatch.delenv(name, raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize("name", REQUIRED_ENV_VARS)
    def test_empty_variable_is_rejected(self, monkeypatch: pytest.MonkeyPatch, name: str):
        monkeypatch.setenv(name, "   ")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize("name", REQUIRED_ENV_VARS)
    def test_load_settings_names_missing_variable(
        self, monkeypatch: pytest.MonkeyPatch, fresh_settings_cache, name: str
    ):
        monkeypatch.delenv(name, raising=False)
        with pytest.raises(ConfigError) as exc_info:
            load_settings()
        assert f"missing required env var: {name}" in str(exc_info.value)

    def test_main_exits_before_serving(self, monkeypatch: pytest.MonkeyPatch, fresh_settings_cache):
        served = []
        monkeypatch.delenv("GITHUB_CLIENT_SECRET", raising=False)
        monkeypatch.setattr("collab_dashboard.__main__.uvicorn.run", lambda *a, **kw: served.append(a))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert served == []

    def test_main_serves_on_port_3000(self, monkeypatch: pytest.MonkeyPatch, fresh_settings_cache):
        calls = []
        monkeypatch.setattr(
            "collab_dashboard.__main__.uvicorn.run", lambda *a, **kw: calls.append((a, kw))
        )

        main()

        assert len(calls) == 1
        args, kwargs = calls[0]
        assert args == ("collab_dashboard.main:app",)
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 3000


class TestSettingsValues:
    """Derived values and validation of optional settings."""

    def test_base_url_trailing_slash_is_dropped(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BASE_URL", "https://dash.example.com/")
        settings = Settings(_env_file=None)
        assert settings.base_url == "https://dash.example.com"
        assert settings.callback_url == "https://dash.example.com/auth/callback"
        assert settings.secure_cookies is True

    def test_http_base_url_does_not_mark_cookies_secure(self):
        settings = Settings(_env_file=None)
        assert settings.callback_url == "http://test/auth/callback"
        assert settings.secure_cookies is False

    def test_relative_base_url_is_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BASE_URL", "/just/a/path")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_invalid_base_url_reported_as_config_error(
        self, monkeypatch: pytest.MonkeyPatch, fresh_settings_cache
    ):
        monkeypatch.setenv("BASE_URL", "ftp://example.com")
        with pytest.raises(ConfigError) as exc_info:
            load_settings()
        assert "invalid BASE_URL" in str(exc_info.value)

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.max_concurrency == 10
        assert settings.session_ttl_seconds == 8 * 60 * 60
        assert settings.redis_url is None
        assert settings.github_api_url == "https://api.github.com"

    def test_max_concurrency_must_be_positive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MAX_CONCURRENCY", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
