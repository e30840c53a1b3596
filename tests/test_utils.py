"""Tests for helpers: pagination, OAuth scopes, models and metrics."""

import pytest

from collab_dashboard.auth.oauth import missing_scopes, states_match
from collab_dashboard.github.models import AccessToken, Collaborator
from collab_dashboard.services.collaborators import split_repo
from collab_dashboard.utils.metrics import MetricsRegistry
from collab_dashboard.utils.pagination import parse_next_link


class TestParseNextLink:
    def test_next_and_last(self):
        header = (
            '<https://api.github.com/user/repos?page=2>; rel="next", '
            '<https://api.github.com/user/repos?page=5>; rel="last"'
        )
        assert parse_next_link(header) == "https://api.github.com/user/repos?page=2"

    def test_next_not_first(self):
        header = (
            '<https://api.github.com/user/repos?page=1>; rel="prev", '
            '<https://api.github.com/user/repos?page=3>; rel="next"'
        )
        assert parse_next_link(header) == "https://api.github.com/user/repos?page=3"

    @pytest.mark.parametrize(
        "header",
        [
            None,
            "",
            '<https://api.github.com/user/repos?page=1>; rel="prev"',
            "garbage",
            'https://api.github.com/user/repos?page=2; rel="next"',
        ],
    )
    def test_no_next(self, header):
        assert parse_next_link(header) is None


class TestScopes:
    def test_required_scopes_present(self):
        assert missing_scopes({"repo", "read:org", "gist"}) == []

    def test_missing_scopes_in_order(self):
        assert missing_scopes(set()) == ["repo", "read:org"]
        assert missing_scopes({"read:org"}) == ["repo"]

    def test_broader_org_scope_implies_read(self):
        assert missing_scopes({"repo", "write:org"}) == []

    def test_token_scope_parsing(self):
        assert AccessToken(scope="repo,read:org").scopes == {"repo", "read:org"}
        assert AccessToken(scope="repo read:org").scopes == {"repo", "read:org"}
        assert AccessToken(scope="").scopes == set()

    def test_states_match(self):
        assert states_match("abc", "abc")
        assert not states_match("abc", "abd")
        assert not states_match(None, "abc")
        assert not states_match("abc", None)


class TestPermissionLabel:
    @pytest.mark.parametrize(
        ("flags", "label"),
        [
            ({"admin": True, "maintain": True, "push": True}, "admin"),
            ({"maintain": True, "push": True, "triage": True}, "maintain"),
            ({"push": True, "triage": True, "pull": True}, "write"),
            ({"triage": True, "pull": True}, "triage"),
            ({"pull": True}, "read"),
            ({}, "read"),
        ],
    )
    def test_highest_permission_wins(self, flags: dict, label: str):
        collaborator = Collaborator(id=1, login="hubot", permissions=flags)
        assert collaborator.permission_label == label


class TestSplitRepo:
    def test_full_name(self):
        assert split_repo("octocat/hello-world", "someone") == ("octocat", "hello-world")

    def test_bare_name_uses_default_owner(self):
        assert split_repo(" hello-world ", "octocat") == ("octocat", "hello-world")

    @pytest.mark.parametrize("value", ["", "/", "octocat/", "/hello-world", "a/b/c"])
    def test_invalid(self, value: str):
        with pytest.raises(ValueError):
            split_repo(value, "octocat")


class TestMetricsRegistry:
    def test_counter_exposition(self):
        registry = MetricsRegistry()
        registry.collaborator_removals_total.inc(outcome="removed")
        registry.collaborator_removals_total.inc(outcome="removed")

        text = registry.format_prometheus()

        assert "# TYPE collaborator_removals_total counter" in text
        assert 'collaborator_removals_total{outcome="removed"} 2.0' in text

    def test_histogram_buckets_are_cumulative(self):
        registry = MetricsRegistry()
        registry.github_api_duration_seconds.observe(0.02, operation="get_user")
        registry.github_api_duration_seconds.observe(3.0, operation="get_user")

        text = registry.format_prometheus()

        assert 'github_api_duration_seconds_bucket{operation="get_user",le="0.025"} 1' in text
        assert 'github_api_duration_seconds_bucket{operation="get_user",le="5.0"} 2' in text
        assert 'github_api_duration_seconds_bucket{operation="get_user",le="+Inf"} 2' in text
        assert 'github_api_duration_seconds_count{operation="get_user"} 2' in text
