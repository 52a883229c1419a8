"""Tests for the GitHub release source."""

from datetime import UTC, datetime

import httpx
import pytest
from pytest_httpx import HTTPXMock

from pluginindex.adapters.github_adapter import GitHubReleaseSource
from pluginindex.exceptions import (
    AuthError,
    NotFoundError,
    RateLimitError,
    ReleaseSourceError,
)
from pluginindex.models import GitHubConfig
from pluginindex.utils import marker_predicate

RELEASES_URL = "https://api.github.com/repos/org/test-plugin/releases?per_page=30"
REPO_URL = "https://api.github.com/repos/org/test-plugin"


@pytest.fixture
def github_config() -> GitHubConfig:
    """Create a test GitHub configuration."""
    return GitHubConfig(token="test-token", user="testuser")


@pytest.fixture
def github_source(github_config: GitHubConfig):
    """Create a test GitHub release source."""
    source = GitHubReleaseSource(github_config)
    yield source
    source.close()


# Sample GitHub API responses
SAMPLE_RELEASES_RESPONSE = [
    {
        "tag_name": "release/2.3.1",
        "name": "2.3.1",
        "body": "- Fixed crash on load",
        "draft": False,
        "prerelease": False,
        "html_url": "https://github.com/org/test-plugin/releases/tag/release/2.3.1",
        "created_at": "2024-03-15T10:00:00Z",
        "published_at": "2024-03-16T14:00:00Z",
        "zipball_url": "https://api.github.com/repos/org/test-plugin/zipball/release/2.3.1",
        "tarball_url": "https://api.github.com/repos/org/test-plugin/tarball/release/2.3.1",
        "assets": [
            {
                "name": "TestPlugin-Installer.exe",
                "browser_download_url": "https://github.com/org/test-plugin/releases/download/release/2.3.1/TestPlugin-Installer.exe",
            },
            {
                "name": "TestPlugin.pdb",
                "browser_download_url": "https://github.com/org/test-plugin/releases/download/release/2.3.1/TestPlugin.pdb",
            },
        ],
    },
    {
        "tag_name": "release/2.3.0",
        "name": "2.3.0",
        "body": None,
        "published_at": "2024-02-01T09:00:00Z",
        "assets": [],
    },
]

SAMPLE_REPO_RESPONSE = {
    "name": "test-plugin",
    "full_name": "org/test-plugin",
    "owner": {"login": "org"},
    "html_url": "https://github.com/org/test-plugin",
    "description": "A plugin for testing",
}


class TestGitHubReleaseSource:
    """Tests for GitHubReleaseSource."""

    def test_name(self, github_source: GitHubReleaseSource) -> None:
        assert github_source.name == "github"

    def test_verify_credentials_success(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """Test credential check with a valid token."""
        httpx_mock.add_response(
            url="https://api.github.com/user",
            json={"login": "testuser"},
        )

        assert github_source.verify_credentials() == "testuser"

    def test_verify_credentials_sends_headers(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """Token and account identifier go out with every request."""
        httpx_mock.add_response(url="https://api.github.com/user", json={"login": "testuser"})

        github_source.verify_credentials()

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert "testuser" in request.headers["User-Agent"]

    def test_verify_credentials_invalid_token(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """Test credential check with a rejected token."""
        httpx_mock.add_response(url="https://api.github.com/user", status_code=401)

        with pytest.raises(AuthError):
            github_source.verify_credentials()

    def test_verify_credentials_no_token(self) -> None:
        """No token fails without any network activity."""
        source = GitHubReleaseSource(GitHubConfig(token="", user="testuser"))

        with pytest.raises(AuthError):
            source.verify_credentials()

    def test_fetch_releases_parses_api_order(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """Releases keep API order; source archives are appended as assets."""
        httpx_mock.add_response(url=RELEASES_URL, json=SAMPLE_RELEASES_RESPONSE)

        releases = github_source.fetch_releases("org", "test-plugin")

        assert [r.tag_name for r in releases] == ["release/2.3.1", "release/2.3.0"]
        latest = releases[0]
        assert latest.body == "- Fixed crash on load"
        assert latest.published_at == datetime(2024, 3, 16, 14, 0, 0, tzinfo=UTC)
        assert [a.name for a in latest.assets] == [
            "TestPlugin-Installer.exe",
            "TestPlugin.pdb",
            "Source code (zip)",
            "Source code (tar.gz)",
        ]
        assert [a.is_source_archive for a in latest.assets] == [False, False, True, True]
        assert releases[1].assets == []
        assert releases[1].body is None

    def test_fetch_latest_asset(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """The installer asset is picked, never a source archive."""
        httpx_mock.add_response(url=RELEASES_URL, json=SAMPLE_RELEASES_RESPONSE)
        releases = github_source.fetch_releases("org", "test-plugin")

        asset = github_source.fetch_latest_asset(releases[0], marker_predicate())
        assert asset is not None
        assert asset.name == "TestPlugin-Installer.exe"

        assert github_source.fetch_latest_asset(releases[1], marker_predicate()) is None

    def test_fetch_releases_empty(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=RELEASES_URL, json=[])

        assert github_source.fetch_releases("org", "test-plugin") == []

    def test_fetch_releases_not_found(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=RELEASES_URL, status_code=404, json={"message": "Not Found"})

        with pytest.raises(NotFoundError) as exc_info:
            github_source.fetch_releases("org", "test-plugin")
        assert exc_info.value.repository == "org/test-plugin"

    def test_rate_limited_403(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """403 with no remaining quota is a rate limit, not an auth failure."""
        httpx_mock.add_response(
            url=RELEASES_URL,
            status_code=403,
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1710600000"},
        )

        with pytest.raises(RateLimitError) as exc_info:
            github_source.fetch_releases("org", "test-plugin")
        assert exc_info.value.reset_at == 1710600000

    def test_rate_limited_429(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=RELEASES_URL, status_code=429)

        with pytest.raises(RateLimitError):
            github_source.fetch_releases("org", "test-plugin")

    def test_forbidden_is_auth_error(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=RELEASES_URL,
            status_code=403,
            headers={"X-RateLimit-Remaining": "4000"},
        )

        with pytest.raises(AuthError):
            github_source.fetch_releases("org", "test-plugin")

    def test_server_error(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=RELEASES_URL, status_code=502)

        with pytest.raises(ReleaseSourceError) as exc_info:
            github_source.fetch_releases("org", "test-plugin")
        assert exc_info.value.details["status"] == 502
        assert not isinstance(exc_info.value, (AuthError, NotFoundError, RateLimitError))

    def test_transport_error(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """Network failures surface as ReleaseSourceError."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=RELEASES_URL)

        with pytest.raises(ReleaseSourceError):
            github_source.fetch_releases("org", "test-plugin")

    def test_fetch_repository(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=REPO_URL, json=SAMPLE_REPO_RESPONSE)

        metadata = github_source.fetch_repository("org", "test-plugin")

        assert metadata.owner == "org"
        assert metadata.html_url == "https://github.com/org/test-plugin"
        assert metadata.description == "A plugin for testing"

    def test_fetch_repository_null_description(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=REPO_URL,
            json={**SAMPLE_REPO_RESPONSE, "description": None},
        )

        assert github_source.fetch_repository("org", "test-plugin").description is None

    def test_context_manager_closes_client(
        self, github_config: GitHubConfig, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url="https://api.github.com/user", json={"login": "testuser"})

        with GitHubReleaseSource(github_config) as source:
            source.verify_credentials()
            assert source._client is not None
        assert source._client is None

    def test_closed_source_does_not_reopen(
        self, github_config: GitHubConfig, httpx_mock: HTTPXMock
    ) -> None:
        """Requests after close fail instead of opening a new client."""
        httpx_mock.add_response(url="https://api.github.com/user", json={"login": "testuser"})
        source = GitHubReleaseSource(github_config)
        source.verify_credentials()

        source.close()

        with pytest.raises(ReleaseSourceError, match="closed"):
            source.fetch_repository("org", "test-plugin")
        assert source._client is None

    def test_close_before_first_request(self, github_config: GitHubConfig) -> None:
        source = GitHubReleaseSource(github_config)
        source.close()

        with pytest.raises(ReleaseSourceError):
            source.fetch_releases("org", "test-plugin")
        assert source._client is None

    def test_verify_credentials_installation_token(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        """A token that may not read /user is accepted if it can read /rate_limit."""
        httpx_mock.add_response(
            url="https://api.github.com/user",
            status_code=403,
            json={"message": "Resource not accessible by integration"},
        )
        httpx_mock.add_response(
            url="https://api.github.com/rate_limit",
            json={"resources": {"core": {"remaining": 4999}}},
        )

        assert github_source.verify_credentials() == "testuser"

    def test_verify_credentials_forbidden_everywhere(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url="https://api.github.com/user", status_code=403)
        httpx_mock.add_response(url="https://api.github.com/rate_limit", status_code=401)

        with pytest.raises(AuthError):
            github_source.verify_credentials()

    def test_verify_credentials_unreachable(
        self, github_source: GitHubReleaseSource, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(
            httpx.ConnectError("Connection refused"),
            url="https://api.github.com/user",
        )

        with pytest.raises(ReleaseSourceError) as exc_info:
            github_source.verify_credentials()
        assert not isinstance(exc_info.value, AuthError)
