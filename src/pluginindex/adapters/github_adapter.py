"""GitHub release source.

Fetches release lists and repository metadata from the GitHub REST API v3
via httpx. One `httpx.Client` is shared by all worker threads.

Example:
    config = GitHubConfig(token="ghp_xxx", user="octocat")
    with GitHubReleaseSource(config) as source:
        source.verify_credentials()
        releases = source.fetch_releases("Chorizite", "Chorizite")
"""

from __future__ import annotations

import threading
from typing import Any, ClassVar

import httpx

from pluginindex.adapters.base import ReleaseSource
from pluginindex.constants import (
    GITHUB_API_VERSION,
    GITHUB_RELEASES_PER_PAGE,
    SOURCE_TARBALL_ASSET_NAME,
    SOURCE_ZIP_ASSET_NAME,
    USER_AGENT_PREFIX,
    VERSION,
)
from pluginindex.exceptions import (
    AuthError,
    NotFoundError,
    RateLimitError,
    ReleaseSourceError,
)
from pluginindex.logging import get_logger
from pluginindex.models import (
    GitHubConfig,
    ReleaseAsset,
    ReleaseDescriptor,
    RepositoryMetadata,
)

logger = get_logger(__name__)

# Warn when fewer requests than this remain in the current rate limit window
RATE_LIMIT_LOW_WATERMARK = 100


class GitHubReleaseSource(ReleaseSource):
    """Release source backed by the GitHub REST API.

    Class Attributes:
        name: Source identifier ("github").
    """

    name: ClassVar[str] = "github"

    def __init__(self, config: GitHubConfig) -> None:
        """Initialize the GitHub release source.

        Args:
            config: GitHub configuration with token, user, and API URL.
        """
        self._config = config
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()
        self._closed = False

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client with GitHub headers.

        Raises:
            ReleaseSourceError: If the source has been closed.
        """
        with self._client_lock:
            if self._closed:
                raise ReleaseSourceError("GitHub release source is closed")
            if self._client is None:
                self._client = httpx.Client(
                    base_url=self._config.api_url,
                    headers={
                        "Authorization": f"Bearer {self._config.token}",
                        "Accept": "application/vnd.github+json",
                        "X-GitHub-Api-Version": GITHUB_API_VERSION,
                        "User-Agent": f"{USER_AGENT_PREFIX}/{VERSION} ({self._config.user})",
                    },
                    timeout=self._config.http_timeout_seconds,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client. Later requests fail with ReleaseSourceError."""
        with self._client_lock:
            self._closed = True
            if self._client is not None:
                self._client.close()
                self._client = None

    def verify_credentials(self) -> str:
        """Check the token before any repository is resolved.

        User tokens are checked against the authenticated-user endpoint. Tokens
        that may not read it (GitHub Actions installation tokens get a 403
        there) are checked against the rate limit endpoint instead, which
        accepts any valid token; the configured user is then reported.

        Returns:
            The login the token belongs to, or the configured user.

        Raises:
            AuthError: If no token is configured or GitHub rejects it.
            ReleaseSourceError: If GitHub cannot be reached.
        """
        if not self._config.token:
            raise AuthError("GitHub token not configured")

        try:
            data = self._get("/user")
        except AuthError as e:
            if e.details.get("status") != 403:
                raise
            self._get("/rate_limit")
            logger.info(
                "GitHub token verified without user access",
                extra={"user": self._config.user},
            )
            return self._config.user

        login = str(data.get("login", ""))

        if self._config.user and login.lower() != self._config.user.lower():
            logger.warning(
                "GitHub token belongs to a different account",
                extra={"configured_user": self._config.user, "token_user": login},
            )

        logger.info("GitHub credentials verified", extra={"login": login})
        return login

    def fetch_releases(self, owner: str, repo: str) -> list[ReleaseDescriptor]:
        """List releases of a repository, newest first as returned by GitHub.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            Parsed releases in API order.
        """
        repository = f"{owner}/{repo}"
        data = self._get(
            f"/repos/{repository}/releases",
            repository=repository,
            params={"per_page": GITHUB_RELEASES_PER_PAGE},
        )
        if not isinstance(data, list):
            raise ReleaseSourceError("Unexpected releases payload", repository)

        releases = [self._parse_release(item) for item in data]
        logger.debug(
            "Fetched releases",
            extra={"repository": repository, "count": len(releases)},
        )
        return releases

    def fetch_repository(self, owner: str, repo: str) -> RepositoryMetadata:
        """Fetch owner login, description, and web URL of a repository."""
        repository = f"{owner}/{repo}"
        data = self._get(f"/repos/{repository}", repository=repository)

        owner_data = data.get("owner") or {}
        return RepositoryMetadata(
            owner=owner_data.get("login", owner) if isinstance(owner_data, dict) else owner,
            html_url=data.get("html_url") or f"https://github.com/{repository}",
            description=data.get("description"),
        )

    def _get(
        self,
        path: str,
        *,
        repository: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a GET request and decode the JSON body.

        Raises:
            AuthError, NotFoundError, RateLimitError: For the matching HTTP statuses.
            ReleaseSourceError: For any other failure.
        """
        client = self._get_client()

        try:
            response = client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ReleaseSourceError(
                f"GitHub request failed: {e}",
                repository,
                {"path": path},
            ) from e

        self._check_rate_limit_headers(response)
        self._raise_for_status(response, repository)

        try:
            return response.json()
        except ValueError as e:
            raise ReleaseSourceError(
                "GitHub returned invalid JSON",
                repository,
                {"path": path},
            ) from e

    def _raise_for_status(self, response: httpx.Response, repository: str | None) -> None:
        """Map GitHub error statuses onto the ReleaseSourceError hierarchy."""
        status = response.status_code
        if response.is_success:
            return

        details = {"status": status, "url": str(response.url)}

        if status == 429 or (
            status == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            reset = response.headers.get("X-RateLimit-Reset")
            raise RateLimitError(
                "GitHub API rate limit exceeded",
                repository,
                reset_at=int(reset) if reset and reset.isdigit() else None,
                details=details,
            )

        if status in (401, 403):
            raise AuthError("GitHub rejected the credentials", repository, details)

        if status == 404:
            raise NotFoundError("Not found on GitHub", repository, details)

        raise ReleaseSourceError(f"GitHub API error {status}", repository, details)

    def _check_rate_limit_headers(self, response: httpx.Response) -> None:
        """Log a warning when the remaining request quota gets low."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        if remaining is None or not remaining.isdigit():
            return

        if 0 < int(remaining) < RATE_LIMIT_LOW_WATERMARK:
            logger.warning(
                "GitHub API rate limit low",
                extra={"remaining": remaining, "limit": limit},
            )

    def _parse_release(self, item: dict[str, Any]) -> ReleaseDescriptor:
        """Convert a release object from the API into a ReleaseDescriptor.

        Uploaded assets keep their API order. The auto-generated source
        archives are appended as source-archive assets.
        """
        assets = [
            ReleaseAsset(
                name=asset["name"],
                download_url=asset["browser_download_url"],
            )
            for asset in item.get("assets") or []
        ]
        if item.get("zipball_url"):
            assets.append(
                ReleaseAsset(
                    name=SOURCE_ZIP_ASSET_NAME,
                    download_url=item["zipball_url"],
                    is_source_archive=True,
                )
            )
        if item.get("tarball_url"):
            assets.append(
                ReleaseAsset(
                    name=SOURCE_TARBALL_ASSET_NAME,
                    download_url=item["tarball_url"],
                    is_source_archive=True,
                )
            )

        return ReleaseDescriptor(
            tag_name=item["tag_name"],
            body=item.get("body"),
            published_at=item.get("published_at"),
            created_at=item.get("created_at"),
            assets=assets,
        )
