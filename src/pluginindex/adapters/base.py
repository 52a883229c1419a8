"""Base interface for release sources.

A release source is a thin adapter over a remote hosting API. It answers
three questions about a repository: who owns it, what releases it has
(newest first, in the order the remote reports them), and which asset of a
release matches a predicate.

Release sources are called concurrently from worker threads, so
implementations must be safe to share between threads.

Example:
    class MyReleaseSource(ReleaseSource):
        name = "my_host"

        def verify_credentials(self) -> str:
            ...

        def fetch_releases(self, owner: str, repo: str) -> list[ReleaseDescriptor]:
            ...

        def fetch_repository(self, owner: str, repo: str) -> RepositoryMetadata:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from pluginindex.models import ReleaseAsset, ReleaseDescriptor, RepositoryMetadata
    from pluginindex.utils import AssetPredicate

__all__ = ["ReleaseSource"]


class ReleaseSource(ABC):
    """Abstract base class for release sources.

    Subclasses must implement:
        - verify_credentials: Check the configured credentials up front
        - fetch_releases: List a repository's releases, newest first
        - fetch_repository: Fetch descriptive repository metadata

    Failures are reported with the ReleaseSourceError hierarchy:
        - AuthError: credentials missing or rejected
        - NotFoundError: repository or release list not found
        - RateLimitError: the remote quota is exhausted
    """

    name: ClassVar[str] = "base"

    @abstractmethod
    def verify_credentials(self) -> str:
        """Check that the configured credentials are accepted.

        Returns:
            The account name the credentials belong to.

        Raises:
            AuthError: If credentials are missing or invalid.
        """
        ...

    @abstractmethod
    def fetch_releases(self, owner: str, repo: str) -> list[ReleaseDescriptor]:
        """List releases of a repository.

        The ordering is the one the remote reports (most recent first) and
        must not be re-sorted.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            Releases, newest first. Empty if the repository has none.
        """
        ...

    @abstractmethod
    def fetch_repository(self, owner: str, repo: str) -> RepositoryMetadata:
        """Fetch repository metadata (owner, description, web URL)."""
        ...

    def fetch_latest_asset(
        self,
        release: ReleaseDescriptor,
        predicate: AssetPredicate,
    ) -> ReleaseAsset | None:
        """Pick the first asset of `release` that satisfies `predicate`.

        Args:
            release: The release whose assets to search.
            predicate: Asset filter.

        Returns:
            The matching asset, or None if no asset matches.
        """
        for asset in release.assets:
            if predicate(asset):
                return asset
        return None

    def close(self) -> None:  # noqa: B027 - optional hook
        """Release any held resources."""

    def __enter__(self) -> ReleaseSource:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
