"""Repository resolution.

A RepositoryResolver turns one manifest entry into a Resolution: it lists
the repository's releases, takes the most recent one, picks its installer
asset, and reads the repository metadata for the index entry.

Resolution never raises. Every outcome is reported through the tagged
Resolution result:
    - RESOLVED: an eligible release was found
    - NO_ELIGIBLE_RELEASE: no releases, repository not found, or no matching asset
    - TRANSIENT_ERROR: rate limiting, network errors, or anything unexpected

Example:
    resolver = RepositoryResolver(source, marker_predicate())
    resolution = resolver.resolve("MyPlugin", "someone/my-plugin")
    if resolution.is_resolved:
        print(resolution.info.latest.version)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pluginindex.constants import GITHUB_WEB_BASE
from pluginindex.exceptions import NotFoundError
from pluginindex.logging import get_logger
from pluginindex.models import (
    RepositoryInfo,
    Resolution,
    ResolutionStatus,
    ResolvedRelease,
)
from pluginindex.utils import marker_predicate, parse_repository_identifier, version_from_tag

if TYPE_CHECKING:
    from pluginindex.adapters.base import ReleaseSource
    from pluginindex.models import ReleaseDescriptor
    from pluginindex.utils import AssetPredicate

logger = get_logger(__name__)


class RepositoryResolver:
    """Resolves repositories to their latest eligible release.

    A resolver holds no per-repository state, so one instance can serve
    every worker thread.
    """

    def __init__(
        self,
        source: ReleaseSource,
        predicate: AssetPredicate | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            source: Release source to query.
            predicate: Asset filter deciding which asset is the installer.
                Defaults to marker_predicate().
        """
        self._source = source
        self._predicate = predicate or marker_predicate()

    def resolve(self, name: str, repository: str) -> Resolution:
        """Resolve one manifest entry.

        Args:
            name: Plugin name from the manifest.
            repository: Repository identifier from the manifest.

        Returns:
            Resolution whose info.name is always `name`.
        """
        try:
            resolution = self._resolve(name, repository)
        except Exception as e:
            logger.warning(
                f"Failed to resolve {name}",
                extra={"repository": repository, "error": str(e)},
            )
            return Resolution(
                status=ResolutionStatus.TRANSIENT_ERROR,
                info=RepositoryInfo(name=name),
                reason=str(e),
            )

        if resolution.is_resolved:
            logger.info(
                f"Resolved {name}",
                extra={"repository": repository, "version": resolution.info.latest.version},
            )
        else:
            logger.info(
                f"No eligible release for {name}",
                extra={"repository": repository, "reason": resolution.reason},
            )
        return resolution

    def latest_release(self, owner: str, repo: str) -> ResolvedRelease | None:
        """Find the latest eligible release of a repository.

        Only the first release in the source's ordering is considered. It is
        eligible when one of its assets satisfies the predicate.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            The resolved release, or None if there is no eligible release.

        Raises:
            ReleaseSourceError: If the release list cannot be fetched.
        """
        releases = self._source.fetch_releases(owner, repo)
        if not releases:
            return None
        return self._select(releases[0])

    def _resolve(self, name: str, repository: str) -> Resolution:
        owner, repo = parse_repository_identifier(repository)
        fallback = RepositoryInfo(
            name=name,
            author=owner,
            repository_url=f"{GITHUB_WEB_BASE}{owner}/{repo}",
        )

        try:
            latest = self.latest_release(owner, repo)
        except NotFoundError as e:
            return Resolution(
                status=ResolutionStatus.NO_ELIGIBLE_RELEASE,
                info=fallback,
                reason=str(e),
            )

        if latest is None:
            return Resolution(
                status=ResolutionStatus.NO_ELIGIBLE_RELEASE,
                info=fallback,
                reason="no release with a matching asset",
            )

        try:
            metadata = self._source.fetch_repository(owner, repo)
        except NotFoundError:
            info = fallback.model_copy(update={"latest": latest})
        else:
            info = RepositoryInfo(
                name=name,
                author=metadata.owner,
                repository_url=metadata.html_url,
                description=metadata.description or "",
                latest=latest,
            )

        return Resolution(status=ResolutionStatus.RESOLVED, info=info)

    def _select(self, release: ReleaseDescriptor) -> ResolvedRelease | None:
        asset = self._source.fetch_latest_asset(release, self._predicate)
        if asset is None:
            return None

        date = release.published_at or release.created_at
        if date is None:
            return None

        return ResolvedRelease(
            version=version_from_tag(release.tag_name),
            date=date,
            download_url=asset.download_url,
            changelog=release.body or "",
        )
