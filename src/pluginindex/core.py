"""Core orchestration logic for pluginindex.

This module contains the IndexBuilder class which coordinates resolving
every manifest entry against the release source and merging the results
into an AggregatedIndex.

Resolution runs on a bounded thread pool under a single wall-clock budget.
When the budget runs out the collector is closed: whatever has completed is
used, and results arriving later are dropped. Outstanding network calls are
not interrupted.

Example:
    with GitHubReleaseSource(config.github) as source:
        builder = IndexBuilder.from_config(config, source)
        report = builder.build(load_manifest(Path("repositories.json")))
    ArtifactEmitter().emit(report.index, Path("dist"))
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from pluginindex.constants import (
    DEFAULT_BUILD_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PLATFORM_REPOSITORY,
)
from pluginindex.logging import get_logger
from pluginindex.models import (
    AggregatedIndex,
    BuildReport,
    PlatformReleaseInfo,
    RepositoryInfo,
    Resolution,
    ResolutionStatus,
)
from pluginindex.resolver import RepositoryResolver
from pluginindex.utils import format_duration, marker_predicate, parse_repository_identifier

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pluginindex.adapters.base import ReleaseSource
    from pluginindex.models import ManifestEntry, PluginIndexConfig

logger = get_logger(__name__)


class ResultCollector:
    """Thread-safe, closable collector of resolutions keyed by plugin name.

    Workers add their own result; the builder closes the collector at the
    cutoff and reads a snapshot. Adds after close are discarded.
    """

    def __init__(self) -> None:
        self._results: dict[str, Resolution] = {}
        self._lock = threading.Lock()
        self._closed = False

    def add(self, resolution: Resolution) -> bool:
        """Record a resolution.

        Returns:
            True if recorded, False if the collector was already closed.
        """
        name = resolution.info.name
        with self._lock:
            if self._closed:
                logger.debug("Discarding result that arrived after cutoff", extra={"plugin": name})
                return False
            if name in self._results:
                logger.error("Duplicate plugin name in results", extra={"plugin": name})
            self._results[name] = resolution
            return True

    def close(self) -> dict[str, Resolution]:
        """Stop accepting results and return everything collected so far."""
        with self._lock:
            self._closed = True
            return dict(self._results)


class IndexBuilder:
    """Builds the aggregated plugin index.

    Coordinates:
        - Verifying the release source credentials (fatal on failure)
        - Fetching the platform's own latest release once
        - Resolving all manifest entries concurrently on a bounded pool
        - Enforcing the global time budget
        - Merging resolved entries into the index
    """

    def __init__(
        self,
        source: ReleaseSource,
        resolver: RepositoryResolver | None = None,
        *,
        platform_repository: str = DEFAULT_PLATFORM_REPOSITORY,
        timeout_seconds: float = DEFAULT_BUILD_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize the builder.

        Args:
            source: Release source shared by all resolutions.
            resolver: Resolver to use. Defaults to one with the default predicate.
            platform_repository: Identifier of the platform's own repository.
            timeout_seconds: Wall-clock budget for the resolution phase.
            max_workers: Maximum concurrent resolutions.
        """
        self._source = source
        self._resolver = resolver or RepositoryResolver(source)
        self._platform_repository = platform_repository
        self._timeout_seconds = timeout_seconds
        self._max_workers = max_workers

    @classmethod
    def from_config(cls, config: PluginIndexConfig, source: ReleaseSource) -> IndexBuilder:
        """Create a builder from configuration."""
        predicate = marker_predicate(
            include=config.selection.include_markers,
            exclude=config.selection.exclude_markers,
        )
        return cls(
            source,
            RepositoryResolver(source, predicate),
            platform_repository=config.platform.repository,
            timeout_seconds=config.build.timeout_seconds,
            max_workers=config.build.max_workers,
        )

    def run(
        self,
        entries: Sequence[ManifestEntry],
        timeout_seconds: float | None = None,
    ) -> AggregatedIndex:
        """Build and return only the aggregated index."""
        return self.build(entries, timeout_seconds).index

    def build(
        self,
        entries: Sequence[ManifestEntry],
        timeout_seconds: float | None = None,
    ) -> BuildReport:
        """Resolve every manifest entry and aggregate the results.

        Args:
            entries: Manifest entries to resolve.
            timeout_seconds: Budget override for this run.

        Returns:
            BuildReport with the index and per-outcome counts.

        Raises:
            AuthError: If the release source rejects the credentials.
        """
        start_time = time.monotonic()
        budget = self._timeout_seconds if timeout_seconds is None else timeout_seconds

        self._source.verify_credentials()

        platform = self.fetch_platform_release()
        results = self._collect(entries, budget)

        plugins: dict[str, RepositoryInfo] = {}
        counts = dict.fromkeys(ResolutionStatus, 0)
        for name, resolution in results.items():
            counts[resolution.status] += 1
            if resolution.is_resolved:
                plugins[name] = resolution.info

        timed_out = [entry.name for entry in entries if entry.name not in results]
        duration_ms = int((time.monotonic() - start_time) * 1000)

        report = BuildReport(
            index=AggregatedIndex(platform=platform, plugins=plugins),
            total=len(entries),
            resolved=counts[ResolutionStatus.RESOLVED],
            no_eligible_release=counts[ResolutionStatus.NO_ELIGIBLE_RELEASE],
            failed=counts[ResolutionStatus.TRANSIENT_ERROR],
            timed_out=timed_out,
            duration_ms=duration_ms,
        )

        if timed_out:
            logger.warning(
                f"Time budget of {budget}s exhausted, {len(timed_out)} repositories abandoned",
                extra={"plugins": ", ".join(timed_out)},
            )

        logger.info(
            f"Index built in {format_duration(duration_ms)}",
            extra={
                "total": report.total,
                "resolved": report.resolved,
                "no_eligible_release": report.no_eligible_release,
                "failed": report.failed,
                "timed_out": len(timed_out),
            },
        )
        return report

    def fetch_platform_release(self) -> PlatformReleaseInfo:
        """Fetch the platform's own latest release.

        Failures are logged and yield an empty PlatformReleaseInfo.
        """
        repository = self._platform_repository
        try:
            owner, repo = parse_repository_identifier(repository)
            latest = self._resolver.latest_release(owner, repo)
        except Exception as e:
            logger.error(
                "Error getting platform release",
                extra={"repository": repository, "error": str(e)},
            )
            return PlatformReleaseInfo()

        if latest is None:
            logger.error(
                "Platform has no eligible release",
                extra={"repository": repository},
            )
            return PlatformReleaseInfo()

        logger.info(
            "Platform release found",
            extra={"repository": repository, "version": latest.version},
        )
        return PlatformReleaseInfo(
            version=latest.version,
            download_url=latest.download_url,
            changelog=latest.changelog,
        )

    def _collect(
        self,
        entries: Sequence[ManifestEntry],
        timeout_seconds: float,
    ) -> dict[str, Resolution]:
        """Run resolutions on the pool until all finish or the budget elapses.

        Returns:
            Snapshot of the collector taken at the cutoff.
        """
        collector = ResultCollector()
        executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="pluginindex-resolver",
        )

        try:
            futures = [
                executor.submit(self._resolve_into, collector, entry) for entry in entries
            ]
            wait(futures, timeout=timeout_seconds)
            return collector.close()
        finally:
            # Queued work is cancelled; running resolutions finish into a closed collector
            executor.shutdown(wait=False, cancel_futures=True)

    def _resolve_into(self, collector: ResultCollector, entry: ManifestEntry) -> None:
        resolution = self._resolver.resolve(entry.name, entry.repository)
        collector.add(resolution)
