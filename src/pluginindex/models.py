"""Pydantic models for pluginindex.

This module contains all data models used throughout pluginindex.
All models use Pydantic BaseModel with Field() descriptions for
documentation and validation.

Models are organized by domain:
- Config models (GitHubConfig, PlatformConfig, BuildConfig, etc.)
- Remote API models (ReleaseAsset, ReleaseDescriptor, RepositoryMetadata)
- Index models (ManifestEntry, ResolvedRelease, RepositoryInfo, PlatformReleaseInfo)
- Result models (Resolution, AggregatedIndex, BuildReport)

Index models serialize with PascalCase aliases (`model_dump(by_alias=True)`),
which is the wire format of the published index documents.

All datetime fields use timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pluginindex.constants import (
    DEFAULT_BUILD_TIMEOUT_SECONDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PAGE_TITLE,
    DEFAULT_PLATFORM_KEY,
    DEFAULT_PLATFORM_REPOSITORY,
    GITHUB_API_BASE,
    INSTALLER_MARKER,
    SOURCE_ARCHIVE_MARKER,
)

# =============================================================================
# CONFIG MODELS
# =============================================================================


class GitHubConfig(BaseModel):
    """GitHub API configuration."""

    token: str = Field(default="", description="GitHub API token (from env)")
    user: str = Field(default="", description="Account the token belongs to (from env)")
    api_url: str = Field(default=GITHUB_API_BASE, description="GitHub REST API base URL")
    http_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        gt=0,
        description="Per-request HTTP timeout",
    )


class PlatformConfig(BaseModel):
    """The platform whose own latest release heads the index."""

    repository: str = Field(
        default=DEFAULT_PLATFORM_REPOSITORY,
        description="Platform repository identifier (owner/repo)",
    )
    key: str = Field(
        default=DEFAULT_PLATFORM_KEY,
        description="Key the platform release is stored under in index.json",
    )


class BuildConfig(BaseModel):
    """Collection phase settings."""

    timeout_seconds: float = Field(
        default=DEFAULT_BUILD_TIMEOUT_SECONDS,
        gt=0,
        description="Wall-clock budget for resolving all repositories",
    )
    max_workers: int = Field(
        default=DEFAULT_MAX_WORKERS,
        ge=1,
        le=64,
        description="Concurrent repository resolutions",
    )


class SelectionConfig(BaseModel):
    """Asset name markers used to pick the installer asset of a release."""

    include_markers: list[str] = Field(
        default_factory=lambda: [INSTALLER_MARKER],
        description="Asset name must contain one of these",
    )
    exclude_markers: list[str] = Field(
        default_factory=lambda: [SOURCE_ARCHIVE_MARKER],
        description="Asset name must contain none of these",
    )


class OutputConfig(BaseModel):
    """Listing page settings."""

    title: str = Field(default=DEFAULT_PAGE_TITLE, description="Listing page title")


class PluginIndexConfig(BaseModel):
    """Root configuration for pluginindex."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# =============================================================================
# REMOTE API MODELS
# =============================================================================


class ReleaseAsset(BaseModel):
    """A downloadable file attached to a release."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Asset file name as uploaded")
    download_url: str = Field(..., description="Browser download URL")
    is_source_archive: bool = Field(
        default=False,
        description="Whether this is an auto-generated source code archive",
    )


class ReleaseDescriptor(BaseModel):
    """A single release as reported by the release source."""

    model_config = ConfigDict(frozen=True)

    tag_name: str = Field(..., description="Git tag (e.g., 'release/2.3.1')")
    body: str | None = Field(default=None, description="Release notes (markdown)")
    published_at: datetime | None = Field(default=None, description="When published (UTC)")
    created_at: datetime | None = Field(default=None, description="When created (UTC)")
    assets: list[ReleaseAsset] = Field(default_factory=list, description="Attached assets")


class RepositoryMetadata(BaseModel):
    """Descriptive repository fields shown in the index."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., description="Owner login")
    html_url: str = Field(..., description="Repository web URL")
    description: str | None = Field(default=None, description="Repository description")


# =============================================================================
# INDEX MODELS
# =============================================================================


class ManifestEntry(BaseModel):
    """One plugin registered in the manifest."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Plugin name (unique)")
    repository: str = Field(..., min_length=1, description="Repository identifier (owner/repo)")


class ResolvedRelease(BaseModel):
    """The latest eligible release of a plugin repository."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., serialization_alias="Version", description="Version from the tag")
    date: datetime = Field(..., serialization_alias="Date", description="Published (UTC)")
    download_url: str = Field(
        ...,
        serialization_alias="DownloadUrl",
        description="Installer asset download URL",
    )
    changelog: str = Field(
        default="",
        serialization_alias="Changelog",
        description="Release notes",
    )


class RepositoryInfo(BaseModel):
    """Index entry for one plugin."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., serialization_alias="Name", description="Plugin name from manifest")
    author: str = Field(default="", serialization_alias="Author", description="Owner login")
    repository_url: str = Field(
        default="",
        serialization_alias="RepoUrl",
        description="Repository web URL",
    )
    description: str = Field(
        default="",
        serialization_alias="Description",
        description="Repository description",
    )
    latest: ResolvedRelease | None = Field(
        default=None,
        serialization_alias="Latest",
        description="Latest eligible release, if any",
    )


class PlatformReleaseInfo(BaseModel):
    """The platform's own latest release. Fields stay None if it could not be fetched."""

    version: str | None = Field(default=None, serialization_alias="Version")
    download_url: str | None = Field(default=None, serialization_alias="DownloadUrl")
    changelog: str | None = Field(default=None, serialization_alias="Changelog")


# =============================================================================
# RESULT MODELS
# =============================================================================


class ResolutionStatus(str, Enum):
    """Outcome of resolving one repository."""

    RESOLVED = "resolved"
    NO_ELIGIBLE_RELEASE = "no_eligible_release"
    TRANSIENT_ERROR = "transient_error"


class Resolution(BaseModel):
    """Tagged result of a single repository resolution.

    `info.latest` is present exactly when `status` is RESOLVED.
    """

    model_config = ConfigDict(frozen=True)

    status: ResolutionStatus = Field(..., description="Outcome kind")
    info: RepositoryInfo = Field(..., description="What was learned about the repository")
    reason: str | None = Field(default=None, description="Why nothing was resolved")

    @property
    def is_resolved(self) -> bool:
        """Whether this resolution produced an index entry."""
        return self.status is ResolutionStatus.RESOLVED and self.info.latest is not None


class AggregatedIndex(BaseModel):
    """Platform info plus every resolved plugin, prior to serialization."""

    platform: PlatformReleaseInfo = Field(default_factory=PlatformReleaseInfo)
    plugins: dict[str, RepositoryInfo] = Field(
        default_factory=dict,
        description="Plugin name -> index entry (only entries with a latest release)",
    )


class BuildReport(BaseModel):
    """Diagnostics for one build run."""

    index: AggregatedIndex = Field(..., description="The aggregated index")
    total: int = Field(default=0, ge=0, description="Manifest entries submitted")
    resolved: int = Field(default=0, ge=0, description="Entries with an eligible release")
    no_eligible_release: int = Field(default=0, ge=0, description="Entries with no release")
    failed: int = Field(default=0, ge=0, description="Entries that hit an error")
    timed_out: list[str] = Field(
        default_factory=list,
        description="Names still outstanding at the cutoff",
    )
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration of the build")
