"""Utility functions for identifiers, tags, and asset selection."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from pluginindex.constants import GITHUB_WEB_BASE, INSTALLER_MARKER, SOURCE_ARCHIVE_MARKER
from pluginindex.models import ReleaseAsset

AssetPredicate = Callable[[ReleaseAsset], bool]

# GitHub owner and repository names
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

# Characters allowed verbatim in generated file names
_UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9_.+-]")


def parse_repository_identifier(identifier: str) -> tuple[str, str]:
    """
    Split a repository identifier into owner and repository name.

    Accepts "owner/repo" as well as full web URLs such as
    "https://github.com/owner/repo" or "https://github.com/owner/repo.git".

    Args:
        identifier: The repository identifier from the manifest.

    Returns:
        (owner, repo) tuple.

    Raises:
        ValueError: If the identifier does not name exactly one repository.

    Example:
        >>> parse_repository_identifier("https://github.com/Chorizite/Chorizite.git")
        ('Chorizite', 'Chorizite')
    """
    text = identifier.strip()
    if text.startswith(GITHUB_WEB_BASE):
        text = text[len(GITHUB_WEB_BASE) :]
    text = text.strip("/")
    if text.endswith(".git"):
        text = text[: -len(".git")]

    parts = text.split("/")
    if len(parts) != 2 or not all(_NAME_PATTERN.match(p) for p in parts):
        raise ValueError(f"Invalid repository identifier: {identifier!r}")

    return parts[0], parts[1]


def version_from_tag(tag_name: str) -> str:
    """
    Derive a version string from a release tag.

    Path-style prefixes are dropped: only the text after the final "/" is kept.

    Example:
        >>> version_from_tag("release/2.3.1")
        '2.3.1'
    """
    return tag_name.rsplit("/", 1)[-1]


def plugin_file_stem(name: str) -> str:
    """Map a plugin name to a file name stem safe for any filesystem."""
    stem = _UNSAFE_FILE_CHARS.sub("_", name)
    # Never produce "", "." or ".." as a path component
    if stem.strip(".") == "":
        stem = stem.replace(".", "_") or "_"
    return stem


def marker_predicate(
    include: Iterable[str] = (INSTALLER_MARKER,),
    exclude: Iterable[str] = (SOURCE_ARCHIVE_MARKER,),
) -> AssetPredicate:
    """
    Build an asset predicate from name markers.

    An asset matches when it is not a source archive, its name contains none
    of the `exclude` markers, and contains at least one of the `include` markers.
    Matching is case-sensitive substring matching on the asset name.

    Args:
        include: Markers of which at least one must appear in the name.
        exclude: Markers none of which may appear in the name.

    Returns:
        A predicate over ReleaseAsset.
    """
    include_markers = tuple(include)
    exclude_markers = tuple(exclude)

    def predicate(asset: ReleaseAsset) -> bool:
        if asset.is_source_archive:
            return False
        if any(marker in asset.name for marker in exclude_markers):
            return False
        return any(marker in asset.name for marker in include_markers)

    return predicate


def format_duration(ms: int) -> str:
    """
    Format milliseconds as human-readable duration.

    Examples:
        >>> format_duration(500)
        '500ms'
        >>> format_duration(1500)
        '1.5s'
        >>> format_duration(65000)
        '1m 5s'
    """
    if ms < 1000:
        return f"{ms}ms"
    elif ms < 60000:
        return f"{ms / 1000:.1f}s"
    else:
        minutes = ms // 60000
        seconds = (ms % 60000) // 1000
        return f"{minutes}m {seconds}s"
