"""Release sources for fetching published release metadata.

This package contains:
    - ReleaseSource: the interface the resolver and orchestrator depend on
    - GitHubReleaseSource: GitHub REST API implementation
"""

from pluginindex.adapters.base import ReleaseSource
from pluginindex.adapters.github_adapter import GitHubReleaseSource

__all__ = [
    "GitHubReleaseSource",
    "ReleaseSource",
]
