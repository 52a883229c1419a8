"""Custom exceptions for pluginindex.

This module defines a hierarchy of exceptions used throughout pluginindex.
All exceptions inherit from PluginIndexError, making it easy to catch
all pluginindex-related errors in one place.

Exception Hierarchy:
    PluginIndexError (base)
    ├── ConfigError - Configuration or credential loading failures
    ├── ManifestError - Repository manifest missing or malformed
    ├── ReleaseSourceError (base for remote API failures)
    │   ├── AuthError
    │   ├── NotFoundError
    │   └── RateLimitError
    └── EmitError - Writing output artifacts failed
"""

from typing import Any


class PluginIndexError(Exception):
    """Base exception for all pluginindex errors.

    Args:
        message: Human-readable error message.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(PluginIndexError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Invalid YAML syntax in .pluginindex.yaml
        - GITHUB_TOKEN or GITHUB_USER not set
        - Invalid platform repository identifier
    """


class ManifestError(PluginIndexError):
    """Raised when the repository manifest cannot be used.

    Examples:
        - Manifest file not found
        - Invalid JSON
        - Missing "repositories" object
        - Duplicate plugin names
    """


class ReleaseSourceError(PluginIndexError):
    """Base exception for release source (remote API) errors.

    Args:
        message: Human-readable error message.
        repository: The "owner/repo" the request was about, if any.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.repository = repository

    def __str__(self) -> str:
        base = f"[{self.repository}] {self.message}" if self.repository else self.message
        if self.details:
            return f"{base} | Details: {self.details}"
        return base


class AuthError(ReleaseSourceError):
    """Raised when credentials are missing or rejected (401/403)."""


class NotFoundError(ReleaseSourceError):
    """Raised when a repository or its release list cannot be retrieved (404)."""


class RateLimitError(ReleaseSourceError):
    """Raised when the API rate limit is exhausted (429, or 403 with no quota left).

    Args:
        message: Human-readable error message.
        repository: The "owner/repo" the request was about, if any.
        reset_at: Unix timestamp when the quota resets, if reported.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        reset_at: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, repository, details)
        self.reset_at = reset_at


class EmitError(PluginIndexError):
    """Raised when output artifacts cannot be written.

    Examples:
        - Output directory not writable
        - Disk full
    """
