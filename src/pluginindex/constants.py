"""Constants and configuration defaults for pluginindex.

This module contains all magic values, default configurations, and constants
used throughout the application. Import from here instead of hardcoding values.
"""

from typing import Final

# =============================================================================
# VERSION
# =============================================================================
VERSION: Final[str] = "0.1.0"

# =============================================================================
# HTTP CLIENT DEFAULTS
# =============================================================================
DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 30.0
USER_AGENT_PREFIX: Final[str] = "pluginindex"

# =============================================================================
# GITHUB API
# =============================================================================
GITHUB_API_BASE: Final[str] = "https://api.github.com"
GITHUB_WEB_BASE: Final[str] = "https://github.com/"
GITHUB_API_VERSION: Final[str] = "2022-11-28"
GITHUB_RELEASES_PER_PAGE: Final[int] = 30

# Environment variables holding credentials, in lookup order
TOKEN_ENV_VARS: Final[tuple[str, ...]] = ("GITHUB_TOKEN", "GH_TOKEN")
USER_ENV_VARS: Final[tuple[str, ...]] = ("GITHUB_USER", "GH_USER")

# =============================================================================
# BUILD DEFAULTS
# =============================================================================
DEFAULT_BUILD_TIMEOUT_SECONDS: Final[float] = 300.0  # 5 minutes
DEFAULT_MAX_WORKERS: Final[int] = 8

# =============================================================================
# PLATFORM
# =============================================================================
DEFAULT_PLATFORM_REPOSITORY: Final[str] = "Chorizite/Chorizite"
DEFAULT_PLATFORM_KEY: Final[str] = "Chorizite"

# =============================================================================
# ASSET SELECTION
# =============================================================================
SOURCE_ARCHIVE_MARKER: Final[str] = "Source code"
INSTALLER_MARKER: Final[str] = "Installer"
SOURCE_ZIP_ASSET_NAME: Final[str] = "Source code (zip)"
SOURCE_TARBALL_ASSET_NAME: Final[str] = "Source code (tar.gz)"

# =============================================================================
# MANIFEST
# =============================================================================
MANIFEST_REPOSITORIES_KEY: Final[str] = "repositories"

# =============================================================================
# OUTPUT
# =============================================================================
INDEX_JSON_NAME: Final[str] = "index.json"
INDEX_HTML_NAME: Final[str] = "index.html"
PLUGINS_DIR_NAME: Final[str] = "plugins"
PLUGINS_KEY: Final[str] = "Plugins"
DEFAULT_PAGE_TITLE: Final[str] = "Chorizite Plugin Index"
JSON_INDENT: Final[int] = 2

# =============================================================================
# CONFIG FILE
# =============================================================================
CONFIG_FILE_NAME: Final[str] = ".pluginindex.yaml"

# =============================================================================
# LOGGING
# =============================================================================
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
