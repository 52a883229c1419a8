"""Configuration and manifest loading for pluginindex.

This module handles loading the optional YAML configuration file (with
environment variable expansion), resolving the GitHub credentials, and
reading the repository manifest.

Example:
    config = load_config()
    config = require_credentials(config)
    entries = load_manifest(Path("repositories.json"))
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pluginindex.constants import (
    CONFIG_FILE_NAME,
    MANIFEST_REPOSITORIES_KEY,
    TOKEN_ENV_VARS,
    USER_ENV_VARS,
)
from pluginindex.exceptions import ConfigError, ManifestError
from pluginindex.logging import get_logger
from pluginindex.models import ManifestEntry, PluginIndexConfig

logger = get_logger(__name__)

# Pattern to match ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports both ${VAR_NAME} and $VAR_NAME syntax.
    If the env var is not set, the placeholder is left unchanged.

    Args:
        value: The value to expand (can be str, dict, list, or primitive).

    Returns:
        The value with environment variables expanded.
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match[str]) -> str:
            # Group 1 is ${VAR}, group 2 is $VAR
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]

    else:
        return value


def find_config_file() -> Path | None:
    """Search for .pluginindex.yaml in current and parent directories.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_file = directory / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

    return None


def load_config(config_path: Path | None = None) -> PluginIndexConfig:
    """Load configuration from YAML file.

    Environment variables in the format ${VAR_NAME} or $VAR_NAME are expanded.

    Args:
        config_path: Path to config file. If None, searches for .pluginindex.yaml
                    in current directory and parent directories.

    Returns:
        Loaded configuration, or defaults if no file exists.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation.
    """
    if config_path is None:
        config_path = find_config_file()

    if config_path is None or not config_path.exists():
        return PluginIndexConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}", {"error": str(e)}) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {config_path}")

    data = expand_env_vars(data)

    try:
        config = PluginIndexConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}", {"error": str(e)}) from e

    logger.debug("Loaded configuration", extra={"path": str(config_path)})
    return config


def _first_env(names: tuple[str, ...]) -> str:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return ""


def _is_unexpanded(value: str) -> bool:
    return bool(ENV_VAR_PATTERN.fullmatch(value))


def require_credentials(config: PluginIndexConfig) -> PluginIndexConfig:
    """Fill in credentials from the environment and insist both are present.

    Values from the config file win; empty or unexpanded placeholders fall back
    to GITHUB_TOKEN/GH_TOKEN and GITHUB_USER/GH_USER.

    Args:
        config: Loaded configuration.

    Returns:
        A copy of the configuration with token and user set.

    Raises:
        ConfigError: If the token or the user is missing.
    """
    token = config.github.token
    if not token or _is_unexpanded(token):
        token = _first_env(TOKEN_ENV_VARS)

    user = config.github.user
    if not user or _is_unexpanded(user):
        user = _first_env(USER_ENV_VARS)

    missing = []
    if not token:
        missing.append(" or ".join(TOKEN_ENV_VARS))
    if not user:
        missing.append(" or ".join(USER_ENV_VARS))
    if missing:
        raise ConfigError(f"Missing {', '.join(missing)} environment variables")

    github = config.github.model_copy(update={"token": token, "user": user})
    return config.model_copy(update={"github": github})


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ManifestError(f"Duplicate key in manifest: {key!r}")
        result[key] = value
    return result


def load_manifest(manifest_path: Path) -> list[ManifestEntry]:
    """Read the repository manifest.

    The manifest is a JSON document of the form
    {"repositories": {"<plugin name>": "<owner>/<repo>", ...}}.

    Args:
        manifest_path: Path to the manifest file.

    Returns:
        Manifest entries in file order.

    Raises:
        ManifestError: If the file is missing, not valid JSON, lacks the
            repositories object, or names a plugin twice.
    """
    if not manifest_path.is_file():
        raise ManifestError(f"Manifest not found: {manifest_path}")

    try:
        text = manifest_path.read_text(encoding="utf-8")
        data = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Cannot read manifest {manifest_path}", {"error": str(e)}) from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in {manifest_path}", {"error": str(e)}) from e

    if not isinstance(data, dict) or not isinstance(
        data.get(MANIFEST_REPOSITORIES_KEY), dict
    ):
        raise ManifestError(f"Missing {MANIFEST_REPOSITORIES_KEY} key in {manifest_path}")

    entries: list[ManifestEntry] = []
    for name, repository in data[MANIFEST_REPOSITORIES_KEY].items():
        if not isinstance(repository, str):
            raise ManifestError(
                f"Repository for {name!r} must be a string",
                {"value": repository},
            )
        try:
            entries.append(ManifestEntry(name=name, repository=repository))
        except ValidationError as e:
            raise ManifestError(
                f"Invalid manifest entry {name!r}",
                {"error": str(e)},
            ) from e

    logger.info(
        "Loaded manifest",
        extra={"path": str(manifest_path), "entries": len(entries)},
    )
    return entries
