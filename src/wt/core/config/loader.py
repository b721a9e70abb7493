"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

An explicit --config file replaces the user and project layers entirely.
Unlike a missing file, a file that exists but cannot be parsed is an error:
silently falling back to defaults could put worktrees somewhere unexpected.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wt.core.errors import ConfigError

from .models import WtConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "wt"
CONFIG_FILE_NAME = "config.json"
PROJECT_CONFIG_DIR = ".wt"


def get_xdg_config_home(env: Mapping[str, str] | None = None) -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    env = os.environ if env is None else env
    if xdg_home := env.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Path to ~/.config/wt/config.json (or XDG equivalent)."""
    return get_xdg_config_home(env) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def get_project_config_path(repo_root: Path) -> Path:
    """Path to <repo_root>/.wt/config.json."""
    return repo_root / PROJECT_CONFIG_DIR / CONFIG_FILE_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`; nested dicts
    are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}})
        {'a': 1, 'b': {'x': 10, 'y': 20}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON config file.

    Returns:
        Parsed JSON object, or None if the file does not exist

    Raises:
        ConfigError: If the file exists but is unreadable or not a JSON object
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Failed to parse config at {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config at {path} must be a JSON object")

    logger.debug(f"Loaded config layer {path}")
    return data


def apply_env_overrides(
    config_dict: dict[str, Any], env: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        WT_BASE - overrides base
    """
    env = os.environ if env is None else env
    result = config_dict.copy()
    if base := env.get("WT_BASE"):
        result["base"] = base
    return result


def load_config(
    repo_root: Path | None = None,
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> WtConfig:
    """
    Load configuration with multi-layer merging.

    Args:
        repo_root: Main repository root holding .wt/config.json
        config_path: Explicit config file; when given, no other file is read
        env: Environment for XDG lookup and overrides (defaults to os.environ)

    Returns:
        Validated WtConfig instance

    Raises:
        ConfigError: If a config file is invalid or the merged config fails validation
    """
    merged: dict[str, Any] = {}

    if config_path is not None:
        if explicit := load_json_file(config_path):
            merged = deep_merge(merged, explicit)
    else:
        if user_config := load_json_file(get_user_config_path(env)):
            merged = deep_merge(merged, user_config)

        if repo_root is not None:
            if project_config := load_json_file(get_project_config_path(repo_root)):
                merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged, env)

    try:
        return WtConfig(**merged)
    except ValidationError as e:
        source = config_path or "merged configuration"
        raise ConfigError(f"Invalid configuration ({source}): {e}") from e


def resolve_base_dir(config: WtConfig, main_repo_root: Path) -> Path:
    """
    Directory holding the worktrees of ``main_repo_root``.

    Absolute and ~ bases are shared between repositories, so each repository
    gets its own subdirectory there. A relative base is anchored at the main
    repository root.
    """
    base = config.base
    if base.startswith("~") or os.path.isabs(base):
        return Path(base).expanduser() / main_repo_root.name
    return main_repo_root / base


def resolve_worktree_path(config: WtConfig, main_repo_root: Path, name: str) -> Path:
    return resolve_base_dir(config, main_repo_root) / name
