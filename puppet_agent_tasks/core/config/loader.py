"""
Configuration loader — reads puppet_agent.yml into TaskSettings.

Lookup order:
    explicit path (--config)  >  PAT_CONFIG env var  >  puppet_agent.yml
    found walking up from the current directory  >  built-in defaults

A missing file is not an error (the defaults target the public Puppet
package hosts).  An unreadable or invalid file is.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from puppet_agent_tasks.core.models.settings import TaskSettings

logger = logging.getLogger(__name__)

CONFIG_FILE = "puppet_agent.yml"
CONFIG_ENV_VAR = "PAT_CONFIG"


class ConfigError(Exception):
    """Raised when the settings file is invalid or unreadable."""

    kind = "puppet_agent/config-error"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for puppet_agent.yml starting from ``start_dir``, walking up.

    Returns:
        Path to the file, or None if not found.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    current = (start_dir or Path.cwd()).resolve()
    for _ in range(20):
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        if current.parent == current:
            break
        current = current.parent

    return None


def load_settings(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> TaskSettings:
    """Load and validate task settings.

    Args:
        path: Explicit settings file. If None, searches (see module doc).
        overrides: Nested mapping merged over the file contents before
            validation, e.g. ``{"catalog": {"yum_source": "..."}}``.

    Raises:
        ConfigError: If the file is missing (when explicit) or invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file()

    data: dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            if explicit or os.environ.get(CONFIG_ENV_VAR):
                raise ConfigError(f"Config file not found: {path}")
        else:
            data = _read_yaml(path)

    if overrides:
        data = _deep_merge(data, overrides)

    try:
        settings = TaskSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings{f' in {path}' if path else ''}: {e}") from e

    logger.debug(
        "Settings loaded from %s (catalog=%s)",
        path or "defaults", settings.catalog.source,
    )
    return settings


def _read_yaml(path: Path) -> dict[str, Any]:
    logger.debug("Loading settings from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Accept the settings either flat or wrapped under "puppet_agent:"
    return data.get("puppet_agent", data)


def _deep_merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
