"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError
import yaml

from bundlefix.core.config.models import EngineConfig
from bundlefix.core.errors import ConfigError

logger = logging.getLogger(__name__)

MAIN_IDENTIFIER_ENV = "BUNDLE_ID"


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ConfigError: If format cannot be determined

    Example:
        >>> detect_format("bundlefix.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ConfigError(f"Unsupported config format: {suffix}", path=file_path)


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        ConfigError: If the file is missing, unsupported or malformed
    """
    path = Path(path)

    if not path.exists():
        raise ConfigError("Config file does not exist", path=path)

    fmt = detect_format(path)

    try:
        with path.open("r", encoding="utf-8") as f:
            if fmt == "json":
                content = json.load(f)
            else:
                # safe_load returns None for empty files
                content = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid {fmt.upper()} config: {e}", path=path) from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError("Config root must be a mapping", path=path)
    return content


def load_engine_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> EngineConfig:
    """Load and validate engine configuration.

    Values come from, in increasing priority: defaults, the config file,
    the ``BUNDLE_ID`` environment variable (main identifier only, when the
    file sets none), then ``overrides`` (typically CLI flags).

    Args:
        path: Optional config file
        overrides: Top-level field overrides; None values are ignored

    Returns:
        Validated EngineConfig

    Raises:
        ConfigError: If the file or resulting config is invalid
    """
    raw: dict[str, Any] = load_config(path) if path is not None else {}

    if not raw.get("main_identifier"):
        env_identifier = os.getenv(MAIN_IDENTIFIER_ENV)
        if env_identifier:
            logger.debug(f"Loaded main identifier from {MAIN_IDENTIFIER_ENV}")
            raw["main_identifier"] = env_identifier

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(raw.get(key), dict):
            raw[key] = {**raw[key], **value}
        else:
            raw[key] = value

    try:
        return EngineConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}", path=path) from e
