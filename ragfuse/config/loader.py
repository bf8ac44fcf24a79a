# ragfuse/config/loader.py
"""
Layered configuration loading.

Merge strategy:
    1. Package defaults (ragfuse/config/defaults/default.yaml) - always loaded
    2. User config (explicit path, else $RAGFUSE_CONFIG) - overrides defaults

The merged dict is validated into a RagfuseConfig, so every value is
guaranteed to exist.

Usage:
    from ragfuse.config import load_config

    config = load_config()
    config.chunking.semantic.similarity_threshold
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ragfuse.config.schema import RagfuseConfig, format_validation_error
from ragfuse.core.exceptions import ConfigValidationError
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CONFIG

logger = get_logger(__name__)

CONFIG_ENV_VAR = "RAGFUSE_CONFIG"
DEFAULTS_PATH = Path(__file__).parent / "defaults" / "default.yaml"


# =============================================================================
# Deep Merge
# =============================================================================


def deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Values from `override` take precedence over `base`.
    Nested dicts are merged recursively.
    Lists are replaced entirely (not merged).

    Examples:
        >>> deep_merge({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"c": 10}})
        {'a': 1, 'b': {'c': 10, 'd': 3}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


# =============================================================================
# Loading Functions
# =============================================================================


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    return data


def load_defaults() -> dict[str, Any]:
    """Load the package defaults as a plain dict."""
    return _read_yaml(DEFAULTS_PATH)


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Explicit path first, then $RAGFUSE_CONFIG. None when neither is set."""
    if path is not None:
        return Path(path)

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    return None


def load_config(path: Optional[Union[str, Path]] = None) -> RagfuseConfig:
    """
    Load the complete configuration.

    Args:
        path: Optional user config file. Falls back to $RAGFUSE_CONFIG.

    Returns:
        Validated RagfuseConfig

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
        ConfigValidationError: If the merged config is invalid
    """
    data = load_defaults()

    user_path = resolve_config_path(path)
    if user_path is not None:
        if not user_path.exists():
            raise FileNotFoundError(f"Config file not found: {user_path}")
        data = deep_merge(data, _read_yaml(user_path))
        logger.debug(f"{CONFIG} Merged user config from {user_path}")
    else:
        logger.debug(f"{CONFIG} Using package defaults only")

    try:
        return RagfuseConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid configuration: {format_validation_error(exc)}") from exc


__all__ = ["CONFIG_ENV_VAR", "DEFAULTS_PATH", "deep_merge", "load_defaults", "resolve_config_path", "load_config"]
