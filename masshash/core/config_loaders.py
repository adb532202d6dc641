"""
Configuration Loading Functions.

Loads MassHashConfig from YAML, expands ${VAR} / ${VAR:default} references
and applies environment variable overrides:

    MASSHASH_WORKERS       hashing.workers
    MASSHASH_ALGORITHM     hashing.algorithm
    MASSHASH_TIMEOUT_SEC   hashing.timeout_sec
    MASSHASH_LOG_LEVEL     logging.level

Environment variables take precedence over file values.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from masshash.core.config import MassHashConfig
from masshash.core.exceptions import ConfigurationError
from masshash.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_NAMES = ("masshash.yaml", "masshash.yml")

ENV_OVERRIDES = {
    "MASSHASH_WORKERS": ("hashing", "workers"),
    "MASSHASH_ALGORITHM": ("hashing", "algorithm"),
    "MASSHASH_TIMEOUT_SEC": ("hashing", "timeout_sec"),
    "MASSHASH_LOG_LEVEL": ("logging", "level"),
}

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles strings with ${VAR_NAME} or ${VAR_NAME:default} syntax inside
    nested dictionaries and lists.

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return _ENV_PATTERN.sub(replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay MASSHASH_* environment variables onto raw config data."""
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None or value == "":
            continue
        target = data.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigurationError(f"Config section '{section}' must be a mapping")
        target[key] = value
        logger.debug("Applied environment override", variable=env_name)
    return data


def _find_default_config() -> Optional[Path]:
    """Look for a config file in the working directory."""
    for name in DEFAULT_CONFIG_NAMES:
        candidate = Path.cwd() / name
        if candidate.is_file():
            return candidate
    return None


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    """Read a YAML mapping, raising ConfigurationError on bad input."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data


def load_config(config_path: Optional[Path] = None) -> MassHashConfig:
    """
    Load configuration from file, environment and defaults.

    Args:
        config_path: Explicit config file. When omitted, masshash.yaml in the
            working directory is used if present.

    Returns:
        Validated MassHashConfig.

    Raises:
        ConfigurationError: If an explicit file is missing, or the merged
            values fail validation.
    """
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        config_path = _find_default_config()

    data: Dict[str, Any] = {}
    if config_path is not None:
        data = expand_env_vars(_read_yaml(config_path))
        logger.debug("Loaded config file", path=config_path)

    data = _apply_env_overrides(data)

    try:
        return MassHashConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
