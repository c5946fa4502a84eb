"""
Configuration Loading and Management Functions.

Handles loading, saving, and applying environment overrides to psearch
configuration.

Configuration precedence: 1. Env vars, 2. YAML file, 3. Defaults

Environment overrides:
    PSEARCH_LOG_LEVEL        logging.level (whitelisted)
    PSEARCH_SOURCE_TIMEOUT   sources.timeout_seconds (0.1 - 600)
    PSEARCH_NEAR_DISTANCE    query.near_max_line_distance (0 - 1000)
    PSEARCH_PAGE_SIZE        posterior.page_size (1 - 1000)
    PSEARCH_QUERY_IMPORTANCE posterior.query_importance (whitelisted)
"""

import os
import re
from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

import yaml

from psearch.core.env import (
    IMPORTANCE_LEVELS,
    LOG_LEVELS,
    get_env_float,
    get_env_int,
    get_env_whitelist,
)

if TYPE_CHECKING:
    from psearch.core.config import Config

CONFIG_FILENAMES = ("psearch.yaml", ".psearch.yaml")


class _Logger:
    """Lazy logger holder.

    Rule #6: Encapsulates logger state in smallest scope.
    Avoids slow startup from rich library import.
    """

    _instance = None

    @classmethod
    def get(cls) -> Any:
        """Get logger (lazy-loaded)."""
        if cls._instance is None:
            from psearch.core.logging import get_logger

            cls._instance = get_logger(__name__)
        return cls._instance


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles nested structures including:
    - Strings with ${VAR_NAME} or ${VAR_NAME:default} syntax
    - Nested dictionaries
    - Nested lists

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def _apply_env_overrides(config: "Config") -> "Config":
    """
    Apply environment variable overrides to configuration.

    Environment variables take precedence over config file values.
    """
    level = get_env_whitelist("PSEARCH_LOG_LEVEL", LOG_LEVELS)
    if level:
        config.logging.level = level

    timeout = get_env_float(
        "PSEARCH_SOURCE_TIMEOUT", min_value=0.1, max_value=600.0
    )
    if timeout is not None:
        config.sources.timeout_seconds = timeout

    distance = get_env_int("PSEARCH_NEAR_DISTANCE", min_value=0, max_value=1000)
    if distance is not None:
        config.query.near_max_line_distance = distance

    page_size = get_env_int("PSEARCH_PAGE_SIZE", min_value=1, max_value=1000)
    if page_size is not None:
        config.posterior.page_size = page_size

    importance = get_env_whitelist("PSEARCH_QUERY_IMPORTANCE", IMPORTANCE_LEVELS)
    if importance:
        config.posterior.query_importance = importance

    return config


def load_config(
    config_path: Optional[Path] = None, base_path: Optional[Path] = None
) -> "Config":
    """
    Load configuration from YAML file with environment variable overrides.

    Rule #4: Function <60 lines

    Args:
        config_path: Path to config file. Defaults to psearch.yaml in base_path.
        base_path: Directory searched for a config file. Defaults to cwd.

    Returns:
        Config object with all settings.

    Raises:
        ConfigurationError: If the file parses but holds invalid values.
    """
    from psearch.core.config import Config

    base_path = base_path or Path.cwd()

    if config_path is None:
        for filename in CONFIG_FILENAMES:
            candidate = base_path / filename
            if candidate.exists():
                config_path = candidate
                break
        else:
            return _apply_env_overrides(Config())
    if not config_path.exists():
        _Logger.get().warning("Config file not found, using defaults", path=config_path)
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        _Logger.get().warning(
            "Could not load config, using defaults", path=config_path, error=e
        )
        return _apply_env_overrides(Config())

    config = Config.from_dict(data)
    return _apply_env_overrides(config)


def save_config(config: "Config", config_path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save
        config_path: Destination path
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
