"""Product OS Configuration

Configuration loading with environment variable support and sensible defaults.

Environment Variables:
    PRODUCT_OS_CONFIG_PATH: Path to config file (default: ~/.product-os/config.yaml)
    PRODUCT_OS_WORKSPACE: Override workspace path from config
    PRODUCT_OS_DB_PATH: Override database path from config

Configuration Schema:
    database:
        path: str - SQLite database file (default: ~/.product-os/product-os.db)
    workspace:
        path: str - Workspace root; exports go under <path>/exports/runs
    export:
        default_mode: str - "full" or "incremental" (default: "incremental")
        include_linked_context: bool - Expand incremental exports (default: True)
    logging:
        level: str - Logging level (default: "WARNING")
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .database.database import get_default_db_path

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "PRODUCT_OS_CONFIG_PATH"
WORKSPACE_ENV = "PRODUCT_OS_WORKSPACE"
DB_PATH_ENV = "PRODUCT_OS_DB_PATH"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "database": {
        "path": None,  # Use ~/.product-os/product-os.db
    },
    "workspace": {
        "path": None,  # Must be set before executing exports
    },
    "export": {
        "default_mode": "incremental",
        "include_linked_context": True,
    },
    "logging": {
        "level": "WARNING",
    },
}


def get_default_config_path() -> Path:
    """User-level config file location."""
    return Path.home() / ".product-os" / "config.yaml"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge override dict into base dict.

    Args:
        base: Base dictionary (defaults)
        override: Override dictionary (user config)

    Returns:
        Merged dictionary with override values taking precedence
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_path(path: Optional[str], base_dir: Path) -> Optional[Path]:
    """
    Resolve a path, making relative paths absolute from base_dir.

    Args:
        path: Path string (absolute or relative) or None
        base_dir: Base directory for relative path resolution

    Returns:
        Resolved absolute Path or None if path was None
    """
    if path is None:
        return None

    path_obj = Path(path).expanduser()
    if path_obj.is_absolute():
        return path_obj
    return (base_dir / path_obj).resolve()


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"Top-level value must be a mapping, got {type(data).__name__}")
    return data


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with environment variable overrides.

    Configuration Loading Order (later overrides earlier):
    1. Default values (DEFAULT_CONFIG)
    2. Config file (config_path, else PRODUCT_OS_CONFIG_PATH, else
       ~/.product-os/config.yaml when it exists)
    3. Environment variable overrides (PRODUCT_OS_WORKSPACE, PRODUCT_OS_DB_PATH)

    Relative paths in the file resolve against the file's directory.

    Args:
        config_path: Explicit config file path (overrides PRODUCT_OS_CONFIG_PATH)

    Returns:
        Merged configuration dictionary

    Raises:
        ConfigurationError: If an explicit config file is invalid YAML or unreadable
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    base_dir = Path.cwd()

    file_path = config_path or os.environ.get(CONFIG_PATH_ENV)

    if file_path:
        resolved_path = _resolve_path(file_path, Path.cwd())
        if resolved_path and resolved_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(resolved_path))
                base_dir = resolved_path.parent
                logger.info(f"Loaded configuration from: {resolved_path}")
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in config file: {e}")
            except IOError as e:
                raise ConfigurationError(f"Cannot read config file: {e}")
        else:
            logger.warning(f"Config file not found (using defaults): {file_path}")
    else:
        default_config_path = get_default_config_path()
        if default_config_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(default_config_path))
                base_dir = default_config_path.parent
                logger.info(f"Loaded configuration from: {default_config_path}")
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML in default config (ignoring): {e}")
            except IOError as e:
                logger.warning(f"Cannot read default config (ignoring): {e}")
        else:
            logger.debug("No config file found, using defaults")

    # Resolve file paths before env overrides, which are taken as given
    for section in ("database", "workspace"):
        value = config.get(section, {}).get("path")
        if value:
            config[section]["path"] = str(_resolve_path(value, base_dir))

    workspace_override = os.environ.get(WORKSPACE_ENV)
    if workspace_override:
        config.setdefault("workspace", {})["path"] = workspace_override
        logger.info(f"Workspace override from env: {workspace_override}")

    db_override = os.environ.get(DB_PATH_ENV)
    if db_override:
        config.setdefault("database", {})["path"] = db_override
        logger.info(f"Database path override from env: {db_override}")

    return config


def get_db_path(config: Dict[str, Any]) -> Path:
    """Database path from config or the user-level default."""
    path_str = config.get("database", {}).get("path")
    if path_str:
        return Path(path_str)
    return get_default_db_path()


def get_workspace_path(config: Dict[str, Any]) -> Optional[Path]:
    """Workspace root from config, or None when not configured."""
    path_str = config.get("workspace", {}).get("path")
    return Path(path_str) if path_str else None


def get_export_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Default export mode and linked-context flag.

    Raises:
        ConfigurationError: If default_mode is not "full" or "incremental"
    """
    export = config.get("export", {})
    mode = export.get("default_mode", "incremental")
    if mode not in ("full", "incremental"):
        raise ConfigurationError(f"Invalid export.default_mode: {mode}")
    return {
        "mode": mode,
        "include_linked_context": bool(export.get("include_linked_context", True)),
    }


def get_log_level(config: Dict[str, Any]) -> int:
    """Logging level from config; unknown names fall back to WARNING."""
    name = str(config.get("logging", {}).get("level", "WARNING")).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING
