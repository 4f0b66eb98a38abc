"""
Main configuration module.

This module defines the main configuration settings for the reporting backend:
defaults, an optional JSON override file and environment overrides.
"""

import copy
import json
import logging
import os
from typing import Dict, Any, Optional

from exceptions import ConfigurationError

logger = logging.getLogger('main_config')

CONFIG_FILE = "config.json"
DEFAULT_CACHE_TTL = 6 * 60 * 60  # reports

DEFAULT_CONFIG = {
    "tenants_file": "tenants.json",
    "timezone": "America/Los_Angeles",
    "cache": {
        "mode": "local",
        "base_path": "cache",
        "ttl_seconds": DEFAULT_CACHE_TTL
    },
    "sheets": {
        "endpoint": "https://sheets.googleapis.com/v4/spreadsheets",
        "timeout_seconds": 30,
        "user_agent": "Mozilla/5.0 (compatible; Enterprise API)"
    },
    "locks": {
        "mode": "local",
        "timeout_seconds": 120,
        "wait_seconds": 60
    },
    "redis": {
        "host": "localhost",
        "port": 6379,
        "db": 0
    }
}

# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    "REPORTS_CACHE_DIR": ("cache", "base_path", str),
    "REPORTS_CACHE_TTL": ("cache", "ttl_seconds", int),
    "REPORTS_LOCK_MODE": ("locks", "mode", str),
    "SHEETS_ENDPOINT": ("sheets", "endpoint", str),
    "SHEETS_TIMEOUT": ("sheets", "timeout_seconds", int),
    "REDIS_HOST": ("redis", "host", str),
    "REDIS_PORT": ("redis", "port", int),
    "REDIS_DB": ("redis", "db", int),
}


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        update: Dictionary to merge on top of base

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Apply supported environment variables on top of the loaded configuration."""
    environ = os.environ if environ is None else environ
    result = copy.deepcopy(config)
    for var, (section, key, cast) in ENV_OVERRIDES.items():
        if var in environ and environ[var] != "":
            try:
                result.setdefault(section, {})[key] = cast(environ[var])
            except ValueError:
                raise ConfigurationError(f"Environment variable {var} has invalid value {environ[var]!r}")
            logger.debug(f"Config override from {var}: {section}.{key}")
    if environ.get("REPORTS_TENANTS_FILE"):
        result["tenants_file"] = environ["REPORTS_TENANTS_FILE"]
    return result


def load_config(config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file merged over the defaults.

    Args:
        config_path: Path to the JSON file (default: $REPORTS_CONFIG_FILE or config.json)
        environ: Environment mapping used for overrides (default: os.environ)

    Returns:
        Complete configuration dictionary

    Raises:
        ConfigurationError: If the file exists but is not valid JSON
    """
    environ = os.environ if environ is None else environ
    config_path = config_path or environ.get("REPORTS_CONFIG_FILE", CONFIG_FILE)
    config = copy.deepcopy(DEFAULT_CONFIG)

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file {config_path}: {str(e)}")
            raise ConfigurationError(f"Invalid JSON in config file {config_path}: {str(e)}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
        config = deep_merge(config, file_config)
        logger.info(f"Loaded configuration from {config_path}")
    else:
        logger.warning(f"Config file {config_path} not found, using defaults")

    return apply_env_overrides(config, environ)


def get_cache_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Cache settings (storage mode, base path, TTLs)."""
    return config.get("cache", DEFAULT_CONFIG["cache"])


def get_sheets_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Spreadsheet API settings (endpoint, timeout, user agent)."""
    return config.get("sheets", DEFAULT_CONFIG["sheets"])


def get_lock_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Refresh lock settings."""
    return config.get("locks", DEFAULT_CONFIG["locks"])


def get_redis_config(config: Dict[str, Any]) -> Dict[str, Any]:
    return config.get("redis", DEFAULT_CONFIG["redis"])
