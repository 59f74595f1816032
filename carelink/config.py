"""
Handles loading and validation of configuration settings.

This module is responsible for loading, merging, and validating configuration settings from:
1. The config.yaml file (primary configuration source)
2. Environment variables (for the API URL and overrides)

It provides a unified configuration access mechanism through the get_config_value function,
ensures settings are validated against expected types and requirements, and makes the
configuration available throughout the client.

Key components:
- APP_CONFIG: The global configuration dictionary
- get_config_value: Function to retrieve values using dot notation
- validate_config: Validates configuration against expected structure and types
- load_app_config: Loads and merges configuration from all sources
"""

import json
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file first
load_dotenv()

# Merged configuration from YAML, defaults and environment variables
APP_CONFIG: Dict[str, Any] = {}

__all__ = [
    "APP_CONFIG",
    "load_app_config",
    "get_config_value",
    "validate_config",
]

CONFIG_FILE_ENV_VAR = "CARELINK_CONFIG_FILE"

DEFAULT_CONFIG_STRUCTURE = {
    "client_settings": {
        "app_name": "CareLink",
        "log_file_name": "carelink.log",
        "session_db_file_name": "carelink_session.db",
        "debug_mode": False,
        "log_level": "INFO",
    },
    "api": {
        "base_url": None,
        "timeout_seconds": 15,
        "retry_total": 3,
        "user_agent": "CareLink Python Client/1.0",
    },
    "login_guard": {
        "max_attempts": 5,
        "lockout_seconds": 60,
    },
    "message_settings": {
        "templates_file": "message_templates.json",
        "notice_width": 60,
    },
}

# (type, is_required, default_value)
EXPECTED_CONFIG: Dict[str, Tuple[type, bool, Any]] = {
    "client_settings.app_name": (str, False, "CareLink"),
    "client_settings.log_file_name": (str, False, "carelink.log"),
    "client_settings.session_db_file_name": (str, False, "carelink_session.db"),
    "client_settings.debug_mode": (bool, False, False),
    "client_settings.log_level": (str, False, "INFO"),
    "api.base_url": (str, True, None),
    "api.timeout_seconds": (int, False, 15),
    "api.retry_total": (int, False, 3),
    "api.user_agent": (str, False, "CareLink Python Client/1.0"),
    "login_guard.max_attempts": (int, False, 5),
    "login_guard.lockout_seconds": (int, False, 60),
    "message_settings.templates_file": (str, False, "message_templates.json"),
    "message_settings.notice_width": (int, False, 60),
}

# Keys that must hold strictly positive integers
POSITIVE_INT_KEYS = {
    "api.timeout_seconds",
    "login_guard.max_attempts",
    "login_guard.lockout_seconds",
    "message_settings.notice_width",
}


def _load_yaml_config(path: str = "config.yaml") -> Dict[str, Any]:
    """Loads configuration from a YAML file."""
    try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
                logger.info(f"Successfully loaded configuration from {path}")
                return yaml_config or {}
        else:
            logger.warning(
                f"YAML configuration file not found at {path}. "
                "Ensure 'config.yaml' exists or the API URL is provided via CARELINK_API_URL."
            )
            return {}
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML configuration file {path}: {e}")
        sys.exit(f"Critical error: Could not parse {path}. Please check its syntax.")


def _get_typed_env_var(key: str, default_value: Any, expected_type: type) -> Any:
    """Gets an environment variable and attempts to cast it to the expected type."""
    value = os.getenv(key)
    if value is None:
        return default_value

    try:
        if expected_type is bool:
            return value.lower() in ("true", "1", "t", "yes", "y")
        if expected_type is int:
            return int(value)
        if expected_type is list:
            return [item.strip() for item in value.split(",") if item.strip()]
        if expected_type is dict:
            return json.loads(value)
        return expected_type(value)
    except (ValueError, TypeError):
        logger.warning(
            f"Could not cast environment variable {key}='{value}' to {expected_type}. Using default: {default_value}"
        )
        return default_value


def _merge_configs(
    yaml_config: Dict[str, Any], defaults: Dict[str, Any]
) -> Dict[str, Any]:
    """Merges YAML config over the default structure, section by section."""
    merged_config = {}

    for section, section_defaults in defaults.items():
        merged_config[section] = section_defaults.copy()
        yaml_section = yaml_config.get(section, {})

        if isinstance(yaml_section, dict):
            for key, default_val in section_defaults.items():
                merged_config[section][key] = yaml_section.get(key, default_val)
        elif yaml_section is not None:
            merged_config[section] = yaml_section

    return merged_config


def _env_var_name(section_name: str, key_name: str) -> str:
    if section_name == "api" and key_name == "base_url":
        return "CARELINK_API_URL"
    return f"{section_name.upper()}_{key_name.upper()}"


def _apply_env_vars_to_merged_config(
    config_dict: Dict[str, Any], defaults: Dict[str, Any]
):
    """Applies environment variables to the config_dict based on default structure.
    Environment variables are expected to be in format SECTION_KEY=value (e.g., LOGIN_GUARD_LOCKOUT_SECONDS=30).
    The API base URL is read from CARELINK_API_URL.
    """
    for section_name, section_defaults in defaults.items():
        if not isinstance(config_dict.get(section_name), dict):
            config_dict[section_name] = {}
        for key_name, default_value in section_defaults.items():
            env_var_key = _env_var_name(section_name, key_name)
            if os.getenv(env_var_key) is None:
                continue

            expected_type = type(default_value) if default_value is not None else str
            current_val_in_config = config_dict[section_name].get(
                key_name, default_value
            )
            env_val = _get_typed_env_var(
                env_var_key, current_val_in_config, expected_type
            )
            config_dict[section_name][key_name] = env_val
            logger.debug(
                f"Applied environment variable '{env_var_key}' to '{section_name}.{key_name}'"
            )


def load_app_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load application configuration from YAML and environment variables.

    The configuration loading follows this priority order:
    - Defaults from DEFAULT_CONFIG_STRUCTURE
    - Base settings from config.yaml (or the file named by CARELINK_CONFIG_FILE)
    - Overrides from environment variables

    Returns:
        Dict[str, Any]: The loaded configuration dictionary
    """
    global APP_CONFIG

    config_path = path or os.getenv(CONFIG_FILE_ENV_VAR, "config.yaml")
    yaml_config = _load_yaml_config(config_path)
    merged_config = _merge_configs(yaml_config, DEFAULT_CONFIG_STRUCTURE)
    _apply_env_vars_to_merged_config(merged_config, DEFAULT_CONFIG_STRUCTURE)

    APP_CONFIG = merged_config

    logger.debug(f"Configuration loaded with {len(APP_CONFIG)} top-level keys.")
    return APP_CONFIG


# Load configuration when this module is imported
load_app_config()


def get_config_value(path: str, default: Any = None) -> Any:
    """
    Retrieves a configuration value using dot notation path.

    Args:
        path: Dot-notation path to the configuration value (e.g., 'api.base_url')
        default: Value to return if the path is not found or the value is unset

    Returns:
        The configuration value at the specified path, or the default if not found

    Examples:
        >>> get_config_value('login_guard.max_attempts', 5)
        5
        >>> get_config_value('nonexistent.path', 'fallback')
        'fallback'
    """
    if not APP_CONFIG:
        load_app_config()

    current: Any = APP_CONFIG
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return default if current is None else current


def _type_is_valid(val: Any, p_type: type) -> bool:
    # bool is a subclass of int, so it is never accepted where an int is expected
    if p_type is int:
        return isinstance(val, int) and not isinstance(val, bool)
    return isinstance(val, p_type)


def validate_config() -> None:
    """
    Validates the loaded configuration against expected types and requirements.

    Checks that every required value is present, that values match their expected
    types, that counters are positive and that the API URL looks like an HTTP URL.

    Raises:
        SystemExit: If a critical configuration error is found
    """
    logger.info("Validating configuration...")
    valid = True

    for key, (p_type, is_required, _default) in EXPECTED_CONFIG.items():
        val = get_config_value(key)

        if val is None:
            if is_required:
                logger.critical(
                    f"Config Error: Required key '{key}' is missing or not set."
                )
                valid = False
            continue

        if not _type_is_valid(val, p_type):
            logger.critical(
                f"Config Error: Key '{key}' (value: '{val}', type: {type(val).__name__}) must be of type {p_type.__name__}."
            )
            valid = False
            continue

        if key == "client_settings.log_level":
            if val.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                logger.critical(
                    f"Config Error: '{key}' (value: {val}) must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL."
                )
                valid = False

        elif key in POSITIVE_INT_KEYS and val <= 0:
            logger.critical(
                f"Config Error: Key '{key}' (value: {val}) must be a positive integer."
            )
            valid = False

        elif key == "api.retry_total" and val < 0:
            logger.critical(
                f"Config Error: Key '{key}' (value: {val}) must be a non-negative integer."
            )
            valid = False

        elif key == "api.base_url":
            if not (val.startswith("http://") or val.startswith("https://")):
                logger.critical(
                    f"Config Error: Key '{key}' (value: {val}) must be an http:// or https:// URL."
                )
                valid = False

    if not valid:
        logger.critical(
            "Configuration validation failed. Please check your config.yaml and .env files."
        )
        sys.exit(1)
    logger.info("Configuration validated successfully.")
