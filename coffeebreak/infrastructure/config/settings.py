"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.coffeebreak/config.yaml), and builds the limiter
configuration from them.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from coffeebreak.domain.models.limits import LimiterConfig, ResetUnit

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".coffeebreak"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "COFFEEBREAK_"

# Config key -> LimiterConfig field
LIMITER_KEYS = {
    'limiter.minutely_limit': 'minutely_limit',
    'limiter.hourly_limit': 'hourly_limit',
    'limiter.call_delay_ms': 'call_delay_ms',
    'limiter.test_mode': 'test_mode',
    'limiter.tick_seconds': 'tick_seconds',
    'headers.limit_name': 'limit_header_name',
    'headers.remaining_name': 'remaining_header_name',
    'headers.reset_name': 'reset_header_name',
    'headers.reset_unit': 'reset_unit',
}

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, reload: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Load again even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file (override=False: real environment variables take precedence)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
        else:
            logger.debug(f"No variables loaded from {dotenv_path}.")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment variables are read lazily in get_config
    _loaded = True
    logger.info("Configuration loading process completed.")

def _coerce(value: str) -> Any:
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def _lookup_nested(config: Dict[str, Any], key: str) -> Any:
    """Resolves 'a.b.c' through nested mappings; raises KeyError if absent."""
    node: Any = config
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(key)
        node = node[part]
    return node

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (COFFEEBREAK_<KEY>, then <KEY>; dots become underscores)
    3. YAML config (flat dotted key or nested mapping)
    4. Default value

    Args:
        key: The configuration key (e.g., 'limiter.minutely_limit')
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    for candidate in (ENV_PREFIX + env_key, env_key):
        if candidate in os.environ:
            return _coerce(os.environ[candidate])

    if key in _config:
        return _config[key]
    try:
        return _lookup_nested(_config, key)
    except KeyError:
        pass

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the rest of the process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    _config[key] = value
    env_var = ENV_PREFIX + key.upper().replace('.', '_')
    os.environ[env_var] = str(value)
    logger.debug(f"Config set: {key}={value}, environment variable: {env_var}")

def get_limiter_config(**overrides: Any) -> LimiterConfig:
    """Builds a LimiterConfig from loaded settings.

    Keyword overrides (LimiterConfig field names) win over settings; a None
    override is ignored. Invalid values are normalized by LimiterConfig.
    """
    options: Dict[str, Any] = {}
    for key, field_name in LIMITER_KEYS.items():
        value = get_config(key)
        if value is not None:
            options[field_name] = value
    options.update({name: value for name, value in overrides.items() if value is not None})
    if 'reset_unit' in options:
        options['reset_unit'] = ResetUnit.parse(options['reset_unit']) or ResetUnit.UNIX_EPOCH_SECONDS
    logger.debug(f"Limiter options from configuration: {options}")
    return LimiterConfig(**options)

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")

# Load configuration when the module is imported
load_configuration()
