"""Configuration loading and parsing."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dotatui.config.paths import config_file

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


DEFAULT_CONFIG: Dict[str, Any] = {
    'api': {
        'base_url': "https://api.opendota.com/api",
        'rate_limit_per_minute': 60,
        'cache_ttl_secs': 300,
        'cache_max_entries': 256,
        'max_inflight': 6,
        'log_requests': True,
        'request_timeout': 20,
        'connect_timeout': 8,
    },
    'images': {
        'enabled': True,
        'protocol': "auto",
        'cdn_base': "https://cdn.cloudflare.steamstatic.com",
        'memory_cache_entries': 256,
    },
    'ui': {
        'theme': "catppuccin",
        'recent_limit': 5,
    },
    'keybinds': {
        'search': "slash",
        'quit': "q",
        'help': "question_mark",
        'tab_next': "right",
        'tab_prev': "left",
        'top': "g",
        'bottom': "G",
    },
    'logging': {
        'level': "INFO",
        'file': None,
    },
}


def default_config() -> Dict[str, Any]:
    """Return a fresh copy of the built-in defaults."""
    return copy.deepcopy(DEFAULT_CONFIG)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base (override wins)."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and parse configuration file.

    A missing file is created with the defaults (load-or-create). User values
    are merged over the defaults so partial files are valid.

    Args:
        config_path: Path to config.yaml file. If None, uses the XDG config root.

    Returns:
        Parsed configuration dictionary

    Raises:
        ConfigError: If config file cannot be loaded or parsed
    """
    path = Path(config_path).expanduser() if config_path else config_file()

    config = default_config()

    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
            logger.info(f"Wrote default configuration to {path}")
        except OSError as e:
            logger.warning(f"Could not write default configuration to {path}: {e}")
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}")

    if user_config is None:
        return config

    if not isinstance(user_config, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    return _deep_merge(config, user_config)


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., 'api.base_url')
        default: Default value if path not found

    Returns:
        Configuration value or default

    Example:
        >>> get_config_value(config, 'api.rate_limit_per_minute')
        60
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
