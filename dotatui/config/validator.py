"""Configuration validation."""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

VALID_PROTOCOLS = ['auto', 'kitty', 'iterm2', 'wezterm', 'none']
VALID_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


class ValidationError(Exception):
    """Configuration validation errors."""
    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary from loader

    Raises:
        ValidationError: If configuration is invalid
    """
    errors = []

    errors.extend(_validate_api(config.get('api', {})))
    errors.extend(_validate_images(config.get('images', {})))
    errors.extend(_validate_ui(config.get('ui', {})))
    errors.extend(_validate_keybinds(config.get('keybinds', {})))
    errors.extend(_validate_logging(config.get('logging', {})))

    if errors:
        raise ValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def _positive_int(section: Dict[str, Any], key: str, prefix: str) -> List[str]:
    if key not in section:
        return []
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return [f"{prefix}.{key} must be a positive integer"]
    return []


def _validate_api(section: Dict[str, Any]) -> List[str]:
    """Validate API options section."""
    errors = []

    base_url = section.get('base_url', "https://api.opendota.com/api")
    if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
        errors.append("api.base_url must be an http(s) URL")

    for key in ('rate_limit_per_minute', 'cache_ttl_secs', 'cache_max_entries', 'max_inflight'):
        errors.extend(_positive_int(section, key, 'api'))

    for key in ('request_timeout', 'connect_timeout'):
        if key in section:
            timeout = section[key]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                errors.append(f"api.{key} must be a positive number")

    if 'log_requests' in section and not isinstance(section['log_requests'], bool):
        errors.append("api.log_requests must be a boolean")

    return errors


def _validate_images(section: Dict[str, Any]) -> List[str]:
    """Validate images section."""
    errors = []

    if 'enabled' in section and not isinstance(section['enabled'], bool):
        errors.append("images.enabled must be a boolean")

    protocol = section.get('protocol', 'auto')
    if protocol not in VALID_PROTOCOLS:
        errors.append(f"images.protocol must be one of: {', '.join(VALID_PROTOCOLS)}")

    cdn_base = section.get('cdn_base', "https://cdn.cloudflare.steamstatic.com")
    if not isinstance(cdn_base, str) or not cdn_base.startswith(('http://', 'https://')):
        errors.append("images.cdn_base must be an http(s) URL")

    errors.extend(_positive_int(section, 'memory_cache_entries', 'images'))

    return errors


def _validate_ui(section: Dict[str, Any]) -> List[str]:
    """Validate ui section."""
    errors = _positive_int(section, 'recent_limit', 'ui')
    if 'theme' in section and not isinstance(section['theme'], str):
        errors.append("ui.theme must be a string")
    return errors


def _validate_keybinds(section: Dict[str, Any]) -> List[str]:
    """Validate keybinds section (Textual key names)."""
    errors = []
    if not isinstance(section, dict):
        return ["keybinds must be a mapping"]
    for action, key in section.items():
        if not isinstance(key, str) or not key:
            errors.append(f"keybinds.{action} must be a non-empty key name")
    return errors


def _validate_logging(section: Dict[str, Any]) -> List[str]:
    """Validate logging options section."""
    errors = []

    level = section.get('level', 'INFO')
    if level not in VALID_LEVELS:
        errors.append(f"logging.level must be one of: {', '.join(VALID_LEVELS)}")

    log_file = section.get('file')
    if log_file is not None and not isinstance(log_file, str):
        errors.append("logging.file must be a path string")

    return errors
