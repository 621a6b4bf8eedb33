"""Per-application config and cache locations."""

import os
from pathlib import Path
from typing import Optional

APP_NAME = "dotatui"


def config_dir() -> Path:
    """Return the configuration root ($XDG_CONFIG_HOME/dotatui)."""
    base = os.environ.get('XDG_CONFIG_HOME')
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_NAME


def cache_dir() -> Path:
    """Return the cache root ($XDG_CACHE_HOME/dotatui)."""
    base = os.environ.get('XDG_CACHE_HOME')
    root = Path(base) if base else Path.home() / ".cache"
    return root / APP_NAME


def config_file(root: Optional[Path] = None) -> Path:
    return (root or config_dir()) / "config.yaml"


def recent_file(root: Optional[Path] = None) -> Path:
    return (root or config_dir()) / "recent.jsonl"


def request_log_file(root: Optional[Path] = None) -> Path:
    return (root or config_dir()) / "tui.log"


def avatar_map_file(root: Optional[Path] = None) -> Path:
    return (root or cache_dir()) / "avatar_map.json"


def image_cache_dir(root: Optional[Path] = None) -> Path:
    return (root or cache_dir()) / "images"
