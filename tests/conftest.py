"""
Shared pytest fixtures and utilities for the dotatui test suite.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict

import pytest
import yaml

from dotatui.api.client import REQUEST_LOGGER_NAME
from dotatui.config.loader import default_config
from dotatui.workflow.persistence import Persistence

TEST_BASE_URL = "https://api.test/api"
TEST_CDN = "https://cdn.test"
ACCOUNT_ID = 135664392


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def merge_dicts(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge overrides into a copy of base."""
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch) -> Path:
    """
    Point the XDG roots into the temp workspace so no test touches $HOME.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    return tmp_path


@pytest.fixture(autouse=True)
def reset_request_logger():
    """
    Undo request-log routing installed by CLI tests.
    """
    yield
    request_logger = logging.getLogger(REQUEST_LOGGER_NAME)
    for handler in list(request_logger.handlers):
        request_logger.removeHandler(handler)
        handler.close()
    request_logger.propagate = True
    request_logger.setLevel(logging.NOTSET)


@pytest.fixture
def base_config() -> Dict[str, Any]:
    """
    Defaults pointed at a fake API host; images disabled.
    """
    config = default_config()
    config["api"]["base_url"] = TEST_BASE_URL
    config["images"]["cdn_base"] = TEST_CDN
    config["images"]["enabled"] = False
    return config


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def persistence(tmp_path: Path) -> Persistence:
    return Persistence(
        recent_path=tmp_path / "state" / "recent.jsonl",
        avatar_map_path=tmp_path / "state" / "avatar_map.json",
    )


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    """
    Create a config.yaml in a temp directory.

    Usage:
        path = make_config({"api": {"rate_limit_per_minute": 30}})
    """

    def _builder(overrides: Dict[str, Any] = None) -> Path:
        base = {"api": {"base_url": TEST_BASE_URL}, "images": {"enabled": False}}
        if overrides:
            base = merge_dicts(base, overrides)
        cfg_path = tmp_path / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(base))
        return cfg_path

    return _builder


def hero_stats_payload():
    return [
        {"id": 1, "localized_name": "Anti-Mage"},
        {"id": 2, "localized_name": "Axe"},
        {"id": 74, "localized_name": "Invoker"},
    ]


def player_payload(personaname: str = "Miracle", avatar: str = "https://avatars.test/full.jpg"):
    return {
        "profile": {
            "personaname": personaname,
            "steamid": "76561198095930120",
            "avatar": "https://avatars.test/small.jpg",
            "avatarmedium": "https://avatars.test/medium.jpg",
            "avatarfull": avatar,
        },
        "mmr_estimate": {"estimate": 5400},
    }


def matches_payload():
    return [
        {
            "match_id": 7000000003,
            "player_slot": 1,
            "radiant_win": True,
            "duration": 2400,
            "hero_id": 74,
            "start_time": 1700000000,
            "game_mode": 22,
            "kills": 12,
            "deaths": 3,
            "assists": 15,
        },
        {
            "match_id": 7000000002,
            "player_slot": 130,
            "radiant_win": True,
            "duration": 1800,
            "hero_id": 1,
            "start_time": 1699990000,
            "game_mode": 23,
            "kills": 4,
            "deaths": 9,
            "assists": 2,
        },
    ]


def match_detail_payload():
    return {
        "match_id": 7000000003,
        "radiant_win": True,
        "duration": 2400,
        "players": [
            {
                "account_id": ACCOUNT_ID,
                "personaname": "Miracle",
                "hero_id": 74,
                "player_slot": 1,
                "item_0": 63,
                "item_1": 0,
                "item_2": 116,
                "kills": 12,
                "deaths": 3,
                "assists": 15,
                "gold_per_min": 640,
                "xp_per_min": 720,
                "net_worth": 28000,
            },
            {
                "account_id": 86745912,
                "personaname": "Ally",
                "hero_id": 2,
                "player_slot": 2,
            },
            {
                "account_id": None,
                "hero_id": 1,
                "player_slot": 128,
            },
        ],
    }
