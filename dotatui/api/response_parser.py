"""OpenDota API response parsing and validation."""

import json
from typing import Any, Dict, List, Optional

from dotatui.api.error_handler import DecodeError
from dotatui.api.models import (
    AssetConstant,
    MatchDetail,
    MatchPlayer,
    PlayerMatch,
    PlayerProfile,
    PlayerResponse,
)

ITEM_SLOTS = ('item_0', 'item_1', 'item_2', 'item_3', 'item_4', 'item_5')


class ResponseError(DecodeError):
    """Response parsing errors."""
    pass


def decode_json(response_content: bytes) -> Any:
    """
    Decode a raw response body.

    Args:
        response_content: Raw response bytes

    Returns:
        Decoded JSON value

    Raises:
        ResponseError: If the body is empty or not valid JSON
    """
    if not response_content:
        raise ResponseError("Empty response body received")
    try:
        return json.loads(response_content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ResponseError(f"Malformed JSON: {e}")


def _require(data: Any, kind: type, what: str) -> Any:
    if not isinstance(data, kind):
        raise ResponseError(f"Expected {kind.__name__} for {what}, got {type(data).__name__}")
    return data


def _opt_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.lstrip('-').isdigit():
        return int(value)
    raise ResponseError(f"Field '{key}' is not an integer: {value!r}")


def _req_int(data: Dict[str, Any], key: str) -> int:
    value = _opt_int(data, key)
    if value is None:
        raise ResponseError(f"Missing required field '{key}'")
    return value


def _opt_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


def parse_hero_stats(data: Any) -> Dict[int, str]:
    """
    Parse /heroStats into a hero id -> localized name map.

    Args:
        data: Decoded JSON list of {id, localized_name}

    Returns:
        Dictionary keyed by hero id
    """
    heroes = {}
    for entry in _require(data, list, "heroStats"):
        entry = _require(entry, dict, "hero entry")
        name = entry.get('localized_name')
        if name is None:
            raise ResponseError("Hero entry missing 'localized_name'")
        heroes[_req_int(entry, 'id')] = str(name)
    return heroes


def parse_player(data: Any) -> PlayerResponse:
    """
    Parse /players/{account_id}.

    Args:
        data: Decoded JSON object

    Returns:
        PlayerResponse (profile and MMR estimate are optional)
    """
    data = _require(data, dict, "player")

    profile = None
    raw_profile = data.get('profile')
    if raw_profile is not None:
        raw_profile = _require(raw_profile, dict, "player profile")
        profile = PlayerProfile(
            personaname=_opt_str(raw_profile, 'personaname'),
            steamid=_opt_str(raw_profile, 'steamid'),
            avatar=_opt_str(raw_profile, 'avatar'),
            avatarmedium=_opt_str(raw_profile, 'avatarmedium'),
            avatarfull=_opt_str(raw_profile, 'avatarfull'),
        )

    mmr = None
    raw_mmr = data.get('mmr_estimate')
    if isinstance(raw_mmr, dict):
        mmr = _opt_int(raw_mmr, 'estimate')

    return PlayerResponse(profile=profile, mmr_estimate=mmr)


def parse_matches(data: Any) -> List[PlayerMatch]:
    """
    Parse /players/{id}/recentMatches or /players/{id}/matches.

    Args:
        data: Decoded JSON list of match summaries

    Returns:
        List of PlayerMatch in API order
    """
    matches = []
    for entry in _require(data, list, "matches"):
        entry = _require(entry, dict, "match entry")
        matches.append(PlayerMatch(
            match_id=_req_int(entry, 'match_id'),
            player_slot=_req_int(entry, 'player_slot'),
            radiant_win=bool(entry.get('radiant_win')),
            duration=_req_int(entry, 'duration'),
            hero_id=_req_int(entry, 'hero_id'),
            start_time=_opt_int(entry, 'start_time'),
            game_mode=_opt_int(entry, 'game_mode'),
            kills=_opt_int(entry, 'kills'),
            deaths=_opt_int(entry, 'deaths'),
            assists=_opt_int(entry, 'assists'),
        ))
    return matches


def parse_match_detail(data: Any) -> MatchDetail:
    """
    Parse /matches/{match_id}.

    Args:
        data: Decoded JSON object with a 'players' list

    Returns:
        MatchDetail
    """
    data = _require(data, dict, "match detail")
    players = []
    for entry in _require(data.get('players'), list, "match players"):
        entry = _require(entry, dict, "match player")
        items = [item for item in (_opt_int(entry, slot) for slot in ITEM_SLOTS) if item]
        players.append(MatchPlayer(
            account_id=_opt_int(entry, 'account_id'),
            personaname=_opt_str(entry, 'personaname'),
            hero_id=_opt_int(entry, 'hero_id'),
            player_slot=_opt_int(entry, 'player_slot'),
            items=items,
            kills=_opt_int(entry, 'kills'),
            deaths=_opt_int(entry, 'deaths'),
            assists=_opt_int(entry, 'assists'),
            gold_per_min=_opt_int(entry, 'gold_per_min'),
            xp_per_min=_opt_int(entry, 'xp_per_min'),
            net_worth=_opt_int(entry, 'net_worth'),
        ))

    radiant_win = data.get('radiant_win')
    return MatchDetail(
        players=players,
        match_id=_opt_int(data, 'match_id'),
        radiant_win=bool(radiant_win) if radiant_win is not None else None,
        duration=_opt_int(data, 'duration'),
    )


def parse_constants(data: Any, skip_zero: bool = False) -> Dict[int, AssetConstant]:
    """
    Re-key a /constants/heroes or /constants/items map by numeric id.

    Args:
        data: Decoded JSON object keyed by name
        skip_zero: Drop id 0 ("no item")

    Returns:
        Dictionary keyed by numeric id
    """
    constants = {}
    for name, entry in _require(data, dict, "constants").items():
        if not isinstance(entry, dict) or 'id' not in entry:
            # Some constant tables carry non-record entries; they have no id to key by
            continue
        const_id = _req_int(entry, 'id')
        if skip_zero and const_id == 0:
            continue
        constants[const_id] = AssetConstant(id=const_id, img=_opt_str(entry, 'img'))
    return constants


def build_asset_map(constants: Dict[int, AssetConstant], cdn_base: str) -> Dict[int, str]:
    """
    Resolve constant image paths to absolute URLs.

    Args:
        constants: Constants keyed by id
        cdn_base: Base URL for relative image paths

    Returns:
        id -> absolute image URL (entries without an image are dropped)
    """
    base = cdn_base.rstrip('/')
    assets = {}
    for const_id, constant in constants.items():
        if not constant.img:
            continue
        if constant.img.startswith('http'):
            assets[const_id] = constant.img
        else:
            assets[const_id] = f"{base}{constant.img}"
    return assets
