"""Display helpers shared by the Textual dashboard and headless output."""

import time
from typing import List, Optional, Sequence

from dotatui.api.models import PlayerMatch, PlayerResponse

PLACEHOLDER = "-"
SPARKLINE_MATCHES = 20

GAME_MODES = {
    0: "Unknown",
    1: "All Pick",
    2: "Captains Mode",
    3: "Random Draft",
    4: "Single Draft",
    5: "All Random",
    6: "Intro",
    7: "Diretide",
    8: "Reverse Captains Mode",
    9: "Greeviling",
    10: "Tutorial",
    11: "Mid Only",
    12: "Least Played",
    13: "Limited Heroes",
    14: "Compendium Matchmaking",
    15: "Custom",
    16: "Captains Draft",
    17: "Balanced Draft",
    18: "Ability Draft",
    19: "Event",
    20: "All Random Death Match",
    21: "1v1 Mid",
    22: "All Draft",
    23: "Turbo",
    24: "Mutation",
    25: "Coaches Challenge",
}


def format_duration(seconds: Optional[int]) -> str:
    """Seconds as MM:SS (minutes are not wrapped at 60)."""
    if seconds is None:
        return PLACEHOLDER
    seconds = max(int(seconds), 0)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_relative_time(start_time: Optional[int], now: Optional[float] = None) -> str:
    """
    Age of a unix timestamp: now, Nm, Nh or Nd.

    Future timestamps count as now.
    """
    if start_time is None:
        return PLACEHOLDER
    current = int(time.time() if now is None else now)
    diff = max(current - int(start_time), 0)
    if diff < 60:
        return "now"
    if diff < 3600:
        return f"{diff // 60}m"
    if diff < 86400:
        return f"{diff // 3600}h"
    return f"{diff // 86400}d"


def format_game_mode(game_mode: Optional[int]) -> str:
    if game_mode is None:
        return PLACEHOLDER
    return GAME_MODES.get(game_mode, f"Mode {game_mode}")


def format_result(match: PlayerMatch) -> str:
    return "W" if match.is_win else "L"


def format_kda(kills: Optional[int], deaths: Optional[int], assists: Optional[int]) -> str:
    parts = [PLACEHOLDER if v is None else str(v) for v in (kills, deaths, assists)]
    return "/".join(parts)


def count_wins(matches: Sequence[PlayerMatch]) -> int:
    return sum(1 for m in matches if m.is_win)


def compute_winrate(matches: Sequence[PlayerMatch]) -> float:
    """Fraction of wins in [0, 1]; 0.0 for no matches."""
    if not matches:
        return 0.0
    return count_wins(matches) / len(matches)


def build_sparkline(matches: Sequence[PlayerMatch]) -> List[int]:
    """
    Win/loss heights for the most recent matches, oldest first.

    Matches arrive newest first; wins plot as 10, losses as 2.
    """
    data = [10 if m.is_win else 2 for m in reversed(list(matches[:SPARKLINE_MATCHES]))]
    return data or [0]


def quick_stats(matches: Sequence[PlayerMatch]) -> str:
    if not matches:
        return "No matches found"
    wins = count_wins(matches)
    return f"Recent matches: {len(matches)}\nWins: {wins}\nLosses: {len(matches) - wins}"


def stats_summary(matches: Sequence[PlayerMatch]) -> str:
    wins = count_wins(matches)
    winrate = compute_winrate(matches) * 100.0
    return f"Total: {len(matches)}\nWins: {wins}\nWinrate: {winrate:.1f}%"


def profile_text(profile: Optional[PlayerResponse], loading: bool = False) -> str:
    if loading:
        return "Loading..."
    if profile is None:
        return "No player loaded"
    persona = profile.personaname or "Unknown"
    steamid = (profile.profile.steamid if profile.profile else None) or PLACEHOLDER
    mmr = PLACEHOLDER if profile.mmr_estimate is None else str(profile.mmr_estimate)
    return f"Name: {persona}\nSteamID64: {steamid}\nMMR estimate: {mmr}"


def truncate_text(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[:max(max_len - 1, 0)] + "…"


def progress_line(status: str, done: int, total: int, last_ms: Optional[int],
                  stale: bool = False) -> str:
    """Status bar text: status | done/total | latency."""
    text = status
    if total > 0:
        text = f"{text} | {done}/{total}"
        if last_ms is not None:
            text = f"{text} | {last_ms}ms"
    if stale:
        text = f"{text} | serving stale data"
    return text
