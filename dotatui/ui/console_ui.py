"""
Rich console output for headless mode.

Renders the same AppState the dashboard shows as static panels and tables.
"""

import logging
from typing import Optional

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dotatui.ui.formatting import (
    build_sparkline,
    format_duration,
    format_game_mode,
    format_kda,
    format_relative_time,
    format_result,
    profile_text,
    progress_line,
    stats_summary,
)
from dotatui.workflow.state import AppState

logger = logging.getLogger(__name__)

MAX_ROWS = 20


def _results_strip(state: AppState) -> Text:
    text = Text()
    for height in build_sparkline(state.matches):
        if height == 10:
            text.append("W", style="bold green")
        elif height == 2:
            text.append("L", style="bold red")
    return text


def build_matches_table(state: AppState, limit: int = MAX_ROWS) -> Table:
    table = Table(title="Matches", box=box.SIMPLE_HEAVY, expand=False)
    table.add_column("Match", style="dim")
    table.add_column("Hero", style="bold")
    table.add_column("W/L", justify="center")
    table.add_column("Mode")
    table.add_column("Dur", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("K/D/A", justify="right")

    for match in state.matches[:limit]:
        result = format_result(match)
        table.add_row(
            str(match.match_id),
            state.hero_name(match.hero_id),
            Text(result, style="green" if result == "W" else "red"),
            format_game_mode(match.game_mode),
            format_duration(match.duration),
            format_relative_time(match.start_time),
            format_kda(match.kills, match.deaths, match.assists),
        )
    return table


def build_report(state: AppState) -> Group:
    """Profile, summary and recent matches for the current account."""
    profile = Panel(profile_text(state.profile), title="Profile", border_style="cyan")
    summary = Panel(
        Group(Text(stats_summary(state.matches)), _results_strip(state)),
        title="Summary",
        border_style="cyan",
    )
    status = Text(progress_line(
        state.status, state.net.done, state.net.total, state.net.last_ms, state.serving_stale
    ), style="dim")

    parts = [profile, summary]
    if state.matches:
        parts.append(build_matches_table(state))
    parts.append(status)
    return Group(*parts)


def print_report(state: AppState, console: Optional[Console] = None) -> None:
    console = console or Console()
    console.print(build_report(state))
