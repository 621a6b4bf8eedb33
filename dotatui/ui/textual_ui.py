"""
Textual UI for dotatui

Dashboard for OpenDota player and match data. Fetch results arrive on the
event bus and are reduced into AppState; a 200ms tick re-renders the widgets
from that state and draws inline images over their panels.
"""

import logging
import sys
from typing import Dict, List, Optional, Tuple

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    ProgressBar,
    Static,
    TabbedContent,
    TabPane,
)
from rich.text import Text

from dotatui.api.account import AccountIdError, parse_account_id
from dotatui.media.terminal_image import ImageArea
from dotatui.ui.formatting import (
    build_sparkline,
    compute_winrate,
    format_duration,
    format_game_mode,
    format_kda,
    format_relative_time,
    format_result,
    profile_text,
    progress_line,
    quick_stats,
    stats_summary,
    truncate_text,
)
from dotatui.workflow.orchestrator import ImageTarget, TaskOrchestrator

logger = logging.getLogger(__name__)

TAB_IDS = ["overview", "matches", "stats"]
LOADOUT_SLOTS = 6


def create_sparkline(values: list, width: int = 20) -> str:
    """Create a sparkline visualization from a list of values."""
    if not values:
        return "─" * width

    if len(values) < width:
        values = [0] * (width - len(values)) + values
    else:
        values = values[-width:]

    min_val = min(values)
    max_val = max(values)
    val_range = max_val - min_val if max_val > min_val else 1

    sparkline_chars = ["▁", "▂", "▃", "▄", "▅", "▆", "▇", "█"]
    return "".join(
        sparkline_chars[int(((v - min_val) / val_range) * 7)] for v in values
    )


def widget_area(widget) -> Optional[ImageArea]:
    """Screen area of a mounted, visible widget."""
    if not widget.display:
        return None
    region = widget.region
    if region.width <= 0 or region.height <= 0:
        return None
    return ImageArea(region.x, region.y, region.width, region.height)


class HelpScreen(ModalScreen):
    """Keybinding reference."""

    CSS = """
    HelpScreen {
        align: center middle;
    }

    #help-dialog {
        width: 60;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    """

    def __init__(self, keybinds: Dict[str, str]):
        super().__init__()
        self.keybinds = keybinds

    def compose(self) -> ComposeResult:
        lines = [
            "[bold]Keybinds[/bold]",
            "",
            f"  {self.keybinds.get('search', 'slash'):<14} Search",
            f"  {self.keybinds.get('quit', 'q'):<14} Quit",
            f"  {'j/k, up/down':<14} Up/Down",
            f"  {'enter':<14} Select",
            f"  {self.keybinds.get('top', 'g')}/{self.keybinds.get('bottom', 'G'):<12} Top/Bottom",
            f"  {'escape':<14} Clear input",
            f"  {self.keybinds.get('tab_next', 'right')}/{self.keybinds.get('tab_prev', 'left'):<8} Tab next/prev",
            f"  {self.keybinds.get('help', 'question_mark'):<14} Help",
            "",
            "Search by account_id or SteamID64 only.",
            "Example: 135664392",
        ]
        with Container(id="help-dialog"):
            yield Static("\n".join(lines))

    def on_key(self, event) -> None:
        event.stop()
        self.dismiss(None)


class DotaDashboard(App):
    """dotatui Textual application.

    Receives fetch results from the event bus and renders AppState.
    """

    TITLE = "dotatui"
    SUB_TITLE = "TUI data explorer powered by OpenDota"

    CSS = """
    #body {
        height: 1fr;
    }

    #sidebar {
        width: 36;
    }

    #profile, #recent, #quick-stats, #stats-summary, #winrate-box {
        border: round $accent;
        height: auto;
        padding: 0 1;
    }

    #avatar {
        border: round $accent;
        height: 12;
    }

    #recent {
        height: 9;
    }

    #search-input {
        dock: top;
        display: none;
    }

    #hero-art {
        border: round $accent;
        width: 24;
        height: 9;
    }

    .item-slot {
        border: round $secondary;
        width: 10;
        height: 5;
    }

    #loadout {
        height: 5;
    }

    #matches-table {
        height: 1fr;
    }

    #detail-table {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: 2;
    }
    """

    BINDINGS = [
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("escape", "cancel_search", "Cancel", show=False),
    ]

    def __init__(self, config: dict, orchestrator: TaskOrchestrator,
                 initial_account: Optional[int] = None):
        """Initialize the dashboard.

        Args:
            config: Configuration dictionary
            orchestrator: TaskOrchestrator wired to the client, bus and reducer
            initial_account: Account id to search for on startup
        """
        super().__init__()
        self.config = config
        self.orchestrator = orchestrator
        self.reducer = orchestrator.reducer
        self.state = orchestrator.reducer.state
        self.event_bus = orchestrator.event_bus
        self.initial_account = initial_account
        self.keybinds = dict(config.get('keybinds', {}))

        self._dirty = True
        self._shown_matches = None
        self._shown_detail = None
        self._shown_recent: Tuple[int, ...] = ()

        self._bind_configured_keys()

    def _bind_configured_keys(self) -> None:
        actions = {
            'search': ("start_search", "Search"),
            'quit': ("quit", "Quit"),
            'help': ("help", "Help"),
            'tab_next': ("tab_next", "Next tab"),
            'tab_prev': ("tab_prev", "Prev tab"),
            'top': ("top", "Top"),
            'bottom': ("bottom", "Bottom"),
        }
        for name, (action, description) in actions.items():
            key = self.keybinds.get(name)
            if key:
                self.bind(key, action, description=description,
                          show=name in ('search', 'quit', 'help'))

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Enter a SteamID64 or account_id", id="search-input")

        with Horizontal(id="body"):
            with Vertical(id="sidebar"):
                yield Static(id="profile")
                yield Static(id="avatar")
                yield ListView(id="recent")

            with TabbedContent(initial="overview"):
                with TabPane("Overview", id="overview"):
                    yield Static(id="quick-stats")
                    yield Static(id="winrate-box")
                with TabPane("Matches", id="matches"):
                    yield DataTable(id="matches-table")
                    with Horizontal():
                        yield Static(id="hero-art")
                        with Horizontal(id="loadout"):
                            for slot in range(LOADOUT_SLOTS):
                                yield Static(id=f"item-{slot}", classes="item-slot")
                    yield DataTable(id="detail-table")
                with TabPane("Stats", id="stats"):
                    yield Static(id="stats-summary")

        with Vertical(id="status-bar"):
            yield Static(id="status-text")
            yield ProgressBar(id="net-progress", total=1, show_eta=False, show_percentage=False)

        yield Footer()

    def on_mount(self) -> None:
        """Start background work after the UI is mounted."""
        self.query_one("#profile", Static).border_title = "Profile"
        self.query_one("#avatar", Static).border_title = "Avatar"
        self.query_one("#recent", ListView).border_title = "Recent"
        self.query_one("#quick-stats", Static).border_title = "Quick stats"
        self.query_one("#winrate-box", Static).border_title = "Winrate"
        self.query_one("#stats-summary", Static).border_title = "Summary"
        self.query_one("#hero-art", Static).border_title = "Hero"

        matches = self.query_one("#matches-table", DataTable)
        matches.cursor_type = "row"
        matches.add_columns("Hero", "W/L", "Mode", "Dur", "Time", "K", "D", "A")

        detail = self.query_one("#detail-table", DataTable)
        detail.cursor_type = "row"
        detail.add_columns("Side", "Player", "Hero", "K", "D", "A", "GPM", "XPM", "NET", "Items")

        self.run_worker(self.event_bus.process_events(self.handle_event), name="event_processor")
        self.set_interval(0.2, self._tick)

        if self.initial_account is not None:
            self.orchestrator.start_search(self.initial_account)
        self.orchestrator.start_heroes()

        logger.info("dotatui UI mounted")

    async def on_unmount(self) -> None:
        await self.orchestrator.shutdown()
        await self.event_bus.stop(grace=0.2)
        await self.orchestrator.client.client.aclose()

    # ========================================================================
    # Event and render loop
    # ========================================================================

    def handle_event(self, event) -> None:
        """Single consumer of the event bus."""
        self.orchestrator.handle_event(event)
        self._dirty = True

    def _tick(self) -> None:
        self.orchestrator.ensure_asset_maps()
        if self._dirty or self.state.image_reset:
            self._dirty = False
            self.refresh_view()
            self.call_after_refresh(self._draw_images)

    def refresh_view(self) -> None:
        state = self.state

        self.query_one("#profile", Static).update(profile_text(state.profile, state.loading))
        self.query_one("#quick-stats", Static).update(quick_stats(state.matches))
        self.query_one("#stats-summary", Static).update(stats_summary(state.matches))

        winrate = compute_winrate(state.matches)
        spark = create_sparkline(build_sparkline(state.matches))
        self.query_one("#winrate-box", Static).update(
            f"{winrate * 100:.0f}%\nRecent results\n{spark}"
        )

        net = state.net
        self.query_one("#status-text", Static).update(
            Text(progress_line(state.status, net.done, net.total, net.last_ms, state.serving_stale))
        )
        self.query_one("#net-progress", ProgressBar).update(
            total=max(net.total, 1), progress=min(net.done, max(net.total, 1))
        )

        if self._shown_matches is not state.matches:
            self._shown_matches = state.matches
            self._fill_matches()

        if self._shown_detail is not state.match_detail:
            self._shown_detail = state.match_detail
            self._fill_detail()

        recent_ids = tuple(entry.account_id for entry in state.recent)
        if recent_ids != self._shown_recent:
            self._shown_recent = recent_ids
            self._fill_recent()

    def _fill_matches(self) -> None:
        table = self.query_one("#matches-table", DataTable)
        table.clear()
        for match in self.state.matches:
            result = format_result(match)
            table.add_row(
                self.state.hero_name(match.hero_id),
                Text(result, style="green" if result == "W" else "red"),
                format_game_mode(match.game_mode),
                format_duration(match.duration),
                format_relative_time(match.start_time),
                str(match.kills if match.kills is not None else "-"),
                str(match.deaths if match.deaths is not None else "-"),
                str(match.assists if match.assists is not None else "-"),
                key=str(match.match_id),
            )
        if self.state.match_cursor is not None:
            table.move_cursor(row=self.state.match_cursor)

    def _fill_detail(self) -> None:
        table = self.query_one("#detail-table", DataTable)
        table.clear()
        detail = self.state.match_detail
        if detail is None:
            return
        for player in detail.players:
            name = player.personaname or ("Anonymous" if player.account_id is None else str(player.account_id))
            kda = format_kda(player.kills, player.deaths, player.assists).split("/")
            table.add_row(
                "Radiant" if player.is_radiant else "Dire",
                truncate_text(name, 18),
                self.state.hero_name(player.hero_id),
                *kda,
                str(player.gold_per_min or "-"),
                str(player.xp_per_min or "-"),
                str(player.net_worth or "-"),
                str(len(player.items)),
            )

    def _fill_recent(self) -> None:
        recent = self.query_one("#recent", ListView)
        recent.clear()
        if not self.state.recent:
            recent.append(ListItem(Label("No recent searches")))
            return
        for entry in self.state.recent:
            recent.append(ListItem(
                Label(f"{truncate_text(entry.personaname, 20)} ({entry.account_id})"),
                name=str(entry.account_id),
            ))

    # ========================================================================
    # Inline images
    # ========================================================================

    def image_targets(self) -> List[ImageTarget]:
        state = self.state
        targets: List[ImageTarget] = []

        if state.avatar_url:
            area = widget_area(self.query_one("#avatar", Static))
            if area:
                targets.append((state.avatar_url, area))

        if self.query_one(TabbedContent).active != "matches":
            return targets

        selected = state.selected_match()
        if selected is not None:
            url = state.hero_images.get(selected.hero_id)
            area = widget_area(self.query_one("#hero-art", Static))
            if url and area:
                targets.append((url, area))

        if state.match_detail is not None:
            player = state.match_detail.find_player(state.account_id)
            items = player.items if player else []
            for slot, item_id in enumerate(items[:LOADOUT_SLOTS]):
                url = state.item_images.get(item_id)
                area = widget_area(self.query_one(f"#item-{slot}", Static))
                if url and area:
                    targets.append((url, area))

        return targets

    def _draw_images(self) -> None:
        if self.screen is not self.screen_stack[0]:
            return
        sequence = self.orchestrator.render_images(self.image_targets())
        if sequence and sys.__stdout__ is not None:
            sys.__stdout__.write(sequence)
            sys.__stdout__.flush()

    # ========================================================================
    # Widget messages
    # ========================================================================

    def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        event.input.display = False
        event.input.value = ""
        if not value:
            self.reducer.set_status("Enter a SteamID64 or account_id")
        else:
            try:
                account_id = parse_account_id(value)
            except AccountIdError:
                self.reducer.set_status("Use account_id or SteamID64")
            else:
                self.orchestrator.start_search(account_id)
        self.query_one("#matches-table", DataTable).focus()
        self._dirty = True

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if event.item.name:
            self.orchestrator.start_search(int(event.item.name))
            self._dirty = True

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table.id == "matches-table":
            self.reducer.select_match(event.cursor_row)
            self._dirty = True

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id != "matches-table":
            return
        self.reducer.select_match(event.cursor_row)
        selected = self.state.selected_match()
        if selected is not None:
            self.orchestrator.start_match_detail(selected.match_id)
            self._dirty = True

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        self.reducer.request_image_reset()
        self._dirty = True

    # ========================================================================
    # Actions
    # ========================================================================

    def action_start_search(self) -> None:
        search = self.query_one("#search-input", Input)
        search.display = True
        search.focus()

    def action_cancel_search(self) -> None:
        search = self.query_one("#search-input", Input)
        if search.display:
            search.display = False
            search.value = ""
            self.reducer.set_status("Search cancelled")
            self._dirty = True

    def action_help(self) -> None:
        self.reducer.request_image_reset()
        self.push_screen(HelpScreen(self.keybinds))

    def _switch_tab(self, step: int) -> None:
        tabs = self.query_one(TabbedContent)
        current = TAB_IDS.index(tabs.active) if tabs.active in TAB_IDS else 0
        tabs.active = TAB_IDS[(current + step) % len(TAB_IDS)]

    def action_tab_next(self) -> None:
        self._switch_tab(1)

    def action_tab_prev(self) -> None:
        self._switch_tab(-1)

    def _sync_cursor(self) -> None:
        if self.state.match_cursor is not None:
            self.query_one("#matches-table", DataTable).move_cursor(row=self.state.match_cursor)
        self._dirty = True

    def action_cursor_down(self) -> None:
        self.reducer.move_cursor(1)
        self._sync_cursor()

    def action_cursor_up(self) -> None:
        self.reducer.move_cursor(-1)
        self._sync_cursor()

    def action_top(self) -> None:
        self.reducer.select_match(0)
        self._sync_cursor()

    def action_bottom(self) -> None:
        self.reducer.select_match(len(self.state.matches) - 1)
        self._sync_cursor()
