"""
Reducer: the only code that mutates AppState.

apply() consumes one event at a time in receipt order and returns the
follow-up fetches it derived. Events for entities that are no longer current
must leave the displayed state alone.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from dotatui.api.models import PlayerResponse
from dotatui.ui.events import (
    HeroImagesLoadedEvent,
    HeroesLoadedEvent,
    ImageLoadedEvent,
    ItemImagesLoadedEvent,
    MatchDetailLoadedEvent,
    NetworkTimingEvent,
    PlayerAvatarLoadedEvent,
    SearchLoadedEvent,
    StaleDataEvent,
)
from dotatui.workflow.persistence import Persistence
from dotatui.workflow.state import AppState, Followup, SearchEntry

logger = logging.getLogger(__name__)


class Reducer:
    """Applies events and user actions to AppState."""

    def __init__(self, state: AppState, persistence: Optional[Persistence] = None,
                 recent_limit: int = 5):
        self.state = state
        self.persistence = persistence
        self.recent_limit = recent_limit

        self._handlers: Dict[type, Callable] = {
            HeroesLoadedEvent: self._on_heroes,
            HeroImagesLoadedEvent: self._on_hero_images,
            ItemImagesLoadedEvent: self._on_item_images,
            SearchLoadedEvent: self._on_search,
            MatchDetailLoadedEvent: self._on_match_detail,
            ImageLoadedEvent: self._on_image,
            PlayerAvatarLoadedEvent: self._on_player_avatar,
            NetworkTimingEvent: self._on_timing,
            StaleDataEvent: self._on_stale,
        }

    # ------------------------------------------------------------------
    # startup and user actions
    # ------------------------------------------------------------------

    def load_persisted(self) -> None:
        """Pre-populate recent searches and avatars from disk."""
        if self.persistence is None:
            return
        self.state.recent = self.persistence.load_recent(self.recent_limit)
        self.state.player_avatars = self.persistence.load_avatar_map()

    def begin_requests(self, count: int = 1) -> None:
        """Count operations that will each end with a NetworkTimingEvent."""
        self.state.net.total += count
        self.state.net.inflight += count

    def begin_search(self, account_id: int) -> None:
        state = self.state
        state.loading = True
        state.detail_loading = False
        state.account_id = account_id
        state.profile = None
        state.matches = []
        state.match_cursor = None
        state.match_detail = None
        state.avatar_url = None
        state.avatar_requests.clear()
        state.image_reset = True
        state.serving_stale = False
        self._reset_counters(1)
        state.status = f"Loading player {account_id}..."

    def begin_match_detail(self, match_id: int) -> None:
        self.state.detail_loading = True
        self.state.serving_stale = False
        self._reset_counters(1)
        self.state.status = f"Loading match {match_id}..."

    def begin_asset_maps(self) -> Tuple[bool, bool]:
        """
        Claim the one-time hero/item image map loads.

        Returns:
            (load_hero_images, load_item_images)
        """
        state = self.state
        if state.profile is None:
            return False, False

        heroes = not state.hero_images and not state.requested_hero_images
        items = not state.item_images and not state.requested_item_images
        if heroes:
            state.requested_hero_images = True
            self.begin_requests()
        if items:
            state.requested_item_images = True
            self.begin_requests()
        return heroes, items

    def begin_image_fetch(self, url: str) -> bool:
        """Mark url in flight; False if it already was."""
        if url in self.state.image_requests:
            return False
        self.state.image_requests.add(url)
        return True

    def cache_image(self, url: str, data: bytes) -> None:
        self.state.image_cache.put(url, data)

    def set_status(self, message: str) -> None:
        self.state.status = message

    def move_cursor(self, delta: int) -> None:
        if not self.state.matches:
            self.state.match_cursor = None
            return
        current = self.state.match_cursor or 0
        self.state.match_cursor = max(0, min(current + delta, len(self.state.matches) - 1))

    def select_match(self, index: int) -> None:
        if 0 <= index < len(self.state.matches):
            self.state.match_cursor = index

    def take_image_reset(self) -> bool:
        """Return and clear the pending kitty reset flag."""
        pending = self.state.image_reset
        self.state.image_reset = False
        return pending

    def request_image_reset(self) -> None:
        self.state.image_reset = True

    def _reset_counters(self, total: int) -> None:
        net = self.state.net
        net.total = total
        net.done = 0
        net.inflight = total
        net.last_ms = None

    # ------------------------------------------------------------------
    # events
    # ------------------------------------------------------------------

    def apply(self, event) -> Followup:
        """
        Apply one event.

        Raises:
            TypeError: Event type is not part of the protocol
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unhandled event type: {type(event).__name__}")
        return handler(event) or Followup()

    def _on_heroes(self, event: HeroesLoadedEvent) -> None:
        if event.error is not None:
            self.state.status = f"Hero load failed: {event.error}"
            return
        self.state.heroes = dict(event.heroes or {})
        self.state.status = "Hero data loaded"

    def _on_hero_images(self, event: HeroImagesLoadedEvent) -> None:
        if event.error is not None:
            self.state.status = f"Hero load failed: {event.error}"
            return
        self.state.hero_images = dict(event.images or {})

    def _on_item_images(self, event: ItemImagesLoadedEvent) -> None:
        if event.error is not None:
            self.state.status = f"Hero load failed: {event.error}"
            return
        self.state.item_images = dict(event.images or {})

    def _on_search(self, event: SearchLoadedEvent) -> Followup:
        state = self.state
        if state.account_id is not None and event.account_id != state.account_id:
            logger.debug(
                f"Dropping search result for {event.account_id}, "
                f"current account is {state.account_id}"
            )
            return Followup()

        state.loading = False
        if event.error is not None:
            state.status = f"Search failed: {event.error}"
            return Followup()

        state.account_id = event.account_id
        state.profile = event.profile
        state.matches = list(event.matches)

        state.avatar_url = self._profile_avatar(event.profile)
        if state.avatar_url is None:
            state.avatar_url = state.player_avatars.get(event.account_id)

        followup = Followup()
        if state.avatar_url is not None:
            if state.player_avatars.get(event.account_id) != state.avatar_url:
                state.player_avatars[event.account_id] = state.avatar_url
                self._save_avatars()
            followup.image_urls.append(state.avatar_url)

        if event.match_error is not None:
            state.match_cursor = None
            state.status = f"Matches load failed: {event.match_error}"
        elif not state.matches:
            state.match_cursor = None
            state.status = "No matches found"
        else:
            state.match_cursor = 0
            state.status = "Matches loaded. Use j/k and Enter for details"

        if event.profile_error is not None:
            state.status = f"Profile load failed: {event.profile_error}"

        if event.profile is not None and event.profile.profile is not None:
            self._push_recent(SearchEntry(
                account_id=event.account_id,
                personaname=event.profile.personaname or "Unknown",
                avatar_url=self._profile_avatar(event.profile),
            ))

        return followup

    def _on_match_detail(self, event: MatchDetailLoadedEvent) -> Followup:
        state = self.state
        state.detail_loading = False
        if event.error is not None:
            state.status = f"Match load failed: {event.error}"
            return Followup()

        state.match_detail = event.detail
        state.status = "Match details loaded"

        if self.persistence is not None:
            for account_id, url in self.persistence.load_avatar_map().items():
                state.player_avatars.setdefault(account_id, url)

        missing = []
        for account_id in event.detail.account_ids():
            if account_id in state.player_avatars or account_id in state.avatar_requests:
                continue
            state.avatar_requests.add(account_id)
            missing.append(account_id)

        return Followup(avatar_account_ids=missing)

    def _on_image(self, event: ImageLoadedEvent) -> None:
        self.state.image_requests.discard(event.url)
        if event.error is not None or event.data is None:
            self.state.status = f"Image load failed: {event.error}"
            return
        self.state.image_cache.put(event.url, event.data)

    def _on_player_avatar(self, event: PlayerAvatarLoadedEvent) -> None:
        self.state.avatar_requests.discard(event.account_id)
        if event.error is not None:
            logger.debug(f"Avatar lookup failed for {event.account_id}: {event.error}")
            return
        if event.url and self.state.player_avatars.get(event.account_id) != event.url:
            self.state.player_avatars[event.account_id] = event.url
            self._save_avatars()

    def _on_timing(self, event: NetworkTimingEvent) -> None:
        net = self.state.net
        net.last_ms = event.elapsed_ms
        if net.inflight > 0:
            net.inflight -= 1
        net.done += 1

    def _on_stale(self, event: StaleDataEvent) -> None:
        self.state.serving_stale = True
        logger.info(f"Serving stale data: {event.key}")

    # ------------------------------------------------------------------

    @staticmethod
    def _profile_avatar(response: Optional[PlayerResponse]) -> Optional[str]:
        if response is None:
            return None
        return response.avatar_url

    def _save_avatars(self) -> None:
        if self.persistence is not None:
            self.persistence.save_avatar_map(self.state.player_avatars)

    def _push_recent(self, entry: SearchEntry) -> None:
        if self.persistence is not None:
            self.persistence.append_recent(entry)
        recent: List[SearchEntry] = [
            item for item in self.state.recent if item.account_id != entry.account_id
        ]
        recent.insert(0, entry)
        self.state.recent = recent[:self.recent_limit]
