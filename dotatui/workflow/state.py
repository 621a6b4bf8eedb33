"""UI state mutated by the reducer."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from dotatui.api.models import MatchDetail, PlayerMatch, PlayerResponse
from dotatui.media.image_cache import MemoryImageCache


@dataclass
class SearchEntry:
    """One line of recent.jsonl."""
    account_id: int
    personaname: str
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'account_id': self.account_id,
            'personaname': self.personaname,
            'avatar_url': self.avatar_url,
        }


@dataclass
class NetworkCounters:
    """Progress of the counted operations started by the last user action."""
    total: int = 0
    done: int = 0
    inflight: int = 0
    last_ms: Optional[int] = None

    @property
    def settled(self) -> bool:
        return self.inflight == 0 and self.done >= self.total

    @property
    def ratio(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(self.done / self.total, 1.0)


@dataclass
class Followup:
    """Fetches the reducer wants started after applying an event."""
    image_urls: List[str] = field(default_factory=list)
    avatar_account_ids: List[int] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.image_urls or self.avatar_account_ids)


@dataclass
class AppState:
    """
    Everything the dashboard renders.

    Only the reducer writes these fields. Image caches and the in-flight
    tracking sets are touched from the UI loop alone, so they carry no lock.
    """
    status: str = "Press / to search by SteamID64 or account_id"
    account_id: Optional[int] = None
    profile: Optional[PlayerResponse] = None
    matches: List[PlayerMatch] = field(default_factory=list)
    match_cursor: Optional[int] = None
    match_detail: Optional[MatchDetail] = None
    loading: bool = False
    detail_loading: bool = False

    heroes: Dict[int, str] = field(default_factory=dict)
    hero_images: Dict[int, str] = field(default_factory=dict)
    item_images: Dict[int, str] = field(default_factory=dict)
    requested_hero_images: bool = False
    requested_item_images: bool = False

    avatar_url: Optional[str] = None
    player_avatars: Dict[int, str] = field(default_factory=dict)
    avatar_requests: Set[int] = field(default_factory=set)

    image_cache: MemoryImageCache = field(default_factory=MemoryImageCache)
    image_requests: Set[str] = field(default_factory=set)
    image_reset: bool = False

    recent: List[SearchEntry] = field(default_factory=list)
    net: NetworkCounters = field(default_factory=NetworkCounters)
    serving_stale: bool = False

    def selected_match(self) -> Optional[PlayerMatch]:
        if self.match_cursor is None:
            return None
        if 0 <= self.match_cursor < len(self.matches):
            return self.matches[self.match_cursor]
        return None

    def hero_name(self, hero_id: Optional[int]) -> str:
        if hero_id is None:
            return "Unknown"
        return self.heroes.get(hero_id, "Unknown")

    @property
    def avatar_loading(self) -> bool:
        return bool(self.image_requests)
