"""Event types delivered from fetch tasks to the reducer.

Each event is produced by exactly one task and consumed exactly once. Events
carrying a result either hold the value with error=None, or no value and an
error string.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from dotatui.api.models import MatchDetail, PlayerMatch, PlayerResponse


@dataclass(frozen=True)
class HeroesLoadedEvent:
    """Emitted when /heroStats resolves.

    Attributes:
        heroes: Hero id -> localized name
        error: Failure description, if the request failed
    """
    heroes: Optional[Dict[int, str]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class HeroImagesLoadedEvent:
    """Hero id -> absolute image URL, or the failure."""
    images: Optional[Dict[int, str]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ItemImagesLoadedEvent:
    """Item id -> absolute image URL, or the failure."""
    images: Optional[Dict[int, str]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SearchLoadedEvent:
    """Emitted once both halves of a search have finished.

    Profile and matches fail independently; both errors are carried.

    Attributes:
        account_id: Account the search was started for
        profile: Player profile, None if the profile request failed
        matches: Recent matches (empty on failure)
        profile_error: Profile failure description
        match_error: Match list failure description
        error: Set when the search as a whole failed
    """
    account_id: int
    profile: Optional[PlayerResponse] = None
    matches: List[PlayerMatch] = field(default_factory=list)
    profile_error: Optional[str] = None
    match_error: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class MatchDetailLoadedEvent:
    detail: Optional[MatchDetail] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ImageLoadedEvent:
    """Emitted when one image URL has been fetched and normalized to PNG.

    Attributes:
        url: Source URL (the cache key)
        data: PNG bytes
        error: Failure description
    """
    url: str
    data: Optional[bytes] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class PlayerAvatarLoadedEvent:
    """Avatar URL lookup for one player seen in a match detail."""
    account_id: int
    url: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class NetworkTimingEvent:
    """Emitted after every counted operation's result event.

    Attributes:
        elapsed_ms: Wall time of the operation in milliseconds
    """
    elapsed_ms: int


@dataclass(frozen=True)
class StaleDataEvent:
    """A cached response past its TTL was served after fetch failures."""
    key: str


Event = Union[
    HeroesLoadedEvent,
    HeroImagesLoadedEvent,
    ItemImagesLoadedEvent,
    SearchLoadedEvent,
    MatchDetailLoadedEvent,
    ImageLoadedEvent,
    PlayerAvatarLoadedEvent,
    NetworkTimingEvent,
    StaleDataEvent,
]
