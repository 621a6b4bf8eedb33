"""Typed records for OpenDota API payloads."""

from dataclasses import dataclass, field
from typing import List, Optional

RADIANT_SLOT_LIMIT = 128


@dataclass(frozen=True)
class PlayerProfile:
    """Steam profile block nested in /players/{account_id}."""
    personaname: Optional[str] = None
    steamid: Optional[str] = None
    avatar: Optional[str] = None
    avatarmedium: Optional[str] = None
    avatarfull: Optional[str] = None

    @property
    def best_avatar(self) -> Optional[str]:
        """First non-empty avatar URL in full, medium, basic order."""
        for url in (self.avatarfull, self.avatarmedium, self.avatar):
            if url:
                return url
        return None


@dataclass(frozen=True)
class PlayerResponse:
    """Response of /players/{account_id}."""
    profile: Optional[PlayerProfile] = None
    mmr_estimate: Optional[int] = None

    @property
    def avatar_url(self) -> Optional[str]:
        return self.profile.best_avatar if self.profile else None

    @property
    def personaname(self) -> Optional[str]:
        return self.profile.personaname if self.profile else None


@dataclass(frozen=True)
class PlayerMatch:
    """One entry of a player's recent match list."""
    match_id: int
    player_slot: int
    radiant_win: bool
    duration: int
    hero_id: int
    start_time: Optional[int] = None
    game_mode: Optional[int] = None
    kills: Optional[int] = None
    deaths: Optional[int] = None
    assists: Optional[int] = None

    @property
    def is_radiant(self) -> bool:
        return self.player_slot < RADIANT_SLOT_LIMIT

    @property
    def is_win(self) -> bool:
        return self.is_radiant == self.radiant_win


@dataclass(frozen=True)
class MatchPlayer:
    """Per-player record inside a match detail."""
    account_id: Optional[int] = None
    personaname: Optional[str] = None
    hero_id: Optional[int] = None
    player_slot: Optional[int] = None
    items: List[int] = field(default_factory=list)
    kills: Optional[int] = None
    deaths: Optional[int] = None
    assists: Optional[int] = None
    gold_per_min: Optional[int] = None
    xp_per_min: Optional[int] = None
    net_worth: Optional[int] = None

    @property
    def is_radiant(self) -> bool:
        return self.player_slot is not None and self.player_slot < RADIANT_SLOT_LIMIT


@dataclass(frozen=True)
class MatchDetail:
    """Response of /matches/{match_id}."""
    players: List[MatchPlayer]
    match_id: Optional[int] = None
    radiant_win: Optional[bool] = None
    duration: Optional[int] = None

    def account_ids(self) -> List[int]:
        """Distinct non-anonymous account ids, in roster order."""
        seen = []
        for player in self.players:
            if player.account_id is not None and player.account_id not in seen:
                seen.append(player.account_id)
        return seen

    def find_player(self, account_id: Optional[int]) -> Optional[MatchPlayer]:
        if account_id is None:
            return None
        for player in self.players:
            if player.account_id == account_id:
                return player
        return None


@dataclass(frozen=True)
class AssetConstant:
    """Hero or item constant: numeric id and relative image path."""
    id: int
    img: Optional[str] = None
