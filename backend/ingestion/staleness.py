"""
Staleness thresholds per entity kind.

A threshold of None means "never refetch": completed tournaments, completed or
abandoned matches. The live threshold depends on provider quota headroom.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Iterable, Optional

from ingestion.schema import (
    BasicMatch,
    MatchStatus,
    RateLimitInfo,
    Tournament,
    TournamentStatus,
)


class EntityKind(str, Enum):
    TOURNAMENT = "tournament"
    TOURNAMENT_LIST = "tournament_list"
    MATCH = "match"
    MATCH_LIST = "match_list"
    LIVE_SCORE = "live_score"
    TEAM = "team"
    PLAYER = "player"
    SQUAD = "squad"
    PLAYER_CAREER = "player_career"
    MATCH_STATS = "match_stats"


def _min_threshold(values: Iterable[Optional[timedelta]]) -> Optional[timedelta]:
    finite = [v for v in values if v is not None]
    return min(finite) if finite else None


@dataclass(frozen=True)
class StalenessPolicy:
    tournament_active: timedelta = timedelta(hours=6)
    match_upcoming: timedelta = timedelta(hours=1)
    match_live: timedelta = timedelta(seconds=30)
    match_live_low_quota: timedelta = timedelta(hours=1)
    player: timedelta = timedelta(hours=24)
    team: timedelta = timedelta(days=7)
    live_quota_headroom: int = 20

    def live(self, rate_limit: Optional[RateLimitInfo]) -> timedelta:
        """30 seconds only while the provider still has headroom; otherwise poll hourly."""
        if rate_limit is None or rate_limit.remaining >= self.live_quota_headroom:
            return self.match_live
        return self.match_live_low_quota

    def for_tournament(self, tournament: Tournament) -> Optional[timedelta]:
        if tournament.status == TournamentStatus.COMPLETED:
            return None
        return self.tournament_active

    def for_tournament_list(self, tournaments: Iterable[Tournament]) -> Optional[timedelta]:
        items = list(tournaments)
        if not items:
            return self.tournament_active
        return _min_threshold(self.for_tournament(t) for t in items)

    def for_match_status(
        self, status: MatchStatus, rate_limit: Optional[RateLimitInfo] = None
    ) -> Optional[timedelta]:
        if status.finished:
            return None
        if status.in_play:
            return self.live(rate_limit)
        return self.match_upcoming

    def for_match(self, match: BasicMatch, rate_limit: Optional[RateLimitInfo] = None) -> Optional[timedelta]:
        return self.for_match_status(match.status, rate_limit)

    def for_match_list(
        self, matches: Iterable[BasicMatch], rate_limit: Optional[RateLimitInfo] = None
    ) -> Optional[timedelta]:
        """A list is as short-lived as its most volatile match."""
        items = list(matches)
        if not items:
            return self.match_upcoming
        return _min_threshold(self.for_match(m, rate_limit) for m in items)

    def for_match_stats(
        self,
        finalized: bool,
        match_status: Optional[MatchStatus],
        rate_limit: Optional[RateLimitInfo] = None,
    ) -> Optional[timedelta]:
        if finalized:
            return None
        if match_status is None:
            return self.match_upcoming
        if match_status.finished:
            # One more fetch freezes the figures.
            return timedelta(0)
        return self.for_match_status(match_status, rate_limit)

    def for_kind(self, kind: EntityKind) -> Optional[timedelta]:
        """Fixed thresholds for kinds that do not depend on payload state."""
        if kind in (EntityKind.PLAYER, EntityKind.SQUAD, EntityKind.PLAYER_CAREER):
            return self.player
        if kind == EntityKind.TEAM:
            return self.team
        raise ValueError(f"threshold for {kind.value} depends on payload state")
