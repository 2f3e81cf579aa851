"""
Abstract base for cricket data providers.

Subclasses implement the fetch operations; this base owns the daily quota
counter and its reset time, which every implementation must keep current.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from core.errors import QuotaExhausted
from core.timeutil import next_utc_midnight, utc_now
from ingestion.schema import (
    BasicMatch,
    CareerStats,
    LiveMatch,
    MatchStatus,
    Player,
    PlayerMatchStats,
    PlayerRole,
    RateLimitInfo,
    TeamRef,
    Tournament,
)


class CricketAPIProvider(ABC):
    """Provider interface consumed by the staleness cache and the sync service."""

    name: str = "provider"

    def __init__(self, daily_limit: int = 100, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._limit = daily_limit
        self._remaining = daily_limit
        self._reset_at = next_utc_midnight(clock())

    def get_rate_limit_info(self) -> RateLimitInfo:
        self._roll_quota_window()
        return RateLimitInfo(remaining=self._remaining, limit=self._limit, reset_at=self._reset_at)

    def update_rate_limit(
        self,
        remaining: Optional[int] = None,
        reset_at: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> None:
        """Record whatever quota signal the transport returned."""
        if limit is not None:
            self._limit = limit
        if remaining is not None:
            self._remaining = max(0, remaining)
        if reset_at is not None:
            self._reset_at = reset_at

    def _roll_quota_window(self) -> None:
        now = self._clock()
        if now >= self._reset_at:
            self._remaining = self._limit
            self._reset_at = next_utc_midnight(now)

    def _consume_quota(self) -> None:
        """Charge one request; raise QuotaExhausted instead of calling out when the budget is gone."""
        self._roll_quota_window()
        if self._remaining <= 0:
            raise QuotaExhausted(
                f"{self.name}: daily request quota exhausted until {self._reset_at.isoformat()}",
                reset_at=self._reset_at,
            )
        self._remaining -= 1

    # Tournaments
    @abstractmethod
    async def get_tournaments(self) -> List[Tournament]:
        ...

    @abstractmethod
    async def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        ...

    # Matches
    @abstractmethod
    async def get_matches(
        self,
        tournament_id: Optional[str] = None,
        status: Optional[MatchStatus] = None,
    ) -> List[BasicMatch]:
        ...

    @abstractmethod
    async def get_match(self, match_id: str) -> Optional[BasicMatch]:
        ...

    @abstractmethod
    async def get_live_score(self, match_id: str) -> Optional[LiveMatch]:
        ...

    # Teams and players
    @abstractmethod
    async def get_team(self, team_id: str) -> Optional[TeamRef]:
        ...

    @abstractmethod
    async def get_players(
        self,
        team_id: Optional[str] = None,
        role: Optional[PlayerRole] = None,
        search: Optional[str] = None,
    ) -> List[Player]:
        ...

    @abstractmethod
    async def get_player(self, player_id: str) -> Optional[Player]:
        ...

    @abstractmethod
    async def get_squad(self, team_id: str, tournament_id: Optional[str] = None) -> List[Player]:
        ...

    @abstractmethod
    async def get_player_career_stats(self, player_id: str) -> Optional[CareerStats]:
        ...

    # Statistics
    async def get_player_match_stats(self, match_id: str, player_id: str) -> Optional[PlayerMatchStats]:
        for stats in await self.get_all_player_match_stats(match_id):
            if stats.player_id == player_id:
                return stats
        return None

    @abstractmethod
    async def get_all_player_match_stats(self, match_id: str) -> List[PlayerMatchStats]:
        ...

    async def aclose(self) -> None:
        """Release transport resources (no-op by default)."""
        return None
