"""
Canonical, provider-agnostic schema for cricket data.

Every provider payload is normalized into these shapes at the connector
boundary; the cache, the store and the engines only ever see canonical data.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class MatchStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    INNINGS_BREAK = "innings_break"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def in_play(self) -> bool:
        return self in (MatchStatus.LIVE, MatchStatus.INNINGS_BREAK)

    @property
    def finished(self) -> bool:
        return self in (MatchStatus.COMPLETED, MatchStatus.ABANDONED)


class MatchFormat(str, Enum):
    T20 = "T20"
    ODI = "ODI"
    TEST = "Test"


class PlayerRole(str, Enum):
    BATSMAN = "batsman"
    BOWLER = "bowler"
    ALL_ROUNDER = "all-rounder"
    WICKET_KEEPER = "wicket-keeper"


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class TeamRef(BaseModel):
    """Real-world cricket team as referenced by a match or player."""

    id: str = Field(..., description="Provider external id")
    name: str
    short_name: str
    country: Optional[str] = None
    logo_url: Optional[str] = None


class ScoreSnapshot(BaseModel):
    runs: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0, le=10)
    overs: float = Field(0.0, ge=0)
    run_rate: float = Field(0.0, ge=0)
    innings: int = Field(1, ge=0)


class MatchScore(BaseModel):
    team_a: Optional[ScoreSnapshot] = None
    team_b: Optional[ScoreSnapshot] = None


class Tournament(BaseModel):
    id: str
    name: str
    short_name: str
    start_date: datetime
    end_date: datetime
    format: MatchFormat = MatchFormat.T20
    team_count: int = 0
    match_count: int = 0
    status: TournamentStatus = TournamentStatus.UPCOMING


class BasicMatch(BaseModel):
    """Match without ball-by-ball detail."""

    kind: Literal["basic"] = "basic"
    id: str
    name: str = ""
    format: MatchFormat = MatchFormat.T20
    status: MatchStatus = MatchStatus.UPCOMING
    venue: str = "TBD"
    start_time: datetime
    team_a: TeamRef
    team_b: TeamRef
    tournament_id: Optional[str] = None
    result: Optional[str] = None
    score: Optional[MatchScore] = None


class LiveBatsman(BaseModel):
    player_id: str
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: float = 0.0
    on_strike: bool = False


class LiveBowler(BaseModel):
    player_id: str
    name: str
    overs: float = 0.0
    maidens: int = 0
    runs: int = 0
    wickets: int = 0
    economy: float = 0.0


class LiveMatch(BasicMatch):
    """Match plus the in-play detail only a live score feed carries."""

    kind: Literal["live"] = "live"  # type: ignore[assignment]
    current_batsmen: List[LiveBatsman] = Field(default_factory=list)
    current_bowler: Optional[LiveBowler] = None
    recent_balls: List[str] = Field(default_factory=list)
    last_wicket: Optional[str] = None


MatchPayload = Annotated[Union[BasicMatch, LiveMatch], Field(discriminator="kind")]


class Player(BaseModel):
    id: str
    name: str
    role: PlayerRole = PlayerRole.BATSMAN
    team_id: Optional[str] = None
    batting_style: Optional[str] = None
    bowling_style: Optional[str] = None
    country: Optional[str] = None


class PlayerMatchStats(BaseModel):
    """One player's figures in one match. Missing figures default to zero."""

    player_id: str
    match_id: str

    runs: int = Field(0, ge=0)
    balls_faced: int = Field(0, ge=0)
    fours: int = Field(0, ge=0)
    sixes: int = Field(0, ge=0)
    strike_rate: float = 0.0
    is_out: bool = False
    dismissal: Optional[str] = None

    overs: float = Field(0.0, ge=0)
    maidens: int = Field(0, ge=0)
    runs_conceded: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0)
    economy: float = 0.0
    dot_balls: int = Field(0, ge=0)

    catches: int = Field(0, ge=0)
    stumpings: int = Field(0, ge=0)
    run_outs_direct: int = Field(0, ge=0)
    run_outs_assisted: int = Field(0, ge=0)


class FormatBatting(BaseModel):
    matches: Optional[float] = None
    innings: Optional[float] = None
    runs: Optional[float] = None
    average: Optional[float] = None
    strike_rate: Optional[float] = None
    high_score: Optional[float] = None
    fifties: Optional[float] = None
    hundreds: Optional[float] = None
    fours: Optional[float] = None
    sixes: Optional[float] = None
    not_outs: Optional[float] = None
    balls_faced: Optional[float] = None


class FormatBowling(BaseModel):
    matches: Optional[float] = None
    innings: Optional[float] = None
    balls: Optional[float] = None
    runs: Optional[float] = None
    wickets: Optional[float] = None
    average: Optional[float] = None
    economy: Optional[float] = None
    strike_rate: Optional[float] = None
    five_wickets: Optional[float] = None


class CareerStats(BaseModel):
    """Career aggregates keyed by format name (t20, t20i, odi, listA, fc, test)."""

    player_id: Optional[str] = None
    batting: Dict[str, FormatBatting] = Field(default_factory=dict)
    bowling: Dict[str, FormatBowling] = Field(default_factory=dict)


class RateLimitInfo(BaseModel):
    remaining: int
    limit: int
    reset_at: datetime

    def exhausted(self, now: datetime) -> bool:
        return self.remaining <= 0 and now < self.reset_at


class CacheSource(str, Enum):
    CACHE = "cache"
    API = "api"
    CACHE_THEN_REFRESH = "cache-then-background-refresh"


class MatchStatsSnapshot(BaseModel):
    """All player figures for one match; `finalized` once the match is over and the figures are frozen."""

    match_id: str
    finalized: bool = False
    stats: List[PlayerMatchStats] = Field(default_factory=list)


_BASIC_FIELDS = set(BasicMatch.model_fields) - {"kind"}


def basic_view(match: BasicMatch) -> BasicMatch:
    """Drop live-only detail from a match payload."""
    if type(match) is BasicMatch:
        return match
    return BasicMatch(**match.model_dump(include=_BASIC_FIELDS))
