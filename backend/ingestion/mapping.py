"""
Provider vocabulary -> canonical enums.

Exact matches on a known vocabulary first; substring heuristics second, because
providers put free text ("MI won by 5 wkts", "Innings Break") in status fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Optional

from ingestion.schema import (
    CareerStats,
    FormatBatting,
    FormatBowling,
    MatchFormat,
    MatchStatus,
    PlayerRole,
    TournamentStatus,
)

_EXACT_STATUS = {
    "upcoming": MatchStatus.UPCOMING,
    "scheduled": MatchStatus.UPCOMING,
    "fixture": MatchStatus.UPCOMING,
    "not started": MatchStatus.UPCOMING,
    "live": MatchStatus.LIVE,
    "in progress": MatchStatus.LIVE,
    "in_progress": MatchStatus.LIVE,
    "innings break": MatchStatus.INNINGS_BREAK,
    "innings_break": MatchStatus.INNINGS_BREAK,
    "completed": MatchStatus.COMPLETED,
    "complete": MatchStatus.COMPLETED,
    "finished": MatchStatus.COMPLETED,
    "result": MatchStatus.COMPLETED,
    "abandoned": MatchStatus.ABANDONED,
    "no result": MatchStatus.ABANDONED,
    "cancelled": MatchStatus.ABANDONED,
}

_EXACT_ROLE = {
    "batsman": PlayerRole.BATSMAN,
    "batter": PlayerRole.BATSMAN,
    "bowler": PlayerRole.BOWLER,
    "all-rounder": PlayerRole.ALL_ROUNDER,
    "allrounder": PlayerRole.ALL_ROUNDER,
    "batting allrounder": PlayerRole.ALL_ROUNDER,
    "bowling allrounder": PlayerRole.ALL_ROUNDER,
    "wicket-keeper": PlayerRole.WICKET_KEEPER,
    "wicketkeeper": PlayerRole.WICKET_KEEPER,
    "wk-batsman": PlayerRole.WICKET_KEEPER,
}


def map_match_status(
    status: Optional[str],
    started: Optional[bool] = None,
    ended: Optional[bool] = None,
) -> MatchStatus:
    """Map provider status text (plus optional started/ended flags) to MatchStatus."""
    text = (status or "").strip().lower()
    if text in _EXACT_STATUS:
        exact = _EXACT_STATUS[text]
        if ended and not exact.finished:
            return MatchStatus.COMPLETED
        return exact

    if "abandon" in text or "no result" in text or "cancel" in text:
        return MatchStatus.ABANDONED
    if ended:
        return MatchStatus.COMPLETED
    if "innings break" in text or "break" in text:
        return MatchStatus.INNINGS_BREAK
    if "live" in text or "in progress" in text or "ongoing" in text:
        return MatchStatus.LIVE
    if "result" in text or " won" in text or "won by" in text or "finished" in text or "drawn" in text:
        return MatchStatus.COMPLETED
    if started:
        return MatchStatus.LIVE
    return MatchStatus.UPCOMING


def map_player_role(role: Optional[str]) -> PlayerRole:
    """Map provider role strings ("WK-Batsman", "Bowling Allrounder", ...) to PlayerRole."""
    text = (role or "").strip().lower()
    if text in _EXACT_ROLE:
        return _EXACT_ROLE[text]
    if "keeper" in text or "wk" in text:
        return PlayerRole.WICKET_KEEPER
    if "all" in text or "rounder" in text:
        return PlayerRole.ALL_ROUNDER
    if "bowl" in text:
        return PlayerRole.BOWLER
    return PlayerRole.BATSMAN


def map_match_format(match_type: Optional[str]) -> MatchFormat:
    """Map provider match type to MatchFormat; unknown types count as T20."""
    text = (match_type or "").strip().lower()
    if "t20" in text:
        return MatchFormat.T20
    if "odi" in text or "one day" in text or "list a" in text:
        return MatchFormat.ODI
    if "test" in text or "first class" in text:
        return MatchFormat.TEST
    return MatchFormat.T20


def map_tournament_status(
    start_date: datetime,
    end_date: datetime,
    now: datetime,
    status: Optional[str] = None,
) -> TournamentStatus:
    """Tournament status from explicit provider text if any, else from the date window."""
    text = (status or "").strip().lower()
    if text:
        if "live" in text or "ongoing" in text or "active" in text:
            return TournamentStatus.ACTIVE
        if "completed" in text or "finished" in text or "ended" in text:
            return TournamentStatus.COMPLETED
        if "upcoming" in text or "scheduled" in text:
            return TournamentStatus.UPCOMING
    if now < start_date:
        return TournamentStatus.UPCOMING
    if now > end_date:
        return TournamentStatus.COMPLETED
    return TournamentStatus.ACTIVE


def overs_to_balls(overs: float) -> int:
    """Cricket notation: 3.2 overs is 3 overs and 2 balls."""
    whole = int(overs)
    return whole * 6 + round((overs - whole) * 10)


_CAREER_STAT_FIELDS = {
    "m": "matches",
    "mat": "matches",
    "inn": "innings",
    "inns": "innings",
    "runs": "runs",
    "avg": "average",
    "sr": "strike_rate",
    "hs": "high_score",
    "50s": "fifties",
    "50": "fifties",
    "100s": "hundreds",
    "100": "hundreds",
    "4s": "fours",
    "6s": "sixes",
    "no": "not_outs",
    "bf": "balls_faced",
    "b": "balls",
    "wkts": "wickets",
    "w": "wickets",
    "econ": "economy",
    "eco": "economy",
    "5w": "five_wickets",
}


def _leading_number(value: object) -> Optional[float]:
    text = str(value if value is not None else "").strip().rstrip("*")
    if "/" in text:
        text = text.split("/", 1)[0]
    try:
        return float(text)
    except ValueError:
        return None


def parse_career_stats(rows: Iterable[Dict[str, object]]) -> CareerStats:
    """
    Fold provider `{fn, matchtype, stat, value}` rows into CareerStats.

    Format keys are lower-cased (t20, t20i, odi, lista, fc, test). Stats with no
    canonical field, or values that are not numbers, are dropped.
    """
    batting: Dict[str, Dict[str, float]] = {}
    bowling: Dict[str, Dict[str, float]] = {}

    for row in rows:
        fn = str(row.get("fn") or "").strip().lower()
        target = batting if fn == "batting" else bowling if fn == "bowling" else None
        if target is None:
            continue
        fmt = str(row.get("matchtype") or "").strip().lower()
        field = _CAREER_STAT_FIELDS.get(str(row.get("stat") or "").strip().lower())
        value = _leading_number(row.get("value"))
        if not fmt or field is None or value is None:
            continue
        target.setdefault(fmt, {})[field] = value

    return CareerStats(
        batting={fmt: FormatBatting(**values) for fmt, values in batting.items()},
        bowling={fmt: FormatBowling(**values) for fmt, values in bowling.items()},
    )
