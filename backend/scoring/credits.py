"""
Credit valuation: multi-format career figures -> one budget cost per player.

Each career format is scored 0-100 for batting and bowling, the formats are
blended by their relevance to the target format, batting and bowling are
blended by role, and the result is mapped onto [6.0, 11.5] in steps of 0.5.
Deterministic for identical inputs.
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional, Tuple, Union

from ingestion.mapping import map_player_role
from ingestion.schema import CareerStats, FormatBatting, FormatBowling, MatchFormat, PlayerRole

MIN_CREDITS = 6.0
MAX_CREDITS = 11.5
DEFAULT_BATTING_SCORE = 50.0
DEFAULT_BOWLING_SCORE = 30.0
MIN_FORMAT_MATCHES = 3
MIN_BOWLING_WICKETS = 5
UNKNOWN_FORMAT_WEIGHT = 0.1

FORMAT_WEIGHTS: Dict[MatchFormat, Dict[str, float]] = {
    MatchFormat.T20: {"t20": 1.0, "t20i": 0.9, "lista": 0.4, "odi": 0.35, "fc": 0.15, "test": 0.1},
    MatchFormat.ODI: {"odi": 1.0, "lista": 0.9, "test": 0.4, "fc": 0.35, "t20i": 0.3, "t20": 0.25},
    MatchFormat.TEST: {"test": 1.0, "fc": 0.9, "odi": 0.3, "lista": 0.25, "t20i": 0.1, "t20": 0.1},
}

# (batting share, bowling share)
ROLE_BLENDS: Dict[PlayerRole, Tuple[float, float]] = {
    PlayerRole.BATSMAN: (0.9, 0.1),
    PlayerRole.WICKET_KEEPER: (0.9, 0.1),
    PlayerRole.BOWLER: (0.2, 0.8),
    PlayerRole.ALL_ROUNDER: (0.5, 0.5),
}
DEFAULT_BLEND = (0.6, 0.4)
_ROLE_HINTS = ("bat", "bowl", "keep", "wk", "all", "rounder")


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def format_weights(target: Union[MatchFormat, str, None]) -> Dict[str, float]:
    if isinstance(target, MatchFormat):
        return FORMAT_WEIGHTS[target]
    text = (target or "").strip().lower()
    for fmt in MatchFormat:
        if fmt.value.lower() == text:
            return FORMAT_WEIGHTS[fmt]
    return FORMAT_WEIGHTS[MatchFormat.T20]


def batting_format_score(stats: FormatBatting) -> Optional[float]:
    """0-100 for one format, or None when the format has too little data to count."""
    if not stats.matches or stats.matches < MIN_FORMAT_MATCHES:
        return None
    weighted = 0.0
    factors = 0.0
    if _positive(stats.average):
        weighted += min(100.0, stats.average / 35 * 100) * 0.3
        factors += 0.3
    if _positive(stats.strike_rate):
        weighted += _clamp((stats.strike_rate - 80) / 80 * 100) * 0.3
        factors += 0.3
    if _positive(stats.runs):
        weighted += min(100.0, stats.runs / 2000 * 100) * 0.2
        factors += 0.2
    if _positive(stats.innings):
        sixes = (stats.sixes or 0) / stats.innings
        fours = (stats.fours or 0) / stats.innings
        weighted += min(100.0, sixes * 40 + fours * 10) * 0.2
        factors += 0.2
    return weighted / factors if factors else None


def bowling_format_score(stats: FormatBowling) -> Optional[float]:
    if not stats.matches or stats.matches < MIN_FORMAT_MATCHES:
        return None
    if not stats.wickets or stats.wickets < MIN_BOWLING_WICKETS:
        return None
    weighted = min(100.0, stats.wickets / stats.matches / 2 * 100) * 0.3
    factors = 0.3
    if _positive(stats.economy):
        weighted += _clamp((12 - stats.economy) / 6 * 100) * 0.35
        factors += 0.35
    if _positive(stats.average):
        weighted += _clamp((40 - stats.average) / 30 * 100) * 0.2
        factors += 0.2
    if _positive(stats.strike_rate):
        weighted += _clamp((30 - stats.strike_rate) / 20 * 100) * 0.15
        factors += 0.15
    return weighted / factors


def _blend_formats(scores: Mapping[str, Optional[float]], weights: Mapping[str, float], default: float) -> float:
    total = 0.0
    total_weight = 0.0
    for fmt, score in sorted(scores.items()):
        if score is None:
            continue
        weight = weights.get(fmt.lower(), UNKNOWN_FORMAT_WEIGHT)
        total += score * weight
        total_weight += weight
    return total / total_weight if total_weight > 0 else default


def batting_score(stats: CareerStats, target: Union[MatchFormat, str, None] = MatchFormat.T20) -> float:
    scores = {fmt: batting_format_score(s) for fmt, s in stats.batting.items()}
    return _blend_formats(scores, format_weights(target), DEFAULT_BATTING_SCORE)


def bowling_score(stats: CareerStats, target: Union[MatchFormat, str, None] = MatchFormat.T20) -> float:
    scores = {fmt: bowling_format_score(s) for fmt, s in stats.bowling.items()}
    return _blend_formats(scores, format_weights(target), DEFAULT_BOWLING_SCORE)


def role_blend(role: Union[PlayerRole, str, None]) -> Tuple[float, float]:
    """Batting/bowling shares; role text nobody recognises gets the 60/40 default."""
    if isinstance(role, PlayerRole):
        return ROLE_BLENDS[role]
    text = (role or "").strip().lower()
    if not text or not any(hint in text for hint in _ROLE_HINTS):
        return DEFAULT_BLEND
    return ROLE_BLENDS[map_player_role(text)]


def score_to_credits(score: float) -> float:
    credits = _clamp(MIN_CREDITS + score / 100 * (MAX_CREDITS - MIN_CREDITS), MIN_CREDITS, MAX_CREDITS)
    return math.floor(credits * 2 + 0.5) / 2


def compute_credits(
    role: Union[PlayerRole, str, None],
    career: Optional[CareerStats],
    target: Union[MatchFormat, str, None] = MatchFormat.T20,
) -> float:
    career = career or CareerStats()
    bat_share, bowl_share = role_blend(role)
    final = batting_score(career, target) * bat_share + bowling_score(career, target) * bowl_share
    return score_to_credits(final)


def player_stats_summary(career: CareerStats, fmt: str = "t20") -> Dict[str, float]:
    """Headline figures for display, falling back to t20i when `fmt` has no data."""
    key = fmt.lower()
    batting = career.batting.get(key) or career.batting.get("t20i") or FormatBatting()
    bowling = career.bowling.get(key) or career.bowling.get("t20i") or FormatBowling()
    return {
        "batting_average": batting.average or 0,
        "strike_rate": batting.strike_rate or 0,
        "runs": batting.runs or 0,
        "wickets": bowling.wickets or 0,
        "economy": bowling.economy or 0,
        "matches": batting.matches or bowling.matches or 0,
    }
