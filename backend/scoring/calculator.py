"""
Fantasy points from per-match player figures.

Pure functions: no I/O, no clock. Missing figures are zeros, so a player who
has not batted or bowled yet simply contributes nothing.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from ingestion.mapping import overs_to_balls
from ingestion.schema import PlayerMatchStats
from scoring.rules import DEFAULT_SCORING, ScoringRules


class Designation(str, Enum):
    CAPTAIN = "captain"
    VICE_CAPTAIN = "vice_captain"
    PLAYER = "player"


class BreakdownItem(BaseModel):
    category: str
    label: str
    count: float
    points: float


class PlayerPoints(BaseModel):
    player_id: str
    designation: Designation
    raw: float
    points: int
    breakdown: List[BreakdownItem]


class RosterPoints(BaseModel):
    total: int
    per_player: List[PlayerPoints]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def points_breakdown(stats: PlayerMatchStats, rules: ScoringRules = DEFAULT_SCORING) -> List[BreakdownItem]:
    """Line items in display order; their points sum to the raw total."""
    items: List[BreakdownItem] = []

    def add(category: str, label: str, count: float, points: float) -> None:
        items.append(BreakdownItem(category=category, label=label, count=count, points=points))

    bat = rules.batting
    if stats.runs:
        add("batting", "runs", stats.runs, stats.runs * bat.run)
    if stats.fours:
        add("batting", "fours", stats.fours, stats.fours * bat.four)
    if stats.sixes:
        add("batting", "sixes", stats.sixes, stats.sixes * bat.six)
    if stats.runs >= 100:
        add("batting", "century", 1, bat.century)
    elif stats.runs >= 50:
        add("batting", "half_century", 1, bat.half_century)
    if stats.runs == 0 and stats.balls_faced > 0:
        add("batting", "duck", 1, bat.duck)
    if stats.balls_faced >= bat.strike_rate_min_balls and stats.balls_faced > 0:
        strike_rate = stats.runs / stats.balls_faced * 100
        if bat.strike_rate_bonus and strike_rate >= bat.strike_rate_bonus.threshold:
            add("batting", "strike_rate_bonus", round(strike_rate, 2), bat.strike_rate_bonus.points)
        elif bat.strike_rate_penalty and strike_rate <= bat.strike_rate_penalty.threshold:
            add("batting", "strike_rate_penalty", round(strike_rate, 2), bat.strike_rate_penalty.points)

    bowl = rules.bowling
    if stats.wickets:
        add("bowling", "wickets", stats.wickets, stats.wickets * bowl.wicket)
    if stats.maidens:
        add("bowling", "maidens", stats.maidens, stats.maidens * bowl.maiden)
    if stats.wickets >= 5:
        add("bowling", "five_wickets", 1, bowl.five_wickets)
    elif stats.wickets >= 3:
        add("bowling", "three_wickets", 1, bowl.three_wickets)
    balls = overs_to_balls(stats.overs)
    if balls and balls / 6 >= bowl.economy_min_overs:
        economy = stats.runs_conceded / (balls / 6)
        if bowl.economy_bonus and economy <= bowl.economy_bonus.threshold:
            add("bowling", "economy_bonus", round(economy, 2), bowl.economy_bonus.points)
        elif bowl.economy_penalty and economy >= bowl.economy_penalty.threshold:
            add("bowling", "economy_penalty", round(economy, 2), bowl.economy_penalty.points)

    field = rules.fielding
    if stats.catches:
        add("fielding", "catches", stats.catches, stats.catches * field.catch)
    if stats.stumpings:
        add("fielding", "stumpings", stats.stumpings, stats.stumpings * field.stumping)
    if stats.run_outs_direct:
        add("fielding", "run_outs_direct", stats.run_outs_direct, stats.run_outs_direct * field.run_out_direct)
    if stats.run_outs_assisted:
        add("fielding", "run_outs_assisted", stats.run_outs_assisted, stats.run_outs_assisted * field.run_out_assist)
    return items


def raw_points(stats: PlayerMatchStats, rules: ScoringRules = DEFAULT_SCORING) -> float:
    return sum(item.points for item in points_breakdown(stats, rules))


def apply_multiplier(raw: float, designation: Designation, rules: ScoringRules = DEFAULT_SCORING) -> int:
    """Multiply first, round second."""
    if designation == Designation.CAPTAIN:
        return round_half_up(raw * rules.multipliers.captain)
    if designation == Designation.VICE_CAPTAIN:
        return round_half_up(raw * rules.multipliers.vice_captain)
    return round_half_up(raw)


def compute_player_points(
    stats: PlayerMatchStats,
    rules: ScoringRules = DEFAULT_SCORING,
    designation: Designation = Designation.PLAYER,
) -> int:
    return apply_multiplier(raw_points(stats, rules), designation, rules)


_LABELS = {
    "century": "Century",
    "half_century": "Half-century",
    "duck": "Duck",
    "five_wickets": "5-wicket haul",
    "three_wickets": "3-wicket haul",
    "strike_rate_bonus": "Strike rate",
    "strike_rate_penalty": "Strike rate",
    "economy_bonus": "Economy",
    "economy_penalty": "Economy",
}


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def describe_breakdown(items: Iterable[BreakdownItem]) -> List[str]:
    """Display strings such as '52 runs → +52' or 'Duck → -5'."""
    lines = []
    for item in items:
        sign = "+" if item.points >= 0 else ""
        if item.label in _LABELS:
            label = _LABELS[item.label]
            if item.label.startswith(("strike_rate", "economy")):
                label = f"{label} {_fmt(item.count)}"
        else:
            label = f"{_fmt(item.count)} {item.label.replace('_', ' ')}"
        lines.append(f"{label} → {sign}{_fmt(item.points)}")
    return lines


def designation_for(player_id: str, captain_id: str, vice_captain_id: str) -> Designation:
    if player_id == captain_id:
        return Designation.CAPTAIN
    if player_id == vice_captain_id:
        return Designation.VICE_CAPTAIN
    return Designation.PLAYER


def compute_roster_points(
    player_ids: Iterable[str],
    captain_id: str,
    vice_captain_id: str,
    stats_by_player: Mapping[str, PlayerMatchStats],
    rules: ScoringRules = DEFAULT_SCORING,
) -> RosterPoints:
    """
    Sum of each rostered player's multiplied points. Players without figures
    for the match score 0. Recomputed from scratch on every call.
    """
    per_player: List[PlayerPoints] = []
    for player_id in player_ids:
        designation = designation_for(player_id, captain_id, vice_captain_id)
        stats: Optional[PlayerMatchStats] = stats_by_player.get(player_id)
        breakdown = points_breakdown(stats, rules) if stats is not None else []
        raw = sum(item.points for item in breakdown)
        per_player.append(
            PlayerPoints(
                player_id=player_id,
                designation=designation,
                raw=raw,
                points=apply_multiplier(raw, designation, rules),
                breakdown=breakdown,
            )
        )
    return RosterPoints(total=sum(p.points for p in per_player), per_player=per_player)


def stats_index(stats: Iterable[PlayerMatchStats]) -> Dict[str, PlayerMatchStats]:
    return {s.player_id: s for s in stats}
