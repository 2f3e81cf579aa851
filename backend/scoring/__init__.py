"""Pure scoring engines: fantasy points, player credits and roster rules."""

from .calculator import (
    BreakdownItem,
    Designation,
    RosterPoints,
    compute_player_points,
    compute_roster_points,
    describe_breakdown,
    points_breakdown,
)
from .credits import compute_credits, player_stats_summary
from .roster import RosterSubmission, validate_roster
from .rules import DEFAULT_SCORING, DEFAULT_TEAM_RULES, ScoringRules, TeamRules

__all__ = [
    "BreakdownItem",
    "DEFAULT_SCORING",
    "DEFAULT_TEAM_RULES",
    "Designation",
    "RosterPoints",
    "RosterSubmission",
    "ScoringRules",
    "TeamRules",
    "compute_credits",
    "compute_player_points",
    "compute_roster_points",
    "describe_breakdown",
    "player_stats_summary",
    "points_breakdown",
    "validate_roster",
]
