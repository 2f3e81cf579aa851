"""Services: orchestration over sessions, the staleness cache and the pure engines."""

from .entry_service import submit_entry
from .leaderboard_service import get_leaderboard, recalculate_ranks, refresh_contest_points
from .scoring_service import live_points

__all__ = [
    "get_leaderboard",
    "live_points",
    "recalculate_ranks",
    "refresh_contest_points",
    "submit_entry",
]
