"""SQLAlchemy models for the fantasy cricket store.

Provider entities are keyed by their provider `external_id`; internal ids are
uuids so a change of provider never rewrites foreign keys.
"""

from .base import Base
from .contest import Contest
from .contest_entry import ContestEntry
from .fantasy_team import FantasyTeam
from .match import Match
from .player import Player
from .player_career_stats import PlayerCareerStats
from .player_match_stats import PlayerMatchStats
from .team import Team
from .tournament import Tournament

__all__ = [
    "Base",
    "Contest",
    "ContestEntry",
    "FantasyTeam",
    "Match",
    "Player",
    "PlayerCareerStats",
    "PlayerMatchStats",
    "Team",
    "Tournament",
]
