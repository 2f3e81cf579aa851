"""Repository layer for DB access only (CRUD + simple queries).

All repositories accept an AsyncSession explicitly and never commit; the
session owner (a service, the staleness cache, or a request) decides.
"""

from .base import BaseRepository, SyncedRepository
from .contest_repo import ContestEntryRepository, ContestRepository
from .fantasy_team_repo import FantasyTeamRepository
from .match_repo import MatchRepository
from .player_match_stats_repo import PlayerMatchStatsRepository
from .player_repo import PlayerRepository
from .team_repo import TeamRepository
from .tournament_repo import TournamentRepository

__all__ = [
    "BaseRepository",
    "SyncedRepository",
    "ContestEntryRepository",
    "ContestRepository",
    "FantasyTeamRepository",
    "MatchRepository",
    "PlayerMatchStatsRepository",
    "PlayerRepository",
    "TeamRepository",
    "TournamentRepository",
]
