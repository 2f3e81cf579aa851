from __future__ import annotations

import json
from typing import List


from models.fantasy_team import FantasyTeam
from .base import BaseRepository


def roster_player_ids(row: FantasyTeam) -> List[str]:
    return list(json.loads(row.player_ids_json))


class FantasyTeamRepository(BaseRepository[FantasyTeam]):
    """Repository for FantasyTeam rosters."""

    model = FantasyTeam
