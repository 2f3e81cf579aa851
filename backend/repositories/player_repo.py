from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from ingestion import schema
from models.player import Player
from models.player_career_stats import PlayerCareerStats
from .base import SyncedRepository


def player_to_canonical(row: Player) -> schema.Player:
    return schema.Player(
        id=row.external_id,
        name=row.name,
        role=schema.PlayerRole(row.role),
        team_id=row.team_external_id,
        batting_style=row.batting_style,
        bowling_style=row.bowling_style,
        country=row.country,
    )


class PlayerRepository(SyncedRepository[Player]):
    """Repository for Player entities and their career aggregates."""

    model = Player

    async def upsert_from_canonical(self, data: schema.Player, synced_at: datetime) -> Player:
        row = await self.get_by_external_id(data.id)
        if row is None:
            row = Player(external_id=data.id)
            self.session.add(row)
        row.name = data.name
        row.role = data.role.value
        # A squad listing without a team keeps the team we already know.
        row.team_external_id = data.team_id or row.team_external_id
        row.batting_style = data.batting_style
        row.bowling_style = data.bowling_style
        row.country = data.country
        row.last_synced_at = synced_at
        return row

    async def get_career_stats(self, player_external_id: str) -> Optional[PlayerCareerStats]:
        return await self.session.get(PlayerCareerStats, player_external_id)

    async def upsert_career_stats(
        self, data: schema.CareerStats, player_external_id: str, synced_at: datetime
    ) -> PlayerCareerStats:
        row = await self.get_career_stats(player_external_id)
        if row is None:
            row = PlayerCareerStats(player_external_id=player_external_id)
            self.session.add(row)
        row.stats_json = data.model_copy(update={"player_id": player_external_id}).model_dump_json(
            exclude_none=True
        )
        row.last_synced_at = synced_at
        return row


def career_to_canonical(row: PlayerCareerStats) -> schema.CareerStats:
    return schema.CareerStats.model_validate(json.loads(row.stats_json))
