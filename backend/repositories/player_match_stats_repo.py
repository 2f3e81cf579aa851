from __future__ import annotations

from datetime import datetime
from typing import Iterable, List

from sqlalchemy import select

from ingestion import schema
from models.player_match_stats import PlayerMatchStats
from .base import BaseRepository

_STAT_FIELDS = [
    name for name in schema.PlayerMatchStats.model_fields if name not in ("player_id", "match_id")
]


def match_stats_to_canonical(row: PlayerMatchStats) -> schema.PlayerMatchStats:
    values = {name: getattr(row, name) for name in _STAT_FIELDS}
    return schema.PlayerMatchStats(
        player_id=row.player_external_id, match_id=row.match_external_id, **values
    )


class PlayerMatchStatsRepository(BaseRepository[PlayerMatchStats]):
    """Per-match player figures keyed by (match external id, player external id)."""

    model = PlayerMatchStats

    async def list_for_match(self, match_external_id: str) -> List[PlayerMatchStats]:
        stmt = (
            select(PlayerMatchStats)
            .where(PlayerMatchStats.match_external_id == match_external_id)
            .order_by(PlayerMatchStats.player_external_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_many(
        self,
        match_external_id: str,
        stats: Iterable[schema.PlayerMatchStats],
        synced_at: datetime,
        finalize: bool = False,
    ) -> int:
        """
        Write one row per player. Finalized rows are never overwritten.

        `finalize` marks the written rows frozen; pass it once the match is
        completed. Returns the number of rows written.
        """
        written = 0
        for item in stats:
            key = (match_external_id, item.player_id)
            row = await self.session.get(PlayerMatchStats, key)
            if row is not None and row.finalized:
                continue
            if row is None:
                row = PlayerMatchStats(match_external_id=match_external_id, player_external_id=item.player_id)
                self.session.add(row)
            for name in _STAT_FIELDS:
                setattr(row, name, getattr(item, name))
            row.finalized = finalize
            row.last_synced_at = synced_at
            written += 1
        return written

    async def freeze(self, match_external_id: str) -> None:
        """Mark every row of the match finalized, including players missing from the last fetch."""
        for row in await self.list_for_match(match_external_id):
            row.finalized = True

    async def is_finalized(self, match_external_id: str) -> bool:
        rows = await self.list_for_match(match_external_id)
        return bool(rows) and all(r.finalized for r in rows)
