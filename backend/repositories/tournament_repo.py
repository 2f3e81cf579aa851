from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import select

from core.timeutil import as_utc
from ingestion import schema
from models.tournament import Tournament
from .base import SyncedRepository


def tournament_to_canonical(row: Tournament) -> schema.Tournament:
    return schema.Tournament(
        id=row.external_id,
        name=row.name,
        short_name=row.short_name,
        start_date=as_utc(row.start_date),
        end_date=as_utc(row.end_date),
        format=schema.MatchFormat(row.format),
        team_count=row.team_count,
        match_count=row.match_count,
        status=schema.TournamentStatus(row.status),
    )


class TournamentRepository(SyncedRepository[Tournament]):
    """Repository for Tournament entities keyed by provider external id."""

    model = Tournament

    async def upsert_from_canonical(self, data: schema.Tournament, synced_at: datetime) -> Tournament:
        """Insert or update by external id; the store keeps exactly one row per tournament."""
        row = await self.get_by_external_id(data.id)
        if row is None:
            row = Tournament(external_id=data.id)
            self.session.add(row)
        row.name = data.name
        row.short_name = data.short_name
        row.format = data.format.value
        row.status = data.status.value
        row.start_date = data.start_date
        row.end_date = data.end_date
        row.team_count = data.team_count
        row.match_count = data.match_count
        row.last_synced_at = synced_at
        return row

    async def list_all(self) -> List[Tournament]:
        stmt = select(Tournament).order_by(Tournament.start_date)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_stale(self, before: datetime) -> List[Tournament]:
        """Tournaments not yet completed whose last sync predates `before`."""
        stmt = (
            self._synced_before(before)
            .where(Tournament.status != schema.TournamentStatus.COMPLETED.value)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
