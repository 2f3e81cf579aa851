from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select

from ingestion import schema
from models.team import Team
from .base import SyncedRepository


def team_to_canonical(row: Team) -> schema.TeamRef:
    return schema.TeamRef(
        id=row.external_id or row.id,
        name=row.name,
        short_name=row.short_name,
        country=row.country,
        logo_url=row.logo_url,
    )


class TeamRepository(SyncedRepository[Team]):
    """Repository for Team entities."""

    model = Team

    async def get_by_name(self, name: str) -> Optional[Team]:
        """Get the team with this exact name, preferring a row that has no provider id yet."""
        stmt = (
            select(Team)
            .where(Team.name == name)
            .order_by(Team.external_id.is_not(None), Team.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def materialize(self, ref: schema.TeamRef, synced_at: datetime) -> Team:
        """
        Find or create the row for a team reference.

        Lookup is by external id, then by name, and only then is a new row
        inserted. A row found by name adopts the external id if it has none and
        keeps its own otherwise. Calling twice yields the same row.
        """
        row = await self.get_by_external_id(ref.id)
        if row is None:
            row = await self.get_by_name(ref.name)
            if row is not None and row.external_id is None:
                row.external_id = ref.id
        if row is None:
            row = Team(external_id=ref.id, name=ref.name, short_name=ref.short_name)
            self.session.add(row)
        row.name = ref.name
        row.short_name = ref.short_name
        row.country = ref.country or row.country
        row.logo_url = ref.logo_url or row.logo_url
        row.last_synced_at = synced_at
        await self.session.flush()
        return row
