from __future__ import annotations

import json
from datetime import datetime
from typing import List, Tuple

from core.timeutil import as_utc
from ingestion import schema
from models.match import Match
from models.team import Team
from .base import SyncedRepository
from .team_repo import team_to_canonical

_FINISHED = [schema.MatchStatus.COMPLETED.value, schema.MatchStatus.ABANDONED.value]


class MatchRepository(SyncedRepository[Match]):
    """Repository for Match entities."""

    model = Match

    async def upsert_from_canonical(
        self,
        data: schema.BasicMatch,
        team_a: Team,
        team_b: Team,
        synced_at: datetime,
    ) -> Tuple[Match, bool]:
        """
        Insert or update by external id. Returns (row, written).

        A completed or abandoned match is immutable: the upsert leaves it
        untouched and reports written=False.
        """
        row = await self.get_by_external_id(data.id)
        if row is not None and row.status in _FINISHED:
            return row, False
        if row is None:
            row = Match(external_id=data.id)
            self.session.add(row)
        row.tournament_external_id = data.tournament_id
        row.name = data.name or f"{team_a.name} vs {team_b.name}"
        row.format = data.format.value
        row.status = data.status.value
        row.venue = data.venue
        row.start_time = data.start_time
        row.team_a_id = team_a.id
        row.team_b_id = team_b.id
        row.result = data.result
        row.score_json = data.score.model_dump_json() if data.score else None
        row.last_synced_at = synced_at
        return row, True

    async def to_canonical(self, row: Match) -> schema.BasicMatch:
        team_a = await self.session.get(Team, row.team_a_id)
        team_b = await self.session.get(Team, row.team_b_id)
        return schema.BasicMatch(
            id=row.external_id,
            name=row.name,
            format=schema.MatchFormat(row.format),
            status=schema.MatchStatus(row.status),
            venue=row.venue,
            start_time=as_utc(row.start_time),
            team_a=team_to_canonical(team_a),
            team_b=team_to_canonical(team_b),
            tournament_id=row.tournament_external_id,
            result=row.result,
            score=schema.MatchScore.model_validate(json.loads(row.score_json)) if row.score_json else None,
        )

    async def list_stale(self, before: datetime) -> List[Match]:
        """Unfinished matches whose last sync predates `before` (finished ones never go stale)."""
        stmt = (
            self._synced_before(before)
            .where(Match.status.not_in(_FINISHED))
            .order_by(Match.start_time)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
