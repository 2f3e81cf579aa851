from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import select

from models.contest import Contest
from models.contest_entry import ContestEntry
from models.fantasy_team import FantasyTeam
from .base import BaseRepository


class ContestRepository(BaseRepository[Contest]):
    """Repository for Contest entities."""

    model = Contest


class ContestEntryRepository(BaseRepository[ContestEntry]):
    """Repository for ContestEntry rows (points and persisted ranks)."""

    model = ContestEntry

    async def list_for_contest(self, contest_id: str) -> List[ContestEntry]:
        stmt = (
            select(ContestEntry)
            .where(ContestEntry.contest_id == contest_id)
            .order_by(ContestEntry.created_at, ContestEntry.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_user(self, contest_id: str, user_id: str) -> Optional[ContestEntry]:
        """The user's best-placed entry in the contest (highest points)."""
        stmt = (
            select(ContestEntry)
            .where(ContestEntry.contest_id == contest_id)
            .where(ContestEntry.user_id == user_id)
            .order_by(ContestEntry.points.desc(), ContestEntry.created_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def fantasy_teams_for(self, entries: List[ContestEntry]) -> Dict[str, FantasyTeam]:
        ids = {e.fantasy_team_id for e in entries}
        if not ids:
            return {}
        stmt = select(FantasyTeam).where(FantasyTeam.id.in_(ids))
        result = await self.session.execute(stmt)
        return {t.id: t for t in result.scalars().all()}
