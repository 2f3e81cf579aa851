from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository bound to one mapped model.

    No commits are performed here - commit responsibility is left to the
    session owner.
    """

    model: ClassVar[Type[Base]]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, entity: T) -> T:
        """Add an entity to the session (not committed)."""
        self.session.add(entity)
        return entity

    async def get_by_id(self, id_value: str) -> Optional[T]:
        """Get an entity by its primary key."""
        return await self.session.get(self.model, id_value)


class SyncedRepository(BaseRepository[T]):
    """Provider-backed rows: unique `external_id` plus `last_synced_at`."""

    async def get_by_external_id(self, external_id: str) -> Optional[T]:
        stmt = select(self.model).where(self.model.external_id == external_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _synced_before(self, before: datetime) -> Select:
        return select(self.model).where(self.model.last_synced_at < before)

    async def list_stale(self, before: datetime) -> List[T]:
        """Rows whose last sync predates `before`."""
        result = await self.session.execute(self._synced_before(before))
        return list(result.scalars().all())
