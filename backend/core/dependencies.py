from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from ingestion.cache_service import StalenessCache
from ingestion.connectors.base import CricketAPIProvider

from .database import get_database_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding an AsyncSession from the DatabaseManager."""
    manager = get_database_manager()
    async with manager.session() as session:
        yield session


def get_cache(request: Request) -> StalenessCache:
    """FastAPI dependency returning the cache instance built at startup."""
    return request.app.state.cache


def get_provider(request: Request) -> CricketAPIProvider:
    """FastAPI dependency returning the provider client built at startup."""
    return request.app.state.provider
