"""Live fantasy points API."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import get_cache, get_db_session
from ingestion.cache_service import StalenessCache
from services.scoring_service import live_points

router = APIRouter(prefix="/scoring", tags=["scoring"])


@router.get(
    "/live",
    summary="Live fantasy points",
    description="Points for every player in the match, or one fantasy team's total and breakdown "
    "when fantasy_team_id is given.",
)
async def get_live_points(
    match_id: str = Query(...),
    fantasy_team_id: Optional[str] = Query(default=None),
    cache: StalenessCache = Depends(get_cache),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    result = await cache.get_match_stats(match_id)
    data = await live_points(session, match_id, result.payload.stats, fantasy_team_id)
    data["source"] = result.source.value
    data["finalized"] = result.payload.finalized
    return data
