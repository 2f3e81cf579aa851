"""Contest API: leaderboard views, re-ranking and roster entries."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.dependencies import get_cache, get_db_session
from core.errors import EntityNotFound
from ingestion.cache_service import StalenessCache
from leaderboard.ranker import TieBreak
from repositories.contest_repo import ContestRepository
from scoring.roster import RosterSubmission
from services.entry_service import submit_entry
from services.leaderboard_service import get_leaderboard, recalculate_ranks, refresh_contest_points

router = APIRouter(prefix="/contests", tags=["contests"])


def _tie_break() -> TieBreak:
    return TieBreak(get_settings().leaderboard_tie_break)


@router.get(
    "/{contest_id}/leaderboard",
    summary="Contest leaderboard",
    description="Ordered window of entries with rank movement. The user's own entry is always reported.",
)
async def get_contest_leaderboard(
    contest_id: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    user_id: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    return await get_leaderboard(session, contest_id, offset, limit, user_id, _tie_break())


@router.post(
    "/{contest_id}/leaderboard",
    summary="Recompute points and ranks",
    description="Pulls the match's latest figures, recomputes every entry's points and persists new ranks.",
)
async def post_contest_leaderboard(
    contest_id: str,
    cache: StalenessCache = Depends(get_cache),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    contest = await ContestRepository(session).get_by_id(contest_id)
    if contest is None:
        raise EntityNotFound("contest", contest_id)
    # Figures are written through the cache's own session before this one writes.
    stats = await cache.get_match_stats(contest.match_external_id)
    updated = await refresh_contest_points(session, contest_id)
    ranked = await recalculate_ranks(session, contest_id, _tie_break())
    return {
        "contest_id": contest_id,
        "entries_updated": updated,
        "stats_source": stats.source.value,
        "ranks": [{"entry_id": r.entry_id, "rank": r.rank, "points": r.points} for r in ranked],
    }


@router.post(
    "/{contest_id}/entries",
    status_code=201,
    summary="Submit a roster",
    description="Validates the roster against the team rules and credit budget, then enters it. "
    "Nothing is stored when validation fails.",
)
async def post_contest_entry(
    contest_id: str,
    roster: RosterSubmission,
    user_id: str = Query(...),
    cache: StalenessCache = Depends(get_cache),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    return await submit_entry(session, cache, contest_id, user_id, roster)
