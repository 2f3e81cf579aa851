"""
Contest leaderboard: recompute entry points from persisted figures, re-rank,
and serve paginated views with rank movement.

Points are always recomputed from the stored match stats, never accumulated.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import EntityNotFound
from core.timeutil import as_utc
from leaderboard.ranker import (
    RankedEntry,
    RankInput,
    TieBreak,
    classify_rank_change,
    page,
    rank_entries,
    rank_for_points,
)
from models.contest import Contest
from models.contest_entry import ContestEntry
from repositories.contest_repo import ContestEntryRepository, ContestRepository
from repositories.fantasy_team_repo import roster_player_ids
from scoring.calculator import compute_roster_points, stats_index
from services.scoring_service import contest_rules, load_match_stats

logger = logging.getLogger(__name__)


async def _get_contest(session: AsyncSession, contest_id: str) -> Contest:
    contest = await ContestRepository(session).get_by_id(contest_id)
    if contest is None:
        raise EntityNotFound("contest", contest_id)
    return contest


def _rank_inputs(entries: List[ContestEntry]) -> List[RankInput]:
    return [
        RankInput(
            entry_id=e.id,
            user_id=e.user_id,
            points=e.points,
            created_at=as_utc(e.created_at),
            previous_rank=e.rank,
        )
        for e in entries
    ]


async def refresh_contest_points(session: AsyncSession, contest_id: str) -> int:
    """Set every entry's points from the contest match's current figures. Returns entries updated."""
    contest = await _get_contest(session, contest_id)
    rules = contest_rules(contest)
    stats = stats_index(await load_match_stats(session, contest.match_external_id))
    repo = ContestEntryRepository(session)
    entries = await repo.list_for_contest(contest_id)
    teams = await repo.fantasy_teams_for(entries)
    for entry in entries:
        team = teams[entry.fantasy_team_id]
        roster = compute_roster_points(
            roster_player_ids(team), team.captain_id, team.vice_captain_id, stats, rules
        )
        entry.points = roster.total
    logger.info("Recomputed points for %s entries in contest %s", len(entries), contest_id)
    return len(entries)


async def recalculate_ranks(
    session: AsyncSession,
    contest_id: str,
    tie_break: TieBreak = TieBreak.STABLE,
) -> List[RankedEntry]:
    """Rank by current points and persist the new ranks."""
    await _get_contest(session, contest_id)
    entries = await ContestEntryRepository(session).list_for_contest(contest_id)
    ranked = rank_entries(_rank_inputs(entries), tie_break)
    by_id = {e.id: e for e in entries}
    for r in ranked:
        by_id[r.entry_id].rank = r.rank
    await session.flush()
    return ranked


def _entry_view(r: RankedEntry, team_names: Dict[str, str], team_ids: Dict[str, str]) -> Dict[str, Any]:
    return {
        "entry_id": r.entry_id,
        "user_id": r.user_id,
        "fantasy_team_id": team_ids.get(r.entry_id),
        "team_name": team_names.get(r.entry_id),
        "points": r.points,
        "rank": r.rank,
        "previous_rank": r.previous_rank,
        "rank_change": r.rank_change.value,
    }


async def get_leaderboard(
    session: AsyncSession,
    contest_id: str,
    offset: int = 0,
    limit: int = 50,
    user_id: Optional[str] = None,
    tie_break: TieBreak = TieBreak.STABLE,
) -> Dict[str, Any]:
    """
    Ordered window of the contest with movement against persisted ranks.

    The current user's entry is reported even when it falls outside the window;
    its rank is then the number of entries with strictly more points, plus one.
    """
    await _get_contest(session, contest_id)
    repo = ContestEntryRepository(session)
    entries = await repo.list_for_contest(contest_id)
    ranked = rank_entries(_rank_inputs(entries), tie_break)
    window = page(ranked, offset, limit)

    teams = await repo.fantasy_teams_for(entries)
    team_ids = {e.id: e.fantasy_team_id for e in entries}
    team_names = {e.id: teams[e.fantasy_team_id].name for e in entries if e.fantasy_team_id in teams}

    current_user_entry = None
    if user_id:
        in_window = [r for r in window if r.user_id == user_id]
        if in_window:
            current_user_entry = _entry_view(in_window[0], team_names, team_ids)
        else:
            own = await repo.get_for_user(contest_id, user_id)
            if own is not None:
                view = next(r for r in ranked if r.entry_id == own.id)
                rank = rank_for_points((e.points for e in entries), own.points)
                view = view.model_copy(
                    update={"rank": rank, "rank_change": classify_rank_change(view.previous_rank, rank)}
                )
                current_user_entry = _entry_view(view, team_names, team_ids)

    return {
        "contest_id": contest_id,
        "entries": [_entry_view(r, team_names, team_ids) for r in window],
        "current_user_entry": current_user_entry,
        "total_entries": len(entries),
        "has_more": offset + len(window) < len(entries),
    }
