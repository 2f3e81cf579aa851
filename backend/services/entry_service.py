"""Contest entry submission: price the roster, validate it, persist it whole or not at all."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import EntityNotFound
from core.timeutil import utc_now
from ingestion.cache_service import StalenessCache
from ingestion.schema import MatchFormat, Player
from models.contest_entry import ContestEntry
from models.fantasy_team import FantasyTeam
from repositories.contest_repo import ContestRepository
from scoring.credits import compute_credits
from scoring.roster import RosterSubmission, check_invariants, validate_roster
from scoring.rules import DEFAULT_TEAM_RULES, TeamRules

logger = logging.getLogger(__name__)


async def price_players(
    cache: StalenessCache,
    player_ids: List[str],
    target: MatchFormat = MatchFormat.T20,
) -> Tuple[Dict[str, Player], Dict[str, float]]:
    """Look players up through the cache and value each one. Unknown ids are left out."""
    players: Dict[str, Player] = {}
    credits: Dict[str, float] = {}
    for player_id in player_ids:
        try:
            player: Player = (await cache.get_player(player_id)).payload
        except EntityNotFound:
            continue
        try:
            career = (await cache.get_player_career(player_id)).payload
        except EntityNotFound:
            career = None
        players[player_id] = player
        credits[player_id] = compute_credits(player.role, career, target)
    return players, credits


async def submit_entry(
    session: AsyncSession,
    cache: StalenessCache,
    contest_id: str,
    user_id: str,
    roster: RosterSubmission,
    rules: TeamRules = DEFAULT_TEAM_RULES,
) -> Dict[str, Any]:
    """
    Validate `roster` for the contest's match and add the fantasy team and its
    contest entry to `session`. Raises before anything is added if the roster
    is invalid; the caller's commit makes both rows visible together.
    """
    contest = await ContestRepository(session).get_by_id(contest_id)
    if contest is None:
        raise EntityNotFound("contest", contest_id)
    check_invariants(roster)

    # Cache lookups write through their own sessions, so they all happen before this session writes.
    match = (await cache.get_match(contest.match_external_id)).payload
    players, credits = await price_players(cache, roster.player_ids, match.format)
    summary = validate_roster(roster, players, credits, rules)

    now = utc_now()
    team = FantasyTeam(
        user_id=user_id,
        match_external_id=contest.match_external_id,
        name=roster.name,
        player_ids_json=json.dumps(roster.player_ids),
        captain_id=roster.captain_id,
        vice_captain_id=roster.vice_captain_id,
        role_counts_json=json.dumps({role.value: n for role, n in summary.role_counts.items()}),
        credits_used=summary.credits_used,
        created_at=now,
    )
    session.add(team)
    await session.flush()
    entry = ContestEntry(
        contest_id=contest_id,
        user_id=user_id,
        fantasy_team_id=team.id,
        points=0.0,
        rank=None,
        created_at=now,
    )
    session.add(entry)
    await session.flush()
    logger.info("Entry %s submitted to contest %s by user %s", entry.id, contest_id, user_id)
    return {
        "entry_id": entry.id,
        "fantasy_team_id": team.id,
        "contest_id": contest_id,
        "credits_used": summary.credits_used,
        "role_counts": {role.value: n for role, n in summary.role_counts.items()},
    }
