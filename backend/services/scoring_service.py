"""Live fantasy points over persisted match figures."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import EntityNotFound
from ingestion.schema import PlayerMatchStats
from models.contest import Contest
from models.player import Player
from repositories.fantasy_team_repo import FantasyTeamRepository, roster_player_ids
from repositories.player_match_stats_repo import PlayerMatchStatsRepository, match_stats_to_canonical
from scoring.calculator import (
    compute_player_points,
    compute_roster_points,
    describe_breakdown,
    points_breakdown,
    stats_index,
)
from scoring.rules import DEFAULT_SCORING, ScoringRules


def contest_rules(contest: Optional[Contest]) -> ScoringRules:
    """The contest's own rule table, or the defaults."""
    if contest is None or not contest.scoring_rules_json:
        return DEFAULT_SCORING
    return ScoringRules.model_validate(json.loads(contest.scoring_rules_json))


async def load_match_stats(session: AsyncSession, match_id: str) -> List[PlayerMatchStats]:
    rows = await PlayerMatchStatsRepository(session).list_for_match(match_id)
    return [match_stats_to_canonical(r) for r in rows]


async def _player_names(session: AsyncSession, player_ids: Sequence[str]) -> Dict[str, Player]:
    if not player_ids:
        return {}
    result = await session.execute(select(Player).where(Player.external_id.in_(set(player_ids))))
    return {p.external_id: p for p in result.scalars().all()}


async def live_points(
    session: AsyncSession,
    match_id: str,
    stats: Sequence[PlayerMatchStats],
    fantasy_team_id: Optional[str] = None,
    rules: ScoringRules = DEFAULT_SCORING,
) -> Dict[str, Any]:
    """
    Without a fantasy team: every player's points for the match, best first.
    With one: that roster's total and per-player breakdown.
    """
    if fantasy_team_id is None:
        names = await _player_names(session, [s.player_id for s in stats])
        players = []
        for s in stats:
            info = names.get(s.player_id)
            players.append({
                "player_id": s.player_id,
                "player_name": info.name if info else "Unknown",
                "role": info.role if info else "unknown",
                "points": compute_player_points(s, rules),
                "breakdown": describe_breakdown(points_breakdown(s, rules)),
            })
        players.sort(key=lambda p: (-p["points"], p["player_id"]))
        return {"match_id": match_id, "players": players}

    team = await FantasyTeamRepository(session).get_by_id(fantasy_team_id)
    if team is None:
        raise EntityNotFound("fantasy_team", fantasy_team_id)
    player_ids = roster_player_ids(team)
    roster = compute_roster_points(player_ids, team.captain_id, team.vice_captain_id, stats_index(stats), rules)
    names = await _player_names(session, player_ids)
    breakdown = []
    for p in roster.per_player:
        info = names.get(p.player_id)
        breakdown.append({
            "player_id": p.player_id,
            "player_name": info.name if info else "Unknown",
            "designation": p.designation.value,
            "points": p.points,
            "breakdown": describe_breakdown(p.breakdown),
        })
    breakdown.sort(key=lambda p: -p["points"])
    return {
        "match_id": match_id,
        "fantasy_team_id": fantasy_team_id,
        "total_points": roster.total,
        "player_breakdown": breakdown,
    }
