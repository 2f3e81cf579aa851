"""
Roster validation against TeamRules.

Structural problems (duplicates, captain = vice-captain, armband holder not in
the roster) raise InvariantViolation on the first one found. Rule breaches are
collected and raised together as RosterValidationError.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Mapping

from pydantic import BaseModel, Field

from core.errors import InvariantViolation, RosterValidationError
from ingestion.schema import Player, PlayerRole
from scoring.rules import DEFAULT_TEAM_RULES, TeamRules


class RosterSubmission(BaseModel):
    name: str = "My Team"
    player_ids: List[str] = Field(default_factory=list)
    captain_id: str
    vice_captain_id: str


class RosterSummary(BaseModel):
    role_counts: Dict[PlayerRole, int]
    team_counts: Dict[str, int]
    credits_used: float


def check_invariants(roster: RosterSubmission) -> None:
    duplicates = sorted(pid for pid, n in Counter(roster.player_ids).items() if n > 1)
    if duplicates:
        raise InvariantViolation(f"duplicate players in roster: {', '.join(duplicates)}")
    if roster.captain_id == roster.vice_captain_id:
        raise InvariantViolation("captain and vice-captain must be different players")
    if roster.captain_id not in roster.player_ids:
        raise InvariantViolation(f"captain {roster.captain_id} is not in the roster")
    if roster.vice_captain_id not in roster.player_ids:
        raise InvariantViolation(f"vice-captain {roster.vice_captain_id} is not in the roster")


def validate_roster(
    roster: RosterSubmission,
    players: Mapping[str, Player],
    credits: Mapping[str, float],
    rules: TeamRules = DEFAULT_TEAM_RULES,
) -> RosterSummary:
    """Return role/team counts and credits used, or raise with every broken rule."""
    check_invariants(roster)
    reasons: List[str] = []

    if len(roster.player_ids) != rules.total_players:
        reasons.append(f"roster must have exactly {rules.total_players} players, got {len(roster.player_ids)}")

    unknown = [pid for pid in roster.player_ids if pid not in players]
    if unknown:
        reasons.append(f"unknown players: {', '.join(unknown)}")
    known = [players[pid] for pid in roster.player_ids if pid in players]

    # Players the provider has not placed in a team count towards no team.
    team_counts = Counter(p.team_id for p in known if p.team_id)
    for team_id, count in sorted(team_counts.items()):
        if count > rules.max_per_team:
            reasons.append(f"at most {rules.max_per_team} players from one team, got {count} from {team_id}")

    role_counts = Counter(p.role for p in known)
    for role in PlayerRole:
        count = role_counts.get(role, 0)
        low = rules.min_per_role.get(role, 0)
        high = rules.max_per_role.get(role, rules.total_players)
        if count < low:
            reasons.append(f"need at least {low} {role.value}, got {count}")
        elif count > high:
            reasons.append(f"at most {high} {role.value}, got {count}")

    credits_used = round(sum(credits.get(p.id, 0.0) for p in known), 1)
    if credits_used > rules.budget:
        reasons.append(f"credits used {credits_used} exceed budget {rules.budget}")

    if reasons:
        raise RosterValidationError(reasons)
    return RosterSummary(
        role_counts={role: role_counts.get(role, 0) for role in PlayerRole},
        team_counts=dict(team_counts),
        credits_used=credits_used,
    )
