"""
Scoring rule tables and team-building constraints.

Both are pydantic models so a league can carry its own JSON overrides
(`ScoringRules.model_validate(json.loads(contest.scoring_rules_json))`).
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from ingestion.schema import PlayerRole


class RateModifier(BaseModel):
    threshold: float
    points: float


class BattingPoints(BaseModel):
    run: float = 1
    four: float = 1
    six: float = 2
    half_century: float = 10
    century: float = 25
    duck: float = -5
    # Strike-rate modifiers apply from `strike_rate_min_balls` balls faced; None disables them.
    strike_rate_bonus: Optional[RateModifier] = None
    strike_rate_penalty: Optional[RateModifier] = None
    strike_rate_min_balls: int = 10


class BowlingPoints(BaseModel):
    wicket: float = 25
    maiden: float = 10
    three_wickets: float = 10
    five_wickets: float = 25
    economy_bonus: Optional[RateModifier] = None
    economy_penalty: Optional[RateModifier] = None
    economy_min_overs: float = 2


class FieldingPoints(BaseModel):
    catch: float = 10
    stumping: float = 15
    run_out_direct: float = 15
    run_out_assist: float = 10


class Multipliers(BaseModel):
    captain: float = 2.0
    vice_captain: float = 1.5


class ScoringRules(BaseModel):
    batting: BattingPoints = Field(default_factory=BattingPoints)
    bowling: BowlingPoints = Field(default_factory=BowlingPoints)
    fielding: FieldingPoints = Field(default_factory=FieldingPoints)
    multipliers: Multipliers = Field(default_factory=Multipliers)

    @classmethod
    def with_rate_modifiers(cls) -> "ScoringRules":
        """Default table plus strike-rate (150/70) and economy (5/10) modifiers."""
        return cls(
            batting=BattingPoints(
                strike_rate_bonus=RateModifier(threshold=150, points=5),
                strike_rate_penalty=RateModifier(threshold=70, points=-5),
            ),
            bowling=BowlingPoints(
                economy_bonus=RateModifier(threshold=5, points=10),
                economy_penalty=RateModifier(threshold=10, points=-5),
            ),
        )


DEFAULT_SCORING = ScoringRules()


def _default_min_per_role() -> Dict[PlayerRole, int]:
    return {role: 1 for role in PlayerRole}


def _default_max_per_role() -> Dict[PlayerRole, int]:
    return {
        PlayerRole.BATSMAN: 5,
        PlayerRole.BOWLER: 5,
        PlayerRole.ALL_ROUNDER: 4,
        PlayerRole.WICKET_KEEPER: 2,
    }


class TeamRules(BaseModel):
    total_players: int = 11
    max_per_team: int = 7
    budget: float = 100.0
    min_per_role: Dict[PlayerRole, int] = Field(default_factory=_default_min_per_role)
    max_per_role: Dict[PlayerRole, int] = Field(default_factory=_default_max_per_role)


DEFAULT_TEAM_RULES = TeamRules()
