"""
Contest ranking: points descending, 1-based positions, movement against the
previously persisted rank.

Equal points are ordered by a named TieBreak policy so that re-ranking an
unchanged point set always reproduces the same order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel


class TieBreak(str, Enum):
    STABLE = "stable"  # previous rank, then entry creation time
    CREATED_AT = "created_at"
    ENTRY_ID = "entry_id"


class RankChange(str, Enum):
    NEW = "new"
    UP = "up"
    DOWN = "down"
    SAME = "same"


@dataclass(frozen=True)
class RankInput:
    entry_id: str
    user_id: str
    points: float
    created_at: datetime
    previous_rank: Optional[int] = None


class RankedEntry(BaseModel):
    entry_id: str
    user_id: str
    points: float
    rank: int
    previous_rank: Optional[int] = None
    rank_change: RankChange


def classify_rank_change(previous_rank: Optional[int], new_rank: int) -> RankChange:
    if previous_rank is None:
        return RankChange.NEW
    if new_rank < previous_rank:
        return RankChange.UP
    if new_rank > previous_rank:
        return RankChange.DOWN
    return RankChange.SAME


def _sort_key(entry: RankInput, tie_break: TieBreak):
    if tie_break == TieBreak.ENTRY_ID:
        return (-entry.points, entry.entry_id)
    if tie_break == TieBreak.CREATED_AT:
        return (-entry.points, entry.created_at, entry.entry_id)
    previous = entry.previous_rank if entry.previous_rank is not None else math.inf
    return (-entry.points, previous, entry.created_at, entry.entry_id)


def rank_entries(entries: Iterable[RankInput], tie_break: TieBreak = TieBreak.STABLE) -> List[RankedEntry]:
    ordered = sorted(entries, key=lambda e: _sort_key(e, tie_break))
    return [
        RankedEntry(
            entry_id=e.entry_id,
            user_id=e.user_id,
            points=e.points,
            rank=position,
            previous_rank=e.previous_rank,
            rank_change=classify_rank_change(e.previous_rank, position),
        )
        for position, e in enumerate(ordered, start=1)
    ]


def page(ranked: Sequence[RankedEntry], offset: int = 0, limit: int = 50) -> List[RankedEntry]:
    if offset < 0 or limit < 0:
        raise ValueError("offset and limit must be non-negative")
    return list(ranked[offset : offset + limit])


def rank_for_points(all_points: Iterable[float], points: float) -> int:
    """Rank of a score among others: entries with strictly more points, plus one."""
    return sum(1 for p in all_points if p > points) + 1
