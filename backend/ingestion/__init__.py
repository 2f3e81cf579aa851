"""Ingestion: canonical schema, provider connectors, staleness cache and batch sync."""

from .schema import (
    BasicMatch,
    CacheSource,
    CareerStats,
    LiveMatch,
    MatchStatus,
    Player,
    PlayerMatchStats,
    TeamRef,
    Tournament,
)

__all__ = [
    "BasicMatch",
    "CacheSource",
    "CareerStats",
    "LiveMatch",
    "MatchStatus",
    "Player",
    "PlayerMatchStats",
    "TeamRef",
    "Tournament",
]
