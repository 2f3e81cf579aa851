"""Cricket data API: cached provider reads, quota status and batch sync triggers."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from core.dependencies import get_cache, get_provider
from core.errors import EntityNotFound
from ingestion import sync_service
from ingestion.cache_service import CacheResult, StalenessCache
from ingestion.connectors.base import CricketAPIProvider
from ingestion.schema import MatchFormat
from scoring.credits import compute_credits, player_stats_summary

router = APIRouter(prefix="/cricket", tags=["cricket"])


def _envelope(result: CacheResult) -> Dict[str, Any]:
    return {
        "data": jsonable_encoder(result.payload),
        "source": result.source.value,
        "synced_at": result.synced_at.isoformat(),
    }


@router.get("/tournaments", summary="List tournaments")
async def get_tournaments(cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_tournaments())


@router.get("/tournaments/{tournament_id}", summary="Get one tournament")
async def get_tournament(tournament_id: str, cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_tournament(tournament_id))


@router.get(
    "/matches",
    summary="List matches",
    description="Matches of a tournament, or the provider's current matches when no tournament is given.",
)
async def get_matches(
    tournament_id: Optional[str] = Query(default=None),
    cache: StalenessCache = Depends(get_cache),
) -> dict:
    return _envelope(await cache.get_matches(tournament_id))


@router.get("/matches/{match_id}", summary="Get one match")
async def get_match(match_id: str, cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_match(match_id))


@router.get(
    "/matches/{match_id}/live",
    summary="Live score",
    description="Score with current batsmen, bowler and recent balls. Refreshed every 30s while quota allows.",
)
async def get_live_score(match_id: str, cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_live_score(match_id))


@router.get("/matches/{match_id}/stats", summary="Per-player figures for a match")
async def get_match_stats(match_id: str, cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_match_stats(match_id))


@router.get("/teams/{team_id}", summary="Get one team")
async def get_team(team_id: str, cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_team(team_id))


@router.get("/teams/{team_id}/squad", summary="Team squad")
async def get_squad(
    team_id: str,
    tournament_id: Optional[str] = Query(default=None),
    cache: StalenessCache = Depends(get_cache),
) -> dict:
    return _envelope(await cache.get_squad(team_id, tournament_id))


@router.get("/players/{player_id}", summary="Get one player")
async def get_player(player_id: str, cache: StalenessCache = Depends(get_cache)) -> dict:
    return _envelope(await cache.get_player(player_id))


@router.get(
    "/players/{player_id}/credits",
    summary="Player credit value",
    description="Credits in [6.0, 11.5] from career statistics weighted toward the target format. "
    "Players without career data get the neutral default.",
)
async def get_player_credits(
    player_id: str,
    format: MatchFormat = Query(default=MatchFormat.T20),
    cache: StalenessCache = Depends(get_cache),
) -> dict:
    player_result = await cache.get_player(player_id)
    player = player_result.payload
    try:
        career = (await cache.get_player_career(player_id)).payload
    except EntityNotFound:
        career = None
    data = {
        "player": jsonable_encoder(player),
        "format": format.value,
        "credits": compute_credits(player.role, career, format),
        "stats": player_stats_summary(career, format.value) if career else None,
    }
    return {"data": data, "source": player_result.source.value}


@router.get("/rate-limit", summary="Provider quota")
async def get_rate_limit(provider: CricketAPIProvider = Depends(get_provider)) -> dict:
    return jsonable_encoder(provider.get_rate_limit_info())


@router.get("/cache/stats", summary="Cache occupancy")
async def get_cache_stats(cache: StalenessCache = Depends(get_cache)) -> dict:
    return cache.stats()


class SyncBody(BaseModel):
    tournament_id: Optional[str] = None
    team_ids: List[str] = Field(default_factory=list)
    match_ids: List[str] = Field(default_factory=list)


SYNC_KINDS = ("tournaments", "matches", "players", "match-stats", "stale")


@router.post(
    "/sync/{kind}",
    summary="Run a batch sync",
    description="kind: tournaments | matches | players | match-stats | stale. "
    "Returns { synced, skipped, failures }.",
)
async def post_sync(
    kind: str,
    body: Optional[SyncBody] = None,
    cache: StalenessCache = Depends(get_cache),
) -> dict:
    body = body or SyncBody()
    if kind == "tournaments":
        return await sync_service.sync_tournaments(cache)
    if kind == "matches":
        return await sync_service.sync_matches(cache, body.tournament_id)
    if kind == "players":
        return await sync_service.sync_players(cache, body.team_ids, body.tournament_id)
    if kind == "match-stats":
        return await sync_service.sync_match_stats(cache, body.match_ids)
    if kind == "stale":
        return await sync_service.refresh_stale(cache)
    raise HTTPException(status_code=404, detail=f"unknown sync kind: {kind}; expected one of {', '.join(SYNC_KINDS)}")
