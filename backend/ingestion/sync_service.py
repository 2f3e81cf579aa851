"""
Batch sync orchestration: pull from the provider through the staleness cache and
write to the store. One bad entity never aborts the batch; quota exhaustion does.

Every operation returns a summary: synced, skipped, failures (list of { id, error }).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from core.errors import CricketDataError, EntityNotFound, QuotaExhausted
from ingestion.cache_service import StalenessCache, squad_key
from ingestion.staleness import EntityKind

logger = logging.getLogger(__name__)

Summary = Dict[str, Any]


def _summary(synced: int = 0, skipped: int = 0, failures: Optional[List[Dict[str, str]]] = None) -> Summary:
    return {"synced": synced, "skipped": skipped, "failures": failures or []}


async def sync_tournaments(cache: StalenessCache) -> Summary:
    result = await cache.force_refresh(EntityKind.TOURNAMENT_LIST, "all")
    return _summary(synced=len(result.payload))


async def sync_matches(cache: StalenessCache, tournament_id: Optional[str] = None) -> Summary:
    """Fetch the match list and upsert it; finished matches already stored count as skipped."""
    matches = await cache.provider.get_matches(tournament_id=tournament_id)
    outcome = await cache.store_matches(matches)
    logger.info(
        "Synced matches tournament=%s written=%s skipped=%s",
        tournament_id or "current",
        outcome.written,
        outcome.skipped,
    )
    return _summary(synced=outcome.written, skipped=outcome.skipped)


async def sync_players(
    cache: StalenessCache,
    team_ids: Iterable[str],
    tournament_id: Optional[str] = None,
) -> Summary:
    """Refresh each team's squad."""
    synced = 0
    failures: List[Dict[str, str]] = []
    for team_id in team_ids:
        try:
            result = await cache.force_refresh(EntityKind.SQUAD, squad_key(team_id, tournament_id))
        except QuotaExhausted as e:
            failures.append({"id": team_id, "error": str(e)})
            break
        except (CricketDataError, EntityNotFound) as e:
            logger.warning("Squad sync failed for team %s: %s", team_id, e)
            failures.append({"id": team_id, "error": str(e)})
            continue
        synced += len(result.payload)
    return _summary(synced=synced, failures=failures)


async def sync_match_stats(cache: StalenessCache, match_ids: Iterable[str]) -> Summary:
    """Refresh per-player figures for each match; frozen (finalized) matches are skipped."""
    synced = 0
    skipped = 0
    failures: List[Dict[str, str]] = []
    for match_id in match_ids:
        if await cache.match_stats_finalized(match_id):
            skipped += 1
            continue
        try:
            result = await cache.force_refresh(EntityKind.MATCH_STATS, match_id)
        except QuotaExhausted as e:
            failures.append({"id": match_id, "error": str(e)})
            break
        except (CricketDataError, EntityNotFound) as e:
            logger.warning("Stats sync failed for match %s: %s", match_id, e)
            failures.append({"id": match_id, "error": str(e)})
            continue
        synced += len(result.payload.stats)
    return _summary(synced=synced, skipped=skipped, failures=failures)


async def refresh_stale(cache: StalenessCache) -> Summary:
    """Refetch every stored entity whose age exceeds its threshold."""
    synced = 0
    failures: List[Dict[str, str]] = []
    for kind, entity_id in await cache.stale_entities():
        try:
            await cache.force_refresh(kind, entity_id)
        except QuotaExhausted as e:
            failures.append({"id": f"{kind.value}:{entity_id}", "error": str(e)})
            break
        except (CricketDataError, EntityNotFound) as e:
            logger.warning("Refresh of %s %s failed: %s", kind.value, entity_id, e)
            failures.append({"id": f"{kind.value}:{entity_id}", "error": str(e)})
            continue
        synced += 1
    return _summary(synced=synced, failures=failures)
