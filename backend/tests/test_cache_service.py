"""Staleness cache decisions over the mock provider and an in-memory store."""

from __future__ import annotations

import logging

import pytest
from sqlalchemy import func, select

from core.errors import EntityNotFound, ProviderUnavailable, QuotaExhausted
from ingestion.cache_events import CACHE_LOGGER_NAME
from ingestion.cache_service import StalenessCache
from ingestion.schema import CacheSource, LiveMatch, MatchStatus, PlayerMatchStats, TeamRef
from ingestion.staleness import EntityKind
from models.match import Match
from models.team import Team
from repositories.team_repo import TeamRepository


async def _count(db, model) -> int:
    async with db.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_miss_fetches_then_hits(cache, provider):
    first = await cache.get_match("match-2")
    assert first.source == CacheSource.API
    assert first.payload.team_a.id == "rcb"

    second = await cache.get_match("match-2")
    assert second.source == CacheSource.CACHE
    assert provider.calls["get_match"] == 1


@pytest.mark.asyncio
async def test_store_serves_when_memory_is_cold(cache, db, provider, clock):
    await cache.get_match("match-2")
    cold = StalenessCache(db, provider, clock=clock)
    result = await cold.get_match("match-2")
    assert result.source == CacheSource.CACHE
    assert result.payload.status == MatchStatus.UPCOMING
    assert provider.calls["get_match"] == 1


@pytest.mark.asyncio
async def test_stale_record_is_served_and_refreshed_in_background(cache, provider, clock):
    await cache.get_match("match-2")
    clock.advance(minutes=61)
    provider.matches["match-2"].venue = "Eden Gardens, Kolkata"

    stale = await cache.get_match("match-2")
    assert stale.source == CacheSource.CACHE_THEN_REFRESH
    assert stale.payload.venue == "M. Chinnaswamy Stadium, Bangalore"

    await cache.worker.drain()
    fresh = await cache.get_match("match-2")
    assert fresh.source == CacheSource.CACHE
    assert fresh.payload.venue == "Eden Gardens, Kolkata"
    assert provider.calls["get_match"] == 2


@pytest.mark.asyncio
async def test_live_match_refreshes_after_thirty_seconds_only(cache, provider, clock):
    await cache.get_match("match-1")
    clock.advance(seconds=10)
    assert (await cache.get_match("match-1")).source == CacheSource.CACHE
    clock.advance(seconds=21)
    assert (await cache.get_match("match-1")).source == CacheSource.CACHE_THEN_REFRESH
    await cache.worker.drain()
    assert provider.calls["get_match"] == 2


@pytest.mark.asyncio
async def test_live_threshold_backs_off_when_quota_is_low(cache, provider, clock):
    await cache.get_match("match-1")
    provider.update_rate_limit(remaining=5)
    clock.advance(minutes=5)
    assert (await cache.get_match("match-1")).source == CacheSource.CACHE
    clock.advance(minutes=56)
    assert (await cache.get_match("match-1")).source == CacheSource.CACHE_THEN_REFRESH
    await cache.worker.drain()


@pytest.mark.asyncio
async def test_exhausted_quota_serves_stale_without_refresh(cache, provider, clock):
    await cache.get_match("match-2")
    provider.update_rate_limit(remaining=0)
    clock.advance(hours=2)
    result = await cache.get_match("match-2")
    assert result.source == CacheSource.CACHE
    assert cache.worker.in_flight() == []
    assert provider.calls["get_match"] == 1


@pytest.mark.asyncio
async def test_miss_propagates_provider_errors(cache, provider):
    provider.fail_with = ProviderUnavailable("provider down")
    with pytest.raises(ProviderUnavailable):
        await cache.get_match("match-2")


@pytest.mark.asyncio
async def test_miss_with_exhausted_quota_raises(cache, provider):
    provider.update_rate_limit(remaining=0)
    with pytest.raises(QuotaExhausted):
        await cache.get_tournaments()


@pytest.mark.asyncio
async def test_unknown_entity_is_not_found(cache):
    with pytest.raises(EntityNotFound):
        await cache.get_match("no-such-match")


@pytest.mark.asyncio
async def test_background_failure_is_logged_not_raised(cache, provider, clock, caplog):
    caplog.set_level(logging.INFO, logger=CACHE_LOGGER_NAME)
    await cache.get_match("match-2")
    clock.advance(hours=2)
    provider.fail_with = ProviderUnavailable("provider down")

    result = await cache.get_match("match-2")
    assert result.source == CacheSource.CACHE_THEN_REFRESH
    await cache.worker.drain()

    assert "cache_event=refresh_failed" in caplog.text
    assert "provider down" in caplog.text
    # The stale copy is still there to serve.
    provider.fail_with = None
    assert (await cache.get_match("match-2")).payload.id == "match-2"


@pytest.mark.asyncio
async def test_overlapping_refresh_triggers_are_coalesced(cache, provider, clock):
    await cache.get_match("match-2")
    clock.advance(hours=2)
    first = await cache.get_match("match-2")
    second = await cache.get_match("match-2")
    assert first.source == second.source == CacheSource.CACHE_THEN_REFRESH
    assert len(cache.worker.in_flight()) == 1
    await cache.worker.drain()
    assert provider.calls["get_match"] == 2


@pytest.mark.asyncio
async def test_force_refresh_always_calls_provider(cache, provider):
    await cache.get_team("mi")
    result = await cache.force_refresh(EntityKind.TEAM, "mi")
    assert result.source == CacheSource.API
    assert provider.calls["get_team"] == 2


@pytest.mark.asyncio
async def test_match_upsert_is_idempotent(cache, db, provider):
    match = provider.matches["match-2"]
    await cache.store_matches([match])
    async with db.session() as session:
        before = (await session.execute(select(Match))).scalar_one()
        teams_before = (before.team_a_id, before.team_b_id)
    await cache.store_matches([match])

    assert await _count(db, Match) == 1
    assert await _count(db, Team) == 2
    async with db.session() as session:
        after = (await session.execute(select(Match))).scalar_one()
    assert (after.team_a_id, after.team_b_id) == teams_before


@pytest.mark.asyncio
async def test_team_known_by_name_adopts_provider_id(cache, db, provider, clock):
    async with db.session() as session:
        session.add(Team(external_id=None, name="Mumbai Indians", short_name="MI", last_synced_at=clock()))
    await cache.store_matches([provider.matches["match-1"]])

    assert await _count(db, Team) == 2
    async with db.session() as session:
        row = (await session.execute(select(Team).where(Team.name == "Mumbai Indians"))).scalar_one()
    assert row.external_id == "mi"


@pytest.mark.asyncio
async def test_team_returning_under_new_provider_id_keeps_its_row(db, clock):
    async with db.session() as session:
        repo = TeamRepository(session)
        first = await repo.materialize(TeamRef(id="Mumbai Indians", name="Mumbai Indians", short_name="MI"), clock())
        again = await repo.materialize(TeamRef(id="mi-uuid", name="Mumbai Indians", short_name="MI"), clock())
        assert again.id == first.id
        assert again.external_id == "Mumbai Indians"

    assert await _count(db, Team) == 1


@pytest.mark.asyncio
async def test_completed_match_is_never_rewritten(cache, provider, clock):
    original = (await cache.get_match("match-3")).payload
    provider.matches["match-3"].result = "Punjab Kings won by 2 runs"

    outcome = await cache.store_matches([provider.matches["match-3"]])
    assert outcome.skipped == 1 and outcome.written == 0

    refreshed = await cache.force_refresh(EntityKind.MATCH, "match-3")
    assert refreshed.payload.result == original.result

    clock.advance(days=30)
    assert (await cache.get_match("match-3")).source == CacheSource.CACHE


@pytest.mark.asyncio
async def test_live_score_carries_in_play_detail(cache):
    result = await cache.get_live_score("match-1")
    assert isinstance(result.payload, LiveMatch)
    assert result.payload.current_bowler.name == "Deepak Chahar"
    assert result.source == CacheSource.API


@pytest.mark.asyncio
async def test_match_stats_freeze_once_match_is_over(cache, provider, clock):
    live = await cache.get_match_stats("match-1")
    assert not live.payload.finalized

    provider.matches["match-1"].status = MatchStatus.COMPLETED
    provider.match_stats["match-1"] = [
        PlayerMatchStats(player_id="rohit", match_id="match-1", runs=88, balls_faced=55, fours=8, sixes=5)
    ]
    await cache.force_refresh(EntityKind.MATCH, "match-1")
    clock.advance(seconds=1)

    # The completion fetch runs once more and freezes the figures.
    await cache.get_match_stats("match-1")
    await cache.worker.drain()
    final = await cache.get_match_stats("match-1")
    assert final.payload.finalized
    by_player = {s.player_id: s for s in final.payload.stats}
    assert by_player["rohit"].runs == 88

    calls = provider.calls["get_all_player_match_stats"]
    clock.advance(days=3)
    assert (await cache.get_match_stats("match-1")).source == CacheSource.CACHE
    assert provider.calls["get_all_player_match_stats"] == calls


@pytest.mark.asyncio
async def test_completed_match_stats_are_final_on_first_fetch(cache):
    result = await cache.get_match_stats("match-3")
    assert result.source == CacheSource.API
    assert result.payload.finalized
    assert await cache.match_stats_finalized("match-3")


@pytest.mark.asyncio
async def test_squad_players_are_stored_individually(cache, db, provider, clock):
    squad = await cache.get_squad("mi")
    assert {p.id for p in squad.payload} == {"rohit", "bumrah", "hardik", "kishan", "surya"}
    cold = StalenessCache(db, provider, clock=clock)
    player = await cold.get_player("bumrah")
    assert player.source == CacheSource.CACHE
    assert provider.calls["get_player"] == 0


@pytest.mark.asyncio
async def test_career_not_found(cache):
    with pytest.raises(EntityNotFound):
        await cache.get_player_career("dhoni")


@pytest.mark.asyncio
async def test_stale_entities_lists_only_refetchable_rows(cache, provider, clock):
    await cache.get_tournaments()
    await cache.get_matches("ipl-2026")
    await cache.get_player("rohit")
    clock.advance(days=2)

    stale = set(await cache.stale_entities())
    assert (EntityKind.TOURNAMENT, "ipl-2026") in stale
    assert (EntityKind.MATCH, "match-2") in stale
    assert (EntityKind.MATCH, "match-1") in stale
    assert (EntityKind.MATCH, "match-3") not in stale
    assert (EntityKind.PLAYER, "rohit") in stale


@pytest.mark.asyncio
async def test_stats_report_occupancy(cache, clock):
    await cache.get_match("match-1")
    await cache.get_match("match-2")
    clock.advance(minutes=5)
    stats = cache.stats()
    assert stats["total_entries"] == 2
    assert stats["valid_entries"] == 1
    assert stats["capacity"] == 1000
    assert stats["in_flight_refreshes"] == 0


@pytest.mark.asyncio
async def test_team_ref_payload(cache):
    team = (await cache.get_team("csk")).payload
    assert isinstance(team, TeamRef)
    assert team.short_name == "CSK"
