"""HTTP surface via ASGITransport: envelopes, error mapping and contest flows."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from core.errors import ProviderUnavailable, QuotaExhausted
from main import app
from tests.factories import VALID_ROSTER, add_contest


@pytest_asyncio.fixture
async def client(cache, provider):
    app.state.cache = cache
    app.state.provider = provider
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_reads_report_cache_source(client):
    first = await client.get("/api/v1/cricket/matches/match-2")
    assert first.status_code == 200
    assert first.json()["source"] == "api"
    assert first.json()["data"]["team_a"]["short_name"] == "RCB"

    second = await client.get("/api/v1/cricket/matches/match-2")
    assert second.json()["source"] == "cache"


@pytest.mark.asyncio
async def test_tournaments_and_matches(client):
    r = await client.get("/api/v1/cricket/tournaments")
    assert r.status_code == 200
    assert {t["id"] for t in r.json()["data"]} == {"ipl-2026", "t20-wc-2026"}

    r = await client.get("/api/v1/cricket/matches", params={"tournament_id": "ipl-2026"})
    assert [m["id"] for m in r.json()["data"]] == ["match-1", "match-2", "match-3"]


@pytest.mark.asyncio
async def test_live_score(client):
    r = await client.get("/api/v1/cricket/matches/match-1/live")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["kind"] == "live"
    assert data["current_batsmen"][0]["name"] == "Rohit Sharma"


@pytest.mark.asyncio
async def test_player_credits(client):
    r = await client.get("/api/v1/cricket/players/kohli/credits")
    assert r.status_code == 200
    body = r.json()["data"]
    assert body["credits"] == 8.5
    assert body["stats"] is None

    r = await client.get("/api/v1/cricket/players/bumrah/credits", params={"format": "T20"})
    body = r.json()["data"]
    assert 6.0 <= body["credits"] <= 11.5
    assert body["stats"]["wickets"] == 160


@pytest.mark.asyncio
async def test_unknown_entity_is_404(client):
    r = await client.get("/api/v1/cricket/players/ghost")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_provider_failure_on_miss_is_503(client, provider):
    provider.fail_with = ProviderUnavailable("provider down")
    r = await client.get("/api/v1/cricket/teams/mi")
    assert r.status_code == 503
    assert "Retry-After" not in r.headers


@pytest.mark.asyncio
async def test_quota_exhausted_sets_retry_after(client, provider):
    provider.update_rate_limit(remaining=0)
    r = await client.get("/api/v1/cricket/tournaments")
    assert r.status_code == 503
    assert "Retry-After" in r.headers


@pytest.mark.asyncio
async def test_rate_limit_and_cache_stats(client):
    await client.get("/api/v1/cricket/matches/match-1")
    r = await client.get("/api/v1/cricket/rate-limit")
    assert r.json()["limit"] == 1000
    assert r.json()["remaining"] == 999
    r = await client.get("/api/v1/cricket/cache/stats")
    assert r.json()["total_entries"] == 1


@pytest.mark.asyncio
async def test_sync_endpoint(client):
    r = await client.post("/api/v1/cricket/sync/matches", json={"tournament_id": "ipl-2026"})
    assert r.status_code == 200
    assert r.json()["synced"] == 3
    r = await client.post("/api/v1/cricket/sync/everything")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_live_points(client):
    r = await client.get("/api/v1/scoring/live", params={"match_id": "match-3"})
    assert r.status_code == 200
    body = r.json()
    assert body["finalized"] is True
    assert body["players"][0]["player_id"] == "rohit"
    assert "67 runs → +67" in body["players"][0]["breakdown"]


@pytest.mark.asyncio
async def test_contest_flow(client, db):
    async with db.session() as session:
        contest_id = (await add_contest(session, match_id="match-3")).id

    roster = {"name": "Delhi XI", "player_ids": VALID_ROSTER, "captain_id": "rohit", "vice_captain_id": "bumrah"}
    r = await client.post(f"/api/v1/contests/{contest_id}/entries", params={"user_id": "u1"}, json=roster)
    assert r.status_code == 201, r.text
    entry_id = r.json()["entry_id"]

    bad = {**roster, "player_ids": VALID_ROSTER[:9]}
    r = await client.post(f"/api/v1/contests/{contest_id}/entries", params={"user_id": "u2"}, json=bad)
    assert r.status_code == 422
    assert r.json()["reasons"]

    same = {**roster, "vice_captain_id": "rohit"}
    r = await client.post(f"/api/v1/contests/{contest_id}/entries", params={"user_id": "u3"}, json=same)
    assert r.status_code == 422

    r = await client.post(f"/api/v1/contests/{contest_id}/leaderboard")
    assert r.status_code == 200
    assert r.json()["ranks"] == [{"entry_id": entry_id, "rank": 1, "points": 345.0}]

    r = await client.get(f"/api/v1/contests/{contest_id}/leaderboard", params={"user_id": "u1"})
    board = r.json()
    assert board["total_entries"] == 1
    assert board["current_user_entry"]["entry_id"] == entry_id
    assert board["entries"][0]["rank_change"] == "same"


@pytest.mark.asyncio
async def test_leaderboard_unknown_contest(client):
    r = await client.get("/api/v1/contests/missing/leaderboard")
    assert r.status_code == 404
