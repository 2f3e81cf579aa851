"""CricketData.org client: envelope handling, quota tracking and payload mapping over a mock transport."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from core.errors import MalformedUpstreamData, ProviderUnavailable, QuotaExhausted
from ingestion.connectors.cricketdata import (
    CricketDataProvider,
    map_match,
    map_match_payload,
    map_scorecard,
    map_tournament,
)
from ingestion.schema import BasicMatch, LiveMatch, MatchFormat, MatchStatus, TournamentStatus

NOW = datetime(2026, 4, 10, 14, 0, tzinfo=timezone.utc)

RAW_MATCH = {
    "id": "m-100",
    "name": "Mumbai Indians vs Chennai Super Kings, 12th Match",
    "matchType": "t20",
    "status": "Mumbai Indians won by 5 wkts",
    "venue": "Wankhede Stadium, Mumbai",
    "dateTimeGMT": "2026-04-09T14:00:00",
    "teams": ["Mumbai Indians", "Chennai Super Kings"],
    "teamInfo": [
        {"name": "Mumbai Indians", "shortname": "MI", "img": "https://img/mi.png", "id": "t-mi"},
        {"name": "Chennai Super Kings", "shortname": "CSK", "img": "https://img/csk.png"},
    ],
    "score": [
        {"r": 180, "w": 6, "o": 20, "inning": "Chennai Super Kings Inning 1"},
        {"r": 181, "w": 5, "o": 19.3, "inning": "Mumbai Indians Inning 1"},
    ],
    "series_id": "s-ipl",
    "matchStarted": True,
    "matchEnded": True,
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _provider(handler, daily_limit: int = 100) -> CricketDataProvider:
    return CricketDataProvider(
        api_key="k",
        base_url="https://api.example.test/v1",
        daily_limit=daily_limit,
        client=_client(handler),
        clock=lambda: NOW,
    )


def test_map_match_basic_fields():
    match = map_match(RAW_MATCH, NOW)
    assert isinstance(match, BasicMatch)
    assert match.status == MatchStatus.COMPLETED
    assert match.format == MatchFormat.T20
    assert match.team_a.id == "t-mi"
    # No provider id for the second team: the name stands in for it.
    assert match.team_b.id == "Chennai Super Kings"
    assert match.team_b.short_name == "CSK"
    assert match.start_time == datetime(2026, 4, 9, 14, 0, tzinfo=timezone.utc)
    assert match.score.team_b.overs == 19.3
    assert match.tournament_id == "s-ipl"


def test_map_match_requires_id():
    raw = {k: v for k, v in RAW_MATCH.items() if k != "id"}
    with pytest.raises(MalformedUpstreamData):
        map_match(raw, NOW)


def test_payload_classified_by_live_detail():
    assert isinstance(map_match_payload(RAW_MATCH, NOW), BasicMatch)
    assert not isinstance(map_match_payload(RAW_MATCH, NOW), LiveMatch)
    live_raw = {
        **RAW_MATCH,
        "status": "Live",
        "matchEnded": False,
        "batsmen": [{"id": "p1", "name": "Rohit Sharma", "r": 30, "b": 20, "4s": 3, "6s": 1, "sr": 150}],
        "bowler": {"id": "p2", "name": "Deepak Chahar", "o": 2, "r": 15, "w": 1, "eco": 7.5},
        "recentBalls": [1, 4, "W"],
    }
    live = map_match_payload(live_raw, NOW)
    assert isinstance(live, LiveMatch)
    assert live.kind == "live"
    assert live.current_batsmen[0].runs == 30
    assert live.current_bowler.wickets == 1
    assert live.recent_balls == ["1", "4", "W"]


def test_map_tournament():
    raw = {
        "id": "s-ipl",
        "name": "Indian Premier League 2026",
        "startDate": "2026-03-22",
        "endDate": "2026-05-28",
        "t20": 74,
        "squads": 10,
        "matches": 74,
    }
    tournament = map_tournament(raw, NOW)
    assert tournament.short_name == "Indian"
    assert tournament.format == MatchFormat.T20
    assert tournament.status == TournamentStatus.ACTIVE
    assert tournament.team_count == 10
    assert tournament.match_count == 74


def test_map_scorecard_folds_innings():
    data = {
        "scorecard": [
            {
                "batting": [
                    {"batsman": {"id": "p1", "name": "A"}, "r": 52, "b": 30, "4s": 4, "6s": 2, "dismissal-text": "c X b Y"},
                    {"batsman": {"id": "p3", "name": "C"}, "r": 0, "b": 2, "dismissal-text": "not out"},
                ],
                "bowling": [{"bowler": {"id": "p2", "name": "B"}, "o": 4, "m": 1, "r": 22, "w": 3}],
                "catching": [{"catcher": {"id": "p2", "name": "B"}, "catch": 1}],
            },
            {"batting": [{"batsman": {"id": "p2", "name": "B"}, "r": 10, "b": 8}]},
        ]
    }
    stats = {s.player_id: s for s in map_scorecard(data, "m-100")}
    assert stats["p1"].runs == 52 and stats["p1"].is_out
    assert not stats["p3"].is_out
    assert stats["p2"].wickets == 3 and stats["p2"].catches == 1 and stats["p2"].runs == 10
    assert stats["p2"].economy == 5.5


@pytest.mark.asyncio
async def test_get_match_sends_api_key_and_tracks_quota():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["apikey"] = request.url.params.get("apikey")
        seen["id"] = request.url.params.get("id")
        return httpx.Response(
            200,
            json={"status": "success", "data": RAW_MATCH, "info": {"hitsToday": 40, "hitsLimit": 100}},
        )

    provider = _provider(handler)
    match = await provider.get_match("m-100")
    await provider.aclose()
    assert match.id == "m-100"
    assert seen == {"apikey": "k", "id": "m-100"}
    assert provider.get_rate_limit_info().remaining == 60


@pytest.mark.asyncio
async def test_rate_limit_headers_win_over_body():
    def handler(request):
        return httpx.Response(
            200,
            headers={"X-RateLimit-Remaining": "7"},
            json={"status": "success", "data": [], "info": {"hitsToday": 1, "hitsLimit": 100}},
        )

    provider = _provider(handler)
    assert await provider.get_matches() == []
    assert provider.get_rate_limit_info().remaining == 7


@pytest.mark.asyncio
async def test_http_429_is_quota_exhausted():
    provider = _provider(lambda request: httpx.Response(429, text="slow down"))
    with pytest.raises(QuotaExhausted) as exc:
        await provider.get_tournaments()
    assert exc.value.reset_at is not None
    assert provider.get_rate_limit_info().remaining == 0


@pytest.mark.asyncio
async def test_failure_envelope_with_limit_reason_is_quota_exhausted():
    provider = _provider(lambda request: httpx.Response(200, json={"status": "failure", "reason": "hits today exceeded hits limit"}))
    with pytest.raises(QuotaExhausted):
        await provider.get_tournaments()


@pytest.mark.asyncio
async def test_server_error_is_provider_unavailable():
    provider = _provider(lambda request: httpx.Response(503, text="down"))
    with pytest.raises(ProviderUnavailable) as exc:
        await provider.get_tournaments()
    assert exc.value.status_code == 503
    assert not isinstance(exc.value, QuotaExhausted)


@pytest.mark.asyncio
async def test_network_error_is_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(handler)
    with pytest.raises(ProviderUnavailable):
        await provider.get_match("m-100")


@pytest.mark.asyncio
async def test_local_quota_stops_calls_before_the_network():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "success", "data": []})

    provider = _provider(handler, daily_limit=1)
    await provider.get_matches()
    with pytest.raises(QuotaExhausted):
        await provider.get_matches()
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_malformed_items_are_skipped_in_batches():
    broken = {k: v for k, v in RAW_MATCH.items() if k != "id"}

    def handler(request):
        return httpx.Response(200, json={"status": "success", "data": [RAW_MATCH, broken]})

    provider = _provider(handler)
    matches = await provider.get_matches()
    assert [m.id for m in matches] == ["m-100"]


@pytest.mark.asyncio
async def test_career_stats_from_player_info():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "status": "success",
                "data": {
                    "id": "p1",
                    "name": "Rohit Sharma",
                    "role": "Batsman",
                    "stats": [
                        {"fn": "batting", "matchtype": "t20i", "stat": "m", "value": "150"},
                        {"fn": "batting", "matchtype": "t20i", "stat": "sr", "value": "140.5"},
                    ],
                },
            },
        )

    provider = _provider(handler)
    career = await provider.get_player_career_stats("p1")
    assert career.player_id == "p1"
    assert career.batting["t20i"].strike_rate == 140.5


@pytest.mark.asyncio
async def test_squad_without_tournament_keeps_provider_teams():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "status": "success",
                "data": [
                    {"id": "p1", "name": "Player One", "role": "Batsman"},
                    {"id": "p2", "name": "Player Two", "role": "Bowler", "teamId": "t-other"},
                    {"id": "p3", "name": "Player Three", "role": "Bowler", "teamId": "t-mi"},
                ],
            },
        )

    provider = _provider(handler)
    squad = await provider.get_squad("t-mi")
    assert [(p.id, p.team_id) for p in squad] == [("p3", "t-mi")]

    everyone = await provider.get_players()
    assert {p.id: p.team_id for p in everyone} == {"p1": None, "p2": "t-other", "p3": "t-mi"}
