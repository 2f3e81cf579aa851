"""
CricketData.org (cricapi.com) provider over httpx.

Query-param authentication, `{status, data, info}` envelopes, 100 requests/day
on the free tier. Quota is tracked from `X-RateLimit-*` headers when present,
otherwise from the body's `info.hitsToday` / `info.hitsLimit`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from core.errors import MalformedUpstreamData, ProviderUnavailable, QuotaExhausted
from ingestion.connectors.base import CricketAPIProvider, utc_now
from ingestion.mapping import (
    map_match_format,
    map_match_status,
    map_player_role,
    map_tournament_status,
    overs_to_balls,
    parse_career_stats,
)
from ingestion.schema import (
    BasicMatch,
    CareerStats,
    LiveBatsman,
    LiveBowler,
    LiveMatch,
    MatchPayload,
    MatchScore,
    MatchStatus,
    Player,
    PlayerMatchStats,
    PlayerRole,
    ScoreSnapshot,
    TeamRef,
    Tournament,
)

logger = logging.getLogger(__name__)

_LIVE_DETAIL_KEYS = ("batsmen", "currentBatsmen", "bowler", "currentBowler", "recentBalls")
_QUOTA_HINTS = ("limit", "quota", "blocked", "hits today exceeded")


def _required(raw: Dict[str, Any], key: str, what: str) -> str:
    value = raw.get(key)
    if value is None or not str(value).strip():
        raise MalformedUpstreamData(f"{what}: missing required field {key!r}")
    return str(value).strip()


def _parse_datetime(value: Any, fallback: Optional[datetime] = None) -> datetime:
    if isinstance(value, str) and value.strip():
        s = value.strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as e:
            raise MalformedUpstreamData(f"invalid datetime {value!r}: {e}") from e
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    if fallback is not None:
        return fallback
    raise MalformedUpstreamData("datetime is required")


def _num(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any) -> int:
    return int(_num(value))


def map_team(info: Optional[Dict[str, Any]], fallback_name: Optional[str], slot: str) -> TeamRef:
    """Team from `teamInfo[i]`, falling back to the bare name in `teams[i]`."""
    info = info or {}
    name = info.get("name") or fallback_name
    if not name:
        raise MalformedUpstreamData(f"match team {slot}: no name or teamInfo")
    return TeamRef(
        id=str(info.get("id") or name),
        name=str(name),
        short_name=str(info.get("shortname") or str(name)[:3].upper()),
        logo_url=info.get("img"),
    )


def _map_score(raw_scores: Any) -> Optional[MatchScore]:
    if not isinstance(raw_scores, list) or not raw_scores:
        return None

    def snapshot(entry: Any) -> Optional[ScoreSnapshot]:
        if not isinstance(entry, dict):
            return None
        overs = _num(entry.get("o"))
        runs = _int(entry.get("r"))
        balls = overs_to_balls(overs)
        return ScoreSnapshot(
            runs=runs,
            wickets=_int(entry.get("w")),
            overs=overs,
            run_rate=round(runs * 6 / balls, 2) if balls else 0.0,
            innings=_int(entry.get("inning") or 1),
        )

    return MatchScore(
        team_a=snapshot(raw_scores[0]),
        team_b=snapshot(raw_scores[1]) if len(raw_scores) > 1 else None,
    )


def map_match(raw: Dict[str, Any], now: Optional[datetime] = None) -> BasicMatch:
    match_id = _required(raw, "id", "match")
    teams = raw.get("teams") or []
    infos = raw.get("teamInfo") or []
    team_a = map_team(infos[0] if len(infos) > 0 else None, teams[0] if len(teams) > 0 else None, "A")
    team_b = map_team(infos[1] if len(infos) > 1 else None, teams[1] if len(teams) > 1 else None, "B")
    return BasicMatch(
        id=match_id,
        name=raw.get("name") or f"{team_a.name} vs {team_b.name}",
        format=map_match_format(raw.get("matchType")),
        status=map_match_status(raw.get("status"), raw.get("matchStarted"), raw.get("matchEnded")),
        venue=raw.get("venue") or "TBD",
        start_time=_parse_datetime(raw.get("dateTimeGMT") or raw.get("date"), fallback=now),
        team_a=team_a,
        team_b=team_b,
        tournament_id=raw.get("series_id"),
        result=raw.get("status"),
        score=_map_score(raw.get("score")),
    )


def map_match_payload(raw: Dict[str, Any], now: Optional[datetime] = None) -> MatchPayload:
    """Classify a match payload once, at the boundary, into BasicMatch or LiveMatch."""
    basic = map_match(raw, now)
    if not any(key in raw for key in _LIVE_DETAIL_KEYS):
        return basic

    batsmen = []
    for b in raw.get("batsmen") or raw.get("currentBatsmen") or []:
        if not isinstance(b, dict):
            continue
        batsmen.append(
            LiveBatsman(
                player_id=str(b.get("id") or b.get("playerId") or ""),
                name=str(b.get("name") or ""),
                runs=_int(b.get("r")),
                balls=_int(b.get("b")),
                fours=_int(b.get("4s")),
                sixes=_int(b.get("6s")),
                strike_rate=_num(b.get("sr")),
                on_strike=bool(b.get("onStrike")),
            )
        )
    bowler_raw = raw.get("bowler") or raw.get("currentBowler")
    bowler = None
    if isinstance(bowler_raw, dict):
        bowler = LiveBowler(
            player_id=str(bowler_raw.get("id") or bowler_raw.get("playerId") or ""),
            name=str(bowler_raw.get("name") or ""),
            overs=_num(bowler_raw.get("o")),
            maidens=_int(bowler_raw.get("m")),
            runs=_int(bowler_raw.get("r")),
            wickets=_int(bowler_raw.get("w")),
            economy=_num(bowler_raw.get("eco")),
        )
    return LiveMatch(
        **basic.model_dump(exclude={"kind"}),
        current_batsmen=batsmen,
        current_bowler=bowler,
        recent_balls=[str(x) for x in raw.get("recentBalls") or []],
        last_wicket=raw.get("lastWicket"),
    )


def as_live_match(payload: MatchPayload) -> LiveMatch:
    if isinstance(payload, LiveMatch):
        return payload
    if isinstance(payload, BasicMatch):
        return LiveMatch(**payload.model_dump(exclude={"kind"}))
    raise TypeError(f"unexpected match payload {type(payload).__name__}")


def map_tournament(raw: Dict[str, Any], now: datetime) -> Tournament:
    tournament_id = _required(raw, "id", "series")
    name = _required(raw, "name", "series")
    start = _parse_datetime(raw.get("startDate"), fallback=now)
    end = _parse_datetime(raw.get("endDate"), fallback=start)
    match_list = raw.get("matchList")
    if not isinstance(match_list, list):
        match_list = []
    first_type = match_list[0].get("matchType") if match_list and isinstance(match_list[0], dict) else None
    if raw.get("t20"):
        first_type = first_type or "t20"
    elif raw.get("odi"):
        first_type = first_type or "odi"
    elif raw.get("test"):
        first_type = first_type or "test"
    return Tournament(
        id=tournament_id,
        name=name,
        short_name=name.split(" ")[0],
        start_date=start,
        end_date=end,
        format=map_match_format(first_type or raw.get("matchType")),
        team_count=_int(raw.get("squads") or raw.get("teams") or 0),
        match_count=len(match_list) or _int(raw.get("matches")),
        status=map_tournament_status(start, end, now, raw.get("status")),
    )


def map_player(raw: Dict[str, Any], team_id: Optional[str] = None) -> Player:
    return Player(
        id=_required(raw, "id", "player"),
        name=_required(raw, "name", "player"),
        role=map_player_role(raw.get("role")),
        team_id=team_id or raw.get("teamId"),
        batting_style=raw.get("battingStyle"),
        bowling_style=raw.get("bowlingStyle"),
        country=raw.get("country"),
    )


def _entry_player_id(entry: Dict[str, Any], nested: str) -> Optional[str]:
    inner = entry.get(nested)
    if isinstance(inner, dict) and inner.get("id"):
        return str(inner["id"])
    pid = entry.get("player_id") or entry.get("id")
    return str(pid) if pid else None


def map_scorecard(data: Dict[str, Any], match_id: str) -> List[PlayerMatchStats]:
    """Fold every innings of a scorecard into one stats record per player."""
    innings = data.get("scorecard")
    if not isinstance(innings, list):
        innings = [data]

    by_player: Dict[str, PlayerMatchStats] = {}

    def record(player_id: str) -> PlayerMatchStats:
        if player_id not in by_player:
            by_player[player_id] = PlayerMatchStats(player_id=player_id, match_id=match_id)
        return by_player[player_id]

    for inning in innings:
        if not isinstance(inning, dict):
            continue
        for bat in inning.get("batting") or []:
            pid = _entry_player_id(bat, "batsman")
            if not pid:
                logger.warning("Skipping batting row without player id in match %s", match_id)
                continue
            s = record(pid)
            dismissal = bat.get("dismissal") or bat.get("dismissal-text")
            s.runs += _int(bat.get("r"))
            s.balls_faced += _int(bat.get("b"))
            s.fours += _int(bat.get("4s"))
            s.sixes += _int(bat.get("6s"))
            s.strike_rate = round(s.runs * 100 / s.balls_faced, 2) if s.balls_faced else 0.0
            if dismissal and str(dismissal).strip().lower() != "not out":
                s.is_out = True
                s.dismissal = str(dismissal)
        for bowl in inning.get("bowling") or []:
            pid = _entry_player_id(bowl, "bowler")
            if not pid:
                logger.warning("Skipping bowling row without player id in match %s", match_id)
                continue
            s = record(pid)
            s.overs += _num(bowl.get("o"))
            s.maidens += _int(bowl.get("m"))
            s.runs_conceded += _int(bowl.get("r"))
            s.wickets += _int(bowl.get("w"))
            s.economy = round(s.runs_conceded / s.overs, 2) if s.overs else 0.0
        for field in inning.get("catching") or []:
            pid = _entry_player_id(field, "catcher")
            if not pid:
                continue
            s = record(pid)
            s.catches += _int(field.get("catch"))
            s.stumpings += _int(field.get("stumped"))
            s.run_outs_direct += _int(field.get("runout"))
    return list(by_player.values())


class CricketDataProvider(CricketAPIProvider):
    """Live provider. All requests go through `_get`, which charges the quota."""

    name = "cricketdata"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.cricapi.com/v1",
        timeout_seconds: float = 12.0,
        daily_limit: int = 100,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(daily_limit=daily_limit, clock=clock)
        if not base_url.startswith("http"):
            raise ValueError("CRICKET_API_BASE_URL must start with http/https")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _update_quota_from_response(self, response: httpx.Response, body: Dict[str, Any]) -> None:
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is not None:
            try:
                self.update_rate_limit(remaining=int(remaining))
            except ValueError:
                logger.debug("Ignoring non-integer X-RateLimit-Remaining=%r", remaining)
        if reset is not None:
            try:
                self.update_rate_limit(reset_at=datetime.fromtimestamp(int(reset), tz=timezone.utc))
            except (ValueError, OverflowError):
                logger.debug("Ignoring invalid X-RateLimit-Reset=%r", reset)
        info = body.get("info")
        if remaining is None and isinstance(info, dict) and info.get("hitsLimit") is not None:
            limit = _int(info.get("hitsLimit"))
            self.update_rate_limit(remaining=limit - _int(info.get("hitsToday")), limit=limit)

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self._consume_quota()
        query = dict(params or {})
        query["apikey"] = self._api_key
        url = f"{self._base_url}/{endpoint.lstrip('/')}"

        try:
            response = await self._client.get(url, params=query)
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Network error calling {endpoint}: {e}") from e

        if response.status_code == 429:
            self.update_rate_limit(remaining=0)
            raise QuotaExhausted(f"{endpoint}: rate limited (HTTP 429)", reset_at=self._reset_at)
        if response.status_code != 200:
            raise ProviderUnavailable(
                f"{endpoint}: HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedUpstreamData(f"{endpoint}: invalid JSON response: {e}") from e
        if not isinstance(body, dict):
            raise MalformedUpstreamData(f"{endpoint}: expected JSON object envelope")

        self._update_quota_from_response(response, body)

        if body.get("status") != "success":
            reason = str(body.get("reason") or body.get("message") or "Unknown API error")
            if any(hint in reason.lower() for hint in _QUOTA_HINTS):
                self.update_rate_limit(remaining=0)
                raise QuotaExhausted(f"{endpoint}: {reason}", reset_at=self._reset_at)
            raise ProviderUnavailable(f"{endpoint}: {reason}")
        return body

    def _map_each(self, items: Any, mapper: Callable[[Dict[str, Any]], Any], what: str) -> List[Any]:
        """Map a batch; a malformed item is logged and skipped, the rest continue."""
        out = []
        for raw in items if isinstance(items, list) else []:
            if not isinstance(raw, dict):
                continue
            try:
                out.append(mapper(raw))
            except MalformedUpstreamData as e:
                logger.warning("Skipping malformed %s from %s: %s", what, self.name, e)
        return out

    async def get_tournaments(self) -> List[Tournament]:
        body = await self._get("series")
        now = self._clock()
        return self._map_each(body.get("data"), lambda raw: map_tournament(raw, now), "series")

    async def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        body = await self._get("series_info", {"id": tournament_id})
        data = body.get("data")
        if not data:
            return None
        info = data.get("info", data)
        if "matchList" in data and "matchList" not in info:
            info = {**info, "matchList": data["matchList"]}
        return map_tournament(info, self._clock())

    async def get_matches(
        self,
        tournament_id: Optional[str] = None,
        status: Optional[MatchStatus] = None,
    ) -> List[BasicMatch]:
        now = self._clock()
        if tournament_id:
            body = await self._get("series_info", {"id": tournament_id})
            items = (body.get("data") or {}).get("matchList") or []
        else:
            body = await self._get("currentMatches")
            items = body.get("data") or []
        matches = self._map_each(items, lambda raw: map_match(raw, now), "match")
        if tournament_id:
            for m in matches:
                m.tournament_id = m.tournament_id or tournament_id
        if status is not None:
            matches = [m for m in matches if m.status == status]
        return matches

    async def get_match(self, match_id: str) -> Optional[BasicMatch]:
        body = await self._get("match_info", {"id": match_id})
        if not body.get("data"):
            return None
        return map_match(body["data"], self._clock())

    async def get_live_score(self, match_id: str) -> Optional[LiveMatch]:
        body = await self._get("match_info", {"id": match_id})
        if not body.get("data"):
            return None
        return as_live_match(map_match_payload(body["data"], self._clock()))

    async def get_team(self, team_id: str) -> Optional[TeamRef]:
        # No team endpoint upstream; teams are only known through match payloads.
        for match in await self.get_matches():
            for team in (match.team_a, match.team_b):
                if team.id == team_id:
                    return team
        return None

    async def get_players(
        self,
        team_id: Optional[str] = None,
        role: Optional[PlayerRole] = None,
        search: Optional[str] = None,
    ) -> List[Player]:
        params = {"search": search} if search else None
        body = await self._get("players", params)
        # The endpoint is not team-scoped; keep only players the provider itself places in the team.
        players = self._map_each(body.get("data"), map_player, "player")
        if team_id:
            players = [p for p in players if p.team_id == team_id]
        if role is not None:
            players = [p for p in players if p.role == role]
        return players

    async def get_player(self, player_id: str) -> Optional[Player]:
        body = await self._get("players_info", {"id": player_id})
        if not body.get("data"):
            return None
        return map_player(body["data"])

    async def get_squad(self, team_id: str, tournament_id: Optional[str] = None) -> List[Player]:
        if not tournament_id:
            return await self.get_players(team_id=team_id)
        body = await self._get("series_squad", {"id": tournament_id})
        for squad in body.get("data") or []:
            if not isinstance(squad, dict):
                continue
            if team_id in (squad.get("teamId"), squad.get("teamName"), squad.get("shortname")):
                return self._map_each(
                    squad.get("players"), lambda raw: map_player(raw, team_id), "squad player"
                )
        return []

    async def get_player_career_stats(self, player_id: str) -> Optional[CareerStats]:
        body = await self._get("players_info", {"id": player_id})
        data = body.get("data")
        if not data:
            return None
        stats = parse_career_stats(data.get("stats") or [])
        stats.player_id = player_id
        return stats

    async def get_all_player_match_stats(self, match_id: str) -> List[PlayerMatchStats]:
        body = await self._get("match_scorecard", {"id": match_id})
        data = body.get("data")
        if not data:
            return []
        return map_scorecard(data, match_id)
