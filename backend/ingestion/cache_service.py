"""
Staleness cache: cache-aside access to provider data over the persistent store.

Per entity the decision is:
  - no record in memory or store -> fetch synchronously, persist, return (source "api");
    provider errors propagate to the caller.
  - record older than its threshold -> return it now (source
    "cache-then-background-refresh") and hand a refresh to the RefreshWorker;
    refresh errors are logged, never raised.
  - otherwise -> return the record (source "cache"), no network.

The cache is an explicit instance built at startup; it opens its own sessions
through the DatabaseManager so background refreshes never borrow a request's session.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.database import DatabaseManager
from core.errors import EntityNotFound, QuotaExhausted
from core.timeutil import as_utc, utc_now
from ingestion import cache_events
from ingestion.connectors.base import CricketAPIProvider
from ingestion.memory_cache import CacheKey, CacheRecord, MemoryCache
from ingestion.schema import (
    BasicMatch,
    CacheSource,
    CareerStats,
    LiveMatch,
    MatchStatsSnapshot,
    MatchStatus,
    Player,
    PlayerMatchStats,
    RateLimitInfo,
    TeamRef,
    Tournament,
    basic_view,
)
from ingestion.staleness import EntityKind, StalenessPolicy
from repositories.match_repo import MatchRepository
from repositories.player_match_stats_repo import PlayerMatchStatsRepository, match_stats_to_canonical
from repositories.player_repo import PlayerRepository, career_to_canonical, player_to_canonical
from repositories.team_repo import TeamRepository, team_to_canonical
from repositories.tournament_repo import TournamentRepository, tournament_to_canonical

logger = logging.getLogger(__name__)

Loader = Callable[[AsyncSession, str], Awaitable[Optional[CacheRecord]]]
Fetcher = Callable[[str], Awaitable[CacheRecord]]


@dataclass
class CacheResult:
    payload: Any
    source: CacheSource
    synced_at: datetime


@dataclass
class MatchWriteOutcome:
    stored: List[BasicMatch]
    written: int
    skipped: int


class RefreshWorker:
    """
    Owns background refresh tasks, at most one per entity key.

    A trigger for a key that already has a task in flight is coalesced into it.
    """

    def __init__(self) -> None:
        self._tasks: Dict[CacheKey, asyncio.Task] = {}

    def submit(self, key: CacheKey, job: Callable[[], Awaitable[Any]]) -> bool:
        """Start `job` for `key`; False if a refresh for `key` is already running."""
        current = self._tasks.get(key)
        if current is not None and not current.done():
            return False
        task = asyncio.create_task(self._run(key, job), name=f"refresh:{key[0]}:{key[1]}")
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return True

    def _forget(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def _run(self, key: CacheKey, job: Callable[[], Awaitable[Any]]) -> None:
        kind, entity_id = key
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Background refresh of %s %s failed: %s", kind, entity_id, e, exc_info=True)
            cache_events.log_refresh_failed(kind, entity_id, str(e))

    def in_flight(self) -> List[CacheKey]:
        return [key for key, task in self._tasks.items() if not task.done()]

    async def drain(self) -> None:
        """Wait until every refresh (including ones started meanwhile) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()


class StalenessCache:
    """Cache-aside layer between the provider, the bounded memory map and the store."""

    def __init__(
        self,
        db: DatabaseManager,
        provider: CricketAPIProvider,
        policy: Optional[StalenessPolicy] = None,
        capacity: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self.provider = provider
        self.policy = policy or StalenessPolicy()
        self.memory = MemoryCache(capacity)
        self.worker = RefreshWorker()
        self._clock = clock

        # List and live kinds are memory-only: their rows are persisted, but the
        # store cannot tell a complete list from rows written one at a time.
        self._loaders: Dict[EntityKind, Loader] = {
            EntityKind.TOURNAMENT: self._load_tournament,
            EntityKind.MATCH: self._load_match,
            EntityKind.TEAM: self._load_team,
            EntityKind.PLAYER: self._load_player,
            EntityKind.PLAYER_CAREER: self._load_player_career,
            EntityKind.MATCH_STATS: self._load_match_stats,
        }
        self._fetchers: Dict[EntityKind, Fetcher] = {
            EntityKind.TOURNAMENT: self._fetch_tournament,
            EntityKind.TOURNAMENT_LIST: self._fetch_tournament_list,
            EntityKind.MATCH: self._fetch_match,
            EntityKind.MATCH_LIST: self._fetch_match_list,
            EntityKind.LIVE_SCORE: self._fetch_live_score,
            EntityKind.TEAM: self._fetch_team,
            EntityKind.PLAYER: self._fetch_player,
            EntityKind.SQUAD: self._fetch_squad,
            EntityKind.PLAYER_CAREER: self._fetch_player_career,
            EntityKind.MATCH_STATS: self._fetch_match_stats,
        }

    # Public reads

    async def get_tournaments(self) -> CacheResult:
        return await self._get(EntityKind.TOURNAMENT_LIST, "all")

    async def get_tournament(self, tournament_id: str) -> CacheResult:
        return await self._get(EntityKind.TOURNAMENT, tournament_id)

    async def get_matches(self, tournament_id: Optional[str] = None) -> CacheResult:
        return await self._get(EntityKind.MATCH_LIST, tournament_id or "current")

    async def get_match(self, match_id: str) -> CacheResult:
        return await self._get(EntityKind.MATCH, match_id)

    async def get_live_score(self, match_id: str) -> CacheResult:
        return await self._get(EntityKind.LIVE_SCORE, match_id)

    async def get_team(self, team_id: str) -> CacheResult:
        return await self._get(EntityKind.TEAM, team_id)

    async def get_player(self, player_id: str) -> CacheResult:
        return await self._get(EntityKind.PLAYER, player_id)

    async def get_squad(self, team_id: str, tournament_id: Optional[str] = None) -> CacheResult:
        return await self._get(EntityKind.SQUAD, squad_key(team_id, tournament_id))

    async def get_player_career(self, player_id: str) -> CacheResult:
        return await self._get(EntityKind.PLAYER_CAREER, player_id)

    async def get_match_stats(self, match_id: str) -> CacheResult:
        # The stats threshold follows the match lifecycle, so the match must be known first.
        await self.get_match(match_id)
        return await self._get(EntityKind.MATCH_STATS, match_id)

    async def force_refresh(self, kind: EntityKind | str, entity_id: str) -> CacheResult:
        """Fetch synchronously regardless of age."""
        kind = EntityKind(kind)
        record = await self._fetch(kind, entity_id)
        return CacheResult(record.payload, CacheSource.API, record.synced_at)

    def invalidate(self, kind: EntityKind | str, entity_id: str) -> bool:
        return self.memory.invalidate(EntityKind(kind).value, entity_id)

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.provider.get_rate_limit_info()

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        valid = 0
        for record in self.memory:
            threshold = self._threshold(record)
            if threshold is None or now - record.synced_at <= threshold:
                valid += 1
        return {
            "total_entries": len(self.memory),
            "valid_entries": valid,
            "capacity": self.memory.capacity,
            "in_flight_refreshes": len(self.worker.in_flight()),
        }

    async def shutdown(self) -> None:
        await self.worker.shutdown()

    # Decision

    async def _get(self, kind: EntityKind, entity_id: str) -> CacheResult:
        record = self.memory.get(kind.value, entity_id)
        layer = "memory"
        if record is None and kind in self._loaders:
            async with self._db.session() as session:
                record = await self._loaders[kind](session, entity_id)
            layer = "store"
            if record is not None:
                self.memory.put(record)

        if record is None:
            cache_events.log_miss(kind.value, entity_id)
            record = await self._fetch(kind, entity_id)
            return CacheResult(record.payload, CacheSource.API, record.synced_at)

        threshold = self._threshold(record)
        age = self._clock() - record.synced_at
        if threshold is not None and age > threshold:
            cache_events.log_stale_served(kind.value, entity_id, age.total_seconds(), threshold.total_seconds())
            if self._schedule_refresh(kind, entity_id):
                return CacheResult(record.payload, CacheSource.CACHE_THEN_REFRESH, record.synced_at)
            return CacheResult(record.payload, CacheSource.CACHE, record.synced_at)

        cache_events.log_hit(kind.value, entity_id, layer)
        return CacheResult(record.payload, CacheSource.CACHE, record.synced_at)

    def _threshold(self, record: CacheRecord) -> Optional[timedelta]:
        kind = EntityKind(record.kind)
        payload = record.payload
        if kind == EntityKind.TOURNAMENT:
            return self.policy.for_tournament(payload)
        if kind == EntityKind.TOURNAMENT_LIST:
            return self.policy.for_tournament_list(payload)
        rate_limit = self.provider.get_rate_limit_info()
        if kind in (EntityKind.MATCH, EntityKind.LIVE_SCORE):
            return self.policy.for_match(payload, rate_limit)
        if kind == EntityKind.MATCH_LIST:
            return self.policy.for_match_list(payload, rate_limit)
        if kind == EntityKind.MATCH_STATS:
            return self.policy.for_match_stats(
                payload.finalized, self._known_match_status(record.entity_id), rate_limit
            )
        return self.policy.for_kind(kind)

    def _known_match_status(self, match_id: str) -> Optional[MatchStatus]:
        records = [
            r
            for r in (
                self.memory.get(EntityKind.MATCH.value, match_id),
                self.memory.get(EntityKind.LIVE_SCORE.value, match_id),
            )
            if r is not None
        ]
        if not records:
            return None
        return max(records, key=lambda r: r.synced_at).payload.status

    def _schedule_refresh(self, kind: EntityKind, entity_id: str) -> bool:
        """Hand a refresh to the worker. False when none was scheduled because quota is exhausted."""
        if self.provider.get_rate_limit_info().exhausted(self._clock()):
            cache_events.log_refresh_skipped(kind.value, entity_id, "quota_exhausted")
            return False
        if self.worker.submit((kind.value, entity_id), lambda: self._fetch(kind, entity_id)):
            cache_events.log_refresh_scheduled(kind.value, entity_id)
        else:
            cache_events.log_refresh_coalesced(kind.value, entity_id)
        return True

    async def _fetch(self, kind: EntityKind, entity_id: str) -> CacheRecord:
        try:
            record = await self._fetchers[kind](entity_id)
        except QuotaExhausted as e:
            cache_events.log_quota_exhausted(self.provider.name, e.reset_at)
            raise
        self.memory.put(record)
        return record

    def _record(self, kind: EntityKind, entity_id: str, synced_at: datetime, payload: Any) -> CacheRecord:
        return CacheRecord(kind=kind.value, entity_id=entity_id, synced_at=synced_at, payload=payload)

    # Writes (also used by the batch sync service)

    async def store_matches(self, matches: Sequence[BasicMatch]) -> MatchWriteOutcome:
        """
        Upsert matches, creating their teams first. Finished matches already in
        the store are left as they are and counted as skipped.
        """
        now = self._clock()
        outcome = MatchWriteOutcome(stored=[], written=0, skipped=0)
        async with self._db.session() as session:
            teams = TeamRepository(session)
            repo = MatchRepository(session)
            for match in matches:
                team_a = await teams.materialize(match.team_a, now)
                team_b = await teams.materialize(match.team_b, now)
                row, written = await repo.upsert_from_canonical(match, team_a, team_b, now)
                if written:
                    outcome.written += 1
                    outcome.stored.append(basic_view(match))
                else:
                    outcome.skipped += 1
                    outcome.stored.append(await repo.to_canonical(row))
        for stored in outcome.stored:
            self.memory.put(self._record(EntityKind.MATCH, stored.id, now, stored))
        return outcome

    async def store_players(self, players: Sequence[Player], team_id: Optional[str] = None) -> List[Player]:
        now = self._clock()
        stored: List[Player] = []
        async with self._db.session() as session:
            repo = PlayerRepository(session)
            for player in players:
                if team_id and not player.team_id:
                    player = player.model_copy(update={"team_id": team_id})
                row = await repo.upsert_from_canonical(player, now)
                stored.append(player_to_canonical(row))
        for player in stored:
            self.memory.put(self._record(EntityKind.PLAYER, player.id, now, player))
        return stored

    async def store_match_stats(
        self, match_id: str, stats: Sequence[PlayerMatchStats], finalize: bool
    ) -> MatchStatsSnapshot:
        """Upsert figures; finalized rows are never touched again."""
        now = self._clock()
        async with self._db.session() as session:
            repo = PlayerMatchStatsRepository(session)
            await repo.upsert_many(match_id, stats, now, finalize=finalize)
            if finalize:
                await repo.freeze(match_id)
            rows = await repo.list_for_match(match_id)
            snapshot = MatchStatsSnapshot(
                match_id=match_id,
                finalized=finalize or (bool(rows) and all(r.finalized for r in rows)),
                stats=[match_stats_to_canonical(r) for r in rows],
            )
        return snapshot

    async def match_stats_finalized(self, match_id: str) -> bool:
        async with self._db.session() as session:
            return await PlayerMatchStatsRepository(session).is_finalized(match_id)

    async def stale_entities(self) -> List[Tuple[EntityKind, str]]:
        """Stored entities whose age exceeds their threshold, for the batch refresher."""
        now = self._clock()
        rate_limit = self.provider.get_rate_limit_info()
        out: List[Tuple[EntityKind, str]] = []
        async with self._db.session() as session:
            for row in await TournamentRepository(session).list_stale(now - self.policy.tournament_active):
                out.append((EntityKind.TOURNAMENT, row.external_id))

            shortest = min(self.policy.live(rate_limit), self.policy.match_upcoming)
            for row in await MatchRepository(session).list_stale(now - shortest):
                threshold = self.policy.for_match_status(MatchStatus(row.status), rate_limit)
                if threshold is not None and now - as_utc(row.last_synced_at) > threshold:
                    out.append((EntityKind.MATCH, row.external_id))

            for row in await PlayerRepository(session).list_stale(now - self.policy.player):
                out.append((EntityKind.PLAYER, row.external_id))
            for row in await TeamRepository(session).list_stale(now - self.policy.team):
                if row.external_id:
                    out.append((EntityKind.TEAM, row.external_id))
        return out

    # Store loaders

    async def _load_tournament(self, session: AsyncSession, entity_id: str) -> Optional[CacheRecord]:
        row = await TournamentRepository(session).get_by_external_id(entity_id)
        if row is None:
            return None
        return self._record(EntityKind.TOURNAMENT, entity_id, as_utc(row.last_synced_at), tournament_to_canonical(row))

    async def _load_match(self, session: AsyncSession, entity_id: str) -> Optional[CacheRecord]:
        repo = MatchRepository(session)
        row = await repo.get_by_external_id(entity_id)
        if row is None:
            return None
        return self._record(EntityKind.MATCH, entity_id, as_utc(row.last_synced_at), await repo.to_canonical(row))

    async def _load_team(self, session: AsyncSession, entity_id: str) -> Optional[CacheRecord]:
        row = await TeamRepository(session).get_by_external_id(entity_id)
        if row is None:
            return None
        return self._record(EntityKind.TEAM, entity_id, as_utc(row.last_synced_at), team_to_canonical(row))

    async def _load_player(self, session: AsyncSession, entity_id: str) -> Optional[CacheRecord]:
        row = await PlayerRepository(session).get_by_external_id(entity_id)
        if row is None:
            return None
        return self._record(EntityKind.PLAYER, entity_id, as_utc(row.last_synced_at), player_to_canonical(row))

    async def _load_player_career(self, session: AsyncSession, entity_id: str) -> Optional[CacheRecord]:
        row = await PlayerRepository(session).get_career_stats(entity_id)
        if row is None:
            return None
        return self._record(EntityKind.PLAYER_CAREER, entity_id, as_utc(row.last_synced_at), career_to_canonical(row))

    async def _load_match_stats(self, session: AsyncSession, entity_id: str) -> Optional[CacheRecord]:
        rows = await PlayerMatchStatsRepository(session).list_for_match(entity_id)
        if not rows:
            return None
        snapshot = MatchStatsSnapshot(
            match_id=entity_id,
            finalized=all(r.finalized for r in rows),
            stats=[match_stats_to_canonical(r) for r in rows],
        )
        synced_at = min(as_utc(r.last_synced_at) for r in rows)
        return self._record(EntityKind.MATCH_STATS, entity_id, synced_at, snapshot)

    # Provider fetchers

    async def _fetch_tournament(self, entity_id: str) -> CacheRecord:
        tournament = await self.provider.get_tournament(entity_id)
        if tournament is None:
            raise EntityNotFound("tournament", entity_id)
        now = self._clock()
        async with self._db.session() as session:
            await TournamentRepository(session).upsert_from_canonical(tournament, now)
        return self._record(EntityKind.TOURNAMENT, entity_id, now, tournament)

    async def _fetch_tournament_list(self, entity_id: str) -> CacheRecord:
        tournaments: List[Tournament] = await self.provider.get_tournaments()
        now = self._clock()
        async with self._db.session() as session:
            repo = TournamentRepository(session)
            for tournament in tournaments:
                await repo.upsert_from_canonical(tournament, now)
        for tournament in tournaments:
            self.memory.put(self._record(EntityKind.TOURNAMENT, tournament.id, now, tournament))
        return self._record(EntityKind.TOURNAMENT_LIST, entity_id, now, tournaments)

    async def _fetch_match(self, entity_id: str) -> CacheRecord:
        match = await self.provider.get_match(entity_id)
        if match is None:
            raise EntityNotFound("match", entity_id)
        outcome = await self.store_matches([match])
        return self._record(EntityKind.MATCH, entity_id, self._clock(), outcome.stored[0])

    async def _fetch_match_list(self, entity_id: str) -> CacheRecord:
        tournament_id = None if entity_id == "current" else entity_id
        matches = await self.provider.get_matches(tournament_id=tournament_id)
        outcome = await self.store_matches(matches)
        return self._record(EntityKind.MATCH_LIST, entity_id, self._clock(), outcome.stored)

    async def _fetch_live_score(self, entity_id: str) -> CacheRecord:
        live: Optional[LiveMatch] = await self.provider.get_live_score(entity_id)
        if live is None:
            raise EntityNotFound("match", entity_id)
        outcome = await self.store_matches([live])
        if outcome.skipped:
            stored = outcome.stored[0]
            live = live.model_copy(update={"status": stored.status, "score": stored.score, "result": stored.result})
        return self._record(EntityKind.LIVE_SCORE, entity_id, self._clock(), live)

    async def _fetch_team(self, entity_id: str) -> CacheRecord:
        team: Optional[TeamRef] = await self.provider.get_team(entity_id)
        if team is None:
            raise EntityNotFound("team", entity_id)
        now = self._clock()
        async with self._db.session() as session:
            row = await TeamRepository(session).materialize(team, now)
            stored = team_to_canonical(row)
        return self._record(EntityKind.TEAM, entity_id, now, stored)

    async def _fetch_player(self, entity_id: str) -> CacheRecord:
        player = await self.provider.get_player(entity_id)
        if player is None:
            raise EntityNotFound("player", entity_id)
        stored = await self.store_players([player])
        return self._record(EntityKind.PLAYER, entity_id, self._clock(), stored[0])

    async def _fetch_squad(self, entity_id: str) -> CacheRecord:
        team_id, tournament_id = parse_squad_key(entity_id)
        players = await self.provider.get_squad(team_id, tournament_id)
        stored = await self.store_players(players, team_id=team_id)
        return self._record(EntityKind.SQUAD, entity_id, self._clock(), stored)

    async def _fetch_player_career(self, entity_id: str) -> CacheRecord:
        stats: Optional[CareerStats] = await self.provider.get_player_career_stats(entity_id)
        if stats is None:
            raise EntityNotFound("player", entity_id)
        now = self._clock()
        async with self._db.session() as session:
            row = await PlayerRepository(session).upsert_career_stats(stats, entity_id, now)
            stored = career_to_canonical(row)
        return self._record(EntityKind.PLAYER_CAREER, entity_id, now, stored)

    async def _fetch_match_stats(self, entity_id: str) -> CacheRecord:
        match: BasicMatch = (await self.get_match(entity_id)).payload
        stats = await self.provider.get_all_player_match_stats(entity_id)
        snapshot = await self.store_match_stats(entity_id, stats, finalize=match.status.finished)
        return self._record(EntityKind.MATCH_STATS, entity_id, self._clock(), snapshot)


def squad_key(team_id: str, tournament_id: Optional[str] = None) -> str:
    return f"{team_id}@{tournament_id}" if tournament_id else team_id


def parse_squad_key(key: str) -> Tuple[str, Optional[str]]:
    team_id, _, tournament_id = key.partition("@")
    return team_id, tournament_id or None
