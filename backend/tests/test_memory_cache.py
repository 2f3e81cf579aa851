"""Bounded memory layer: insertion-order eviction and structured cache events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from ingestion.cache_events import CACHE_LOGGER_NAME, log_refresh_failed, log_stale_served
from ingestion.memory_cache import CacheRecord, MemoryCache

T0 = datetime(2026, 4, 10, tzinfo=timezone.utc)


def _record(entity_id: str, kind: str = "player") -> CacheRecord:
    return CacheRecord(kind=kind, entity_id=entity_id, synced_at=T0, payload={"id": entity_id})


def test_evicts_oldest_inserted_first():
    cache = MemoryCache(capacity=3)
    for i in range(5):
        cache.put(_record(f"p{i}"))
    assert len(cache) == 3
    assert [r.entity_id for r in cache] == ["p2", "p3", "p4"]


def test_reads_do_not_protect_from_eviction():
    cache = MemoryCache(capacity=2)
    cache.put(_record("a"))
    cache.put(_record("b"))
    assert cache.get("player", "a") is not None
    cache.put(_record("c"))
    assert cache.get("player", "a") is None
    assert ("player", "b") in cache


def test_rewrite_counts_as_fresh_insertion():
    cache = MemoryCache(capacity=2)
    cache.put(_record("a"))
    cache.put(_record("b"))
    cache.put(_record("a"))
    cache.put(_record("c"))
    assert ("player", "a") in cache
    assert ("player", "b") not in cache


def test_kinds_do_not_collide():
    cache = MemoryCache(capacity=10)
    cache.put(_record("x", kind="player"))
    cache.put(_record("x", kind="team"))
    assert len(cache) == 2
    assert cache.invalidate("team", "x")
    assert not cache.invalidate("team", "x")
    assert cache.get("player", "x") is not None


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        MemoryCache(capacity=0)


def test_eviction_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger=CACHE_LOGGER_NAME)
    cache = MemoryCache(capacity=1)
    cache.put(_record("a"))
    cache.put(_record("b"))
    assert "cache_event=evicted" in caplog.text
    assert "'a'" in caplog.text


def test_cache_event_format(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=CACHE_LOGGER_NAME)
    log_stale_served("match", "m1", 45.04, 30.0)
    log_refresh_failed("match", "m1", "boom")
    assert "cache_event=stale_served age_seconds=45.0 entity_id='m1' kind='match' threshold_seconds=30.0" in caplog.text
    failed = [r for r in caplog.records if getattr(r, "cache_event_type", None) == "refresh_failed"]
    assert failed and failed[0].levelno == logging.WARNING
