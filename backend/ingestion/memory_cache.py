"""
Bounded in-memory layer of the staleness cache.

Insertion-ordered: when full, the entry written longest ago is evicted first.
Reads never reorder entries; a rewrite of an existing key counts as a fresh insertion.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator, Optional, Tuple

from ingestion import cache_events

CacheKey = Tuple[str, str]


@dataclass
class CacheRecord:
    kind: str
    entity_id: str
    synced_at: datetime
    payload: Any

    @property
    def key(self) -> CacheKey:
        return (self.kind, self.entity_id)


class MemoryCache:
    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._entries: "OrderedDict[CacheKey, CacheRecord]" = OrderedDict()

    def get(self, kind: str, entity_id: str) -> Optional[CacheRecord]:
        return self._entries.get((kind, entity_id))

    def put(self, record: CacheRecord) -> None:
        self._entries.pop(record.key, None)
        self._entries[record.key] = record
        while len(self._entries) > self.capacity:
            (kind, entity_id), _ = self._entries.popitem(last=False)
            cache_events.log_evicted(kind, entity_id, self.capacity)

    def invalidate(self, kind: str, entity_id: str) -> bool:
        return self._entries.pop((kind, entity_id), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheRecord]:
        return iter(list(self._entries.values()))
