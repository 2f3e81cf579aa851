"""
Structured cache events: one `cache_event=<type> key=value ...` line per decision.
Deterministic keys; timestamps come from the log record only.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

CACHE_LOGGER_NAME = "cache_events"


def _logger() -> logging.Logger:
    return logging.getLogger(CACHE_LOGGER_NAME)


def _event(event_type: str, level: int = logging.INFO, **kwargs: Any) -> None:
    msg = f"cache_event={event_type} " + " ".join(f"{k}={v!r}" for k, v in sorted(kwargs.items()))
    _logger().log(level, msg, extra={"cache_event_type": event_type, "cache_event": {**kwargs}})


def log_hit(kind: str, entity_id: str, layer: str) -> None:
    """layer is 'memory' or 'store'."""
    _event("hit", level=logging.DEBUG, kind=kind, entity_id=entity_id, layer=layer)


def log_miss(kind: str, entity_id: str) -> None:
    _event("miss", kind=kind, entity_id=entity_id)


def log_stale_served(kind: str, entity_id: str, age_seconds: float, threshold_seconds: float) -> None:
    _event(
        "stale_served",
        kind=kind,
        entity_id=entity_id,
        age_seconds=round(age_seconds, 1),
        threshold_seconds=threshold_seconds,
    )


def log_refresh_scheduled(kind: str, entity_id: str) -> None:
    _event("refresh_scheduled", kind=kind, entity_id=entity_id)


def log_refresh_coalesced(kind: str, entity_id: str) -> None:
    _event("refresh_coalesced", level=logging.DEBUG, kind=kind, entity_id=entity_id)


def log_refresh_failed(kind: str, entity_id: str, error: str) -> None:
    _event("refresh_failed", level=logging.WARNING, kind=kind, entity_id=entity_id, error=error)


def log_refresh_skipped(kind: str, entity_id: str, reason: str) -> None:
    _event("refresh_skipped", kind=kind, entity_id=entity_id, reason=reason)


def log_quota_exhausted(provider: str, reset_at: Optional[datetime]) -> None:
    _event(
        "quota_exhausted",
        level=logging.WARNING,
        provider=provider,
        reset_at=reset_at.isoformat() if reset_at else None,
    )


def log_evicted(kind: str, entity_id: str, capacity: int) -> None:
    _event("evicted", level=logging.DEBUG, kind=kind, entity_id=entity_id, capacity=capacity)
