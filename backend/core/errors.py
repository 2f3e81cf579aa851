"""
Error taxonomy shared by the provider client, staleness cache and roster rules.

Provider errors are recoverable (serve stale, retry later) except on the first
synchronous fetch of an entity that has no cached copy.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional


class CricketDataError(Exception):
    """Base class for failures talking to or interpreting the sports-data provider."""


class ProviderUnavailable(CricketDataError):
    """Provider could not be reached or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QuotaExhausted(ProviderUnavailable):
    """Daily request budget consumed; retry only after reset_at."""

    def __init__(self, message: str, reset_at: Optional[datetime] = None) -> None:
        super().__init__(message, status_code=429)
        self.reset_at = reset_at


class MalformedUpstreamData(CricketDataError):
    """Provider payload could not be mapped to the canonical shape."""


class EntityNotFound(LookupError):
    """Provider has no entity with the requested id."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class InvariantViolation(ValueError):
    """Roster breaks a structural invariant (duplicate player, captain = vice-captain)."""


class RosterValidationError(ValueError):
    """Roster violates the active TeamRules; carries every failed rule."""

    def __init__(self, reasons: List[str]) -> None:
        super().__init__("; ".join(reasons))
        self.reasons = list(reasons)
