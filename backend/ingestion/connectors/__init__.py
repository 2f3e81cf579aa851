"""Cricket data provider implementations."""

from .base import CricketAPIProvider
from .cricketdata import CricketDataProvider
from .mock import MockCricketProvider

__all__ = [
    "CricketAPIProvider",
    "CricketDataProvider",
    "MockCricketProvider",
]
