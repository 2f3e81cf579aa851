"""
Provider registry: resolve a provider factory by name and build it from Settings.

No side effects at import; clients are only constructed by build_provider.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict

from core.config import Settings

from .connectors.base import CricketAPIProvider
from .connectors.cricketdata import CricketDataProvider
from .connectors.mock import MockCricketProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings], CricketAPIProvider]


def _cricketdata(settings: Settings) -> CricketAPIProvider:
    return CricketDataProvider(
        api_key=settings.cricket_api_key or "",
        base_url=settings.cricket_api_base_url,
        timeout_seconds=settings.cricket_api_timeout_seconds,
        daily_limit=settings.cricket_api_daily_limit,
    )


def _mock(settings: Settings) -> CricketAPIProvider:
    return MockCricketProvider()


_REGISTRY: Dict[str, ProviderFactory] = {
    "cricketdata": _cricketdata,
    "mock": _mock,
}


def get_provider_factory(name: str) -> ProviderFactory:
    """Return the factory registered under the given name. Raises KeyError if unknown."""
    if name not in _REGISTRY:
        raise KeyError(f"Unknown provider: {name}")
    return _REGISTRY[name]


def register_provider(name: str, factory: ProviderFactory) -> None:
    """Register a provider factory by name (for tests or additional providers)."""
    _REGISTRY[name] = factory


def list_provider_names() -> list[str]:
    return list(_REGISTRY.keys())


def build_provider(settings: Settings) -> CricketAPIProvider:
    """Mock provider when forced or when no API key is configured; CricketData.org otherwise."""
    name = "mock" if settings.use_mock_provider else "cricketdata"
    provider = get_provider_factory(name)(settings)
    logger.info("Cricket data provider: %s", provider.name)
    return provider
