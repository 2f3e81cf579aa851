import os
from dataclasses import dataclass
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Fantasy Cricket Core"
    env: str = "dev"
    database_url: str = "sqlite+aiosqlite:///./app.db"
    log_level: str = "INFO"

    cricket_api_key: str = ""
    cricket_api_base_url: str = "https://api.cricapi.com/v1"
    use_mock_cricket_api: bool = False
    cricket_api_timeout_seconds: int = 12
    cricket_api_daily_limit: int = 100

    cache_capacity: int = 1000
    live_quota_headroom: int = 20
    leaderboard_tie_break: str = "stable"

    @property
    def use_mock_provider(self) -> bool:
        """Mock provider when no key is configured, when forced, or under tests."""
        return self.use_mock_cricket_api or not self.cricket_api_key or self.env == "test"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            cricket_api_key=(os.getenv("CRICKET_API_KEY") or "").strip(),
            cricket_api_base_url=os.getenv("CRICKET_API_BASE_URL", cls.cricket_api_base_url),
            use_mock_cricket_api=_env_flag("USE_MOCK_CRICKET_API"),
            cricket_api_timeout_seconds=_env_int(
                "CRICKET_API_TIMEOUT_SECONDS", cls.cricket_api_timeout_seconds
            ),
            cricket_api_daily_limit=_env_int("CRICKET_API_DAILY_LIMIT", cls.cricket_api_daily_limit),
            cache_capacity=_env_int("CACHE_CAPACITY", cls.cache_capacity),
            live_quota_headroom=_env_int("LIVE_QUOTA_HEADROOM", cls.live_quota_headroom),
            leaderboard_tie_break=os.getenv("LEADERBOARD_TIE_BREAK", cls.leaderboard_tie_break),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()
