"""Runtime settings, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo

DEFAULT_MODEL = os.environ.get("CLASSIFIER_MODEL", "gpt-3.5-turbo")
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEZONE = "Asia/Seoul"
DEFAULT_CACHE_TTL_S = 6 * 60 * 60
DEFAULT_DB_PATH = Path.home() / ".activity_analytics" / "analytics.db"
TOP_KEYWORD_LIMIT = 9


@dataclass
class AnalyticsSettings:
    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    request_timeout_s: float = 30.0
    timezone: str = DEFAULT_TIMEZONE
    cache_ttl_s: int = DEFAULT_CACHE_TTL_S
    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    background_workers: int = 2
    max_pending_tasks: int = 64
    refresh_growth_ratio: float = 0.5
    top_keyword_limit: int = TOP_KEYWORD_LIMIT

    def __post_init__(self) -> None:
        self.base_url = (self.base_url or DEFAULT_BASE_URL).rstrip("/")
        self.request_timeout_s = max(1.0, min(float(self.request_timeout_s), 120.0))
        self.cache_ttl_s = max(1, int(self.cache_ttl_s))
        self.db_path = Path(self.db_path)
        self.background_workers = max(1, min(int(self.background_workers), 16))
        self.max_pending_tasks = max(1, int(self.max_pending_tasks))
        self.refresh_growth_ratio = max(0.0, float(self.refresh_growth_ratio))
        self.top_keyword_limit = max(1, int(self.top_keyword_limit))

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> AnalyticsSettings:
        """Build settings from ``CLASSIFIER_*`` / ``ANALYTICS_*`` environment variables."""
        env = os.environ
        return cls(
            api_key=env.get("CLASSIFIER_API_KEY") or env.get("OPENAI_API_KEY"),
            base_url=env.get("CLASSIFIER_BASE_URL", DEFAULT_BASE_URL),
            model=env.get("CLASSIFIER_MODEL", DEFAULT_MODEL),
            request_timeout_s=float(env.get("CLASSIFIER_TIMEOUT_S", "30")),
            timezone=env.get("ANALYTICS_TIMEZONE", DEFAULT_TIMEZONE),
            cache_ttl_s=int(env.get("ANALYTICS_CACHE_TTL_S", str(DEFAULT_CACHE_TTL_S))),
            db_path=Path(env.get("ANALYTICS_DB_PATH", str(DEFAULT_DB_PATH))),
            background_workers=int(env.get("ANALYTICS_BACKGROUND_WORKERS", "2")),
            max_pending_tasks=int(env.get("ANALYTICS_MAX_PENDING_TASKS", "64")),
        )
