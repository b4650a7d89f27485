"""Public operations: daily time analysis and keyword digests."""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, tzinfo
from typing import Callable

import httpx

from activity_analytics.analytics.aggregator import aggregate
from activity_analytics.analytics.keywords import merge_keywords, top_keywords
from activity_analytics.cache.manager import BackgroundTasks, TieredCacheManager
from activity_analytics.cache.memory import CacheKey
from activity_analytics.cache.repository import (
    SQLiteDatabase,
    SQLiteKeywordRepository,
    SQLiteTimeAnalysisRepository,
)
from activity_analytics.cache.tiers import KeywordDigestTier, TimeAnalysisTier
from activity_analytics.classifier.adapter import CategoryClassifier, KeywordExtractor
from activity_analytics.classifier.client import ClassifierClient
from activity_analytics.config import TOP_KEYWORD_LIMIT, AnalyticsSettings
from activity_analytics.exceptions import EmptyInputError
from activity_analytics.instrumentation import timed
from activity_analytics.models import ActivityStats, KeywordFrequency, VisitedPage

logger = logging.getLogger(__name__)

TIME_NAMESPACE = "time"
KEYWORD_NAMESPACE = "keywords"


def _as_day(day: date | str) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return date.fromisoformat(day)


class ActivityAnalyticsService:
    """Entry point used by the HTTP layer.

    Args:
        classifier: Assigns categories to pages.
        keyword_extractor: Pulls keyword frequencies out of page titles.
        time_cache: Tiered cache of :class:`ActivityStats` per user/day.
        keyword_cache: Tiered cache of a day's full keyword list per user.
        zone: Fixed time zone for hour buckets and "today".
        clock: Returns the current unix time in seconds.
        top_keyword_limit: Size of the top-keyword window.
    """

    def __init__(
        self,
        classifier: CategoryClassifier,
        keyword_extractor: KeywordExtractor,
        time_cache: TieredCacheManager[ActivityStats],
        keyword_cache: TieredCacheManager[list[KeywordFrequency]],
        zone: tzinfo,
        clock: Callable[[], float] = time.time,
        top_keyword_limit: int = TOP_KEYWORD_LIMIT,
        resources: list | None = None,
    ):
        self.classifier = classifier
        self.keyword_extractor = keyword_extractor
        self.time_cache = time_cache
        self.keyword_cache = keyword_cache
        self.zone = zone
        self.top_keyword_limit = top_keyword_limit
        self._clock = clock
        self._resources = resources or []

    def today(self) -> date:
        return datetime.fromtimestamp(self._clock(), self.zone).date()

    @timed("analyze_day")
    def analyze_day(self, user_id: str, day: date | str, pages: list[VisitedPage]) -> ActivityStats:
        """Categorized time usage for ``day``, served from cache when possible.

        Raises:
            EmptyInputError: ``pages`` is empty or None.
            ClassificationError: the classifier call failed.
            PersistedDataCorruptError: the stored report cannot be decoded.
        """
        if not pages:
            raise EmptyInputError("No visited pages were supplied.")

        key = CacheKey(TIME_NAMESPACE, user_id, _as_day(day))
        cached = self.time_cache.get(key, page_count=len(pages))
        if cached is not None:
            return cached.payload

        categorized = self.classifier.classify(pages)
        stats = aggregate(categorized, self.zone)
        self.time_cache.put(key, stats, page_count=len(pages))
        return stats

    @timed("extract_keywords")
    def extract_keywords(self, user_id: str, pages: list[VisitedPage]) -> list[KeywordFrequency]:
        """Extract this batch's keywords and fold them into today's digest.

        Returns the batch keywords, repeated keywords summed.

        Raises:
            EmptyInputError: ``pages`` is empty or None.
            ClassificationError: the classifier call failed or its reply was unusable.
        """
        if not pages:
            raise EmptyInputError("No visited pages were supplied.")

        batch = self.keyword_extractor.extract(pages)
        if not batch:
            return []

        key = CacheKey(KEYWORD_NAMESPACE, user_id, self.today())
        existing = self.keyword_cache.get(key)
        merged = merge_keywords(batch, existing.payload if existing else [])
        self.keyword_cache.put(key, merged)
        return batch

    @timed("top_keywords_for_today")
    def top_keywords_for_today(self, user_id: str) -> list[KeywordFrequency]:
        key = CacheKey(KEYWORD_NAMESPACE, user_id, self.today())
        entry = self.keyword_cache.get(key)
        if entry is None:
            return []
        return top_keywords(entry.payload, limit=self.top_keyword_limit)

    @timed("invalidate_cache")
    def invalidate_cache(self, user_id: str, day: date | str) -> None:
        """Drop cached and persisted results for the user's day."""
        target = _as_day(day)
        self.time_cache.invalidate(CacheKey(TIME_NAMESPACE, user_id, target))
        self.keyword_cache.invalidate(CacheKey(KEYWORD_NAMESPACE, user_id, target))

    def sweep_caches(self) -> int:
        return self.time_cache.sweep() + self.keyword_cache.sweep()

    def close(self) -> None:
        self.time_cache.close()
        self.keyword_cache.close()
        for resource in self._resources:
            resource.close()

    def __enter__(self) -> ActivityAnalyticsService:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class _TaskPoolResource:
    def __init__(self, tasks: BackgroundTasks):
        self.tasks = tasks

    def close(self) -> None:
        self.tasks.shutdown(wait=True)


def create_service(
    settings: AnalyticsSettings | None = None,
    transport: httpx.BaseTransport | None = None,
    sweep_interval_s: float | None = None,
) -> ActivityAnalyticsService:
    """Wire a service from settings: httpx classifier, SQLite store, caches."""
    settings = settings or AnalyticsSettings.from_env()

    client = ClassifierClient(
        api_key=settings.api_key,
        base_url=settings.base_url,
        model=settings.model,
        timeout=settings.request_timeout_s,
        transport=transport,
    )
    db = SQLiteDatabase(settings.db_path)
    tasks = BackgroundTasks(
        max_workers=settings.background_workers,
        max_pending=settings.max_pending_tasks,
    )
    time_cache = TieredCacheManager(
        TimeAnalysisTier(SQLiteTimeAnalysisRepository(db)),
        tasks,
        ttl_seconds=settings.cache_ttl_s,
        refresh_growth_ratio=settings.refresh_growth_ratio,
    )
    keyword_cache = TieredCacheManager(
        KeywordDigestTier(SQLiteKeywordRepository(db)),
        tasks,
        ttl_seconds=settings.cache_ttl_s,
        refresh_growth_ratio=settings.refresh_growth_ratio,
    )
    if sweep_interval_s:
        time_cache.start_sweeper(sweep_interval_s)
        keyword_cache.start_sweeper(sweep_interval_s)

    logger.info(
        "Analytics service ready (model=%s, zone=%s, db=%s)",
        settings.model,
        settings.timezone,
        settings.db_path,
    )
    return ActivityAnalyticsService(
        classifier=CategoryClassifier(client),
        keyword_extractor=KeywordExtractor(client),
        time_cache=time_cache,
        keyword_cache=keyword_cache,
        zone=settings.zone,
        top_keyword_limit=settings.top_keyword_limit,
        # pool drains before the database closes
        resources=[_TaskPoolResource(tasks), db],
    )
