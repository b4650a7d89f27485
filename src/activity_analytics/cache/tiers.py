"""Persistent cache tiers backed by the record repositories."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Generic, TypeVar

from activity_analytics.analytics.keywords import consolidate_records, normalize_keyword
from activity_analytics.cache.memory import CacheEntry, CacheKey, now_millis
from activity_analytics.cache.repository import (
    KeywordRecord,
    KeywordRepository,
    TimeAnalysisRecord,
    TimeAnalysisRepository,
)
from activity_analytics.exceptions import PersistedDataCorruptError
from activity_analytics.models import ActivityStats, KeywordFrequency

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistentTier(ABC, Generic[T]):
    """Long-lived store behind the in-process cache, one entry per key."""

    @abstractmethod
    def load(self, key: CacheKey) -> CacheEntry[T] | None:
        """Return the stored entry, or None when nothing is stored.

        Raises:
            PersistedDataCorruptError: stored data exists but cannot be decoded.
        """
        ...

    @abstractmethod
    def store(self, key: CacheKey, entry: CacheEntry[T]) -> None:
        """Replace whatever is stored for ``key`` with ``entry``."""
        ...

    @abstractmethod
    def delete(self, key: CacheKey) -> None:
        ...


class TimeAnalysisTier(PersistentTier[ActivityStats]):
    def __init__(self, repository: TimeAnalysisRepository, clock: Callable[[], int] = now_millis):
        self.repository = repository
        self._clock = clock

    def load(self, key: CacheKey) -> CacheEntry[ActivityStats] | None:
        record = self.repository.find_by_user_and_date(key.user_id, key.day)
        if record is None:
            return None
        try:
            stats = ActivityStats.from_dict({
                "totalUsageTimeMinutes": record.total_usage_minutes,
                "categorySummaries": json.loads(record.category_summaries_json),
                "hourlyActivityBreakdown": json.loads(record.hourly_breakdown_json),
            })
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise PersistedDataCorruptError(
                f"Stored time analysis for {key} cannot be decoded: {e}"
            ) from e
        return CacheEntry(payload=stats, cached_at_millis=self._clock(), page_count=record.page_count)

    def store(self, key: CacheKey, entry: CacheEntry[ActivityStats]) -> None:
        data = entry.payload.to_dict()
        existing = self.repository.find_by_user_and_date(key.user_id, key.day)
        record = TimeAnalysisRecord(
            id=existing.id if existing else None,
            user_id=key.user_id,
            day=key.day,
            total_usage_minutes=entry.payload.total_usage_minutes,
            category_summaries_json=json.dumps(data["categorySummaries"], ensure_ascii=False),
            hourly_breakdown_json=json.dumps(data["hourlyActivityBreakdown"], ensure_ascii=False),
            page_count=entry.page_count,
        )
        self.repository.save(record)

    def delete(self, key: CacheKey) -> None:
        # find_by_user_and_date returns one row at a time; loop to catch duplicates
        while True:
            record = self.repository.find_by_user_and_date(key.user_id, key.day)
            if record is None:
                return
            self.repository.delete_all([record])
            if record.id is None:
                return


class KeywordDigestTier(PersistentTier[list[KeywordFrequency]]):
    """Stores a day's full keyword list as one row per keyword.

    Rows for the same normalized keyword can accumulate under concurrent
    writers; :meth:`store` folds them into one row and deletes the rest.
    """

    def __init__(self, repository: KeywordRepository, clock: Callable[[], int] = now_millis):
        self.repository = repository
        self._clock = clock

    def load(self, key: CacheKey) -> CacheEntry[list[KeywordFrequency]] | None:
        records = self.repository.find_by_user_and_date(key.user_id, key.day)
        if not records:
            return None
        survivors, _ = consolidate_records(records)
        payload = [
            KeywordFrequency(keyword=record.keyword, frequency=total)
            for record, total in survivors.values()
        ]
        return CacheEntry(payload=payload, cached_at_millis=self._clock())

    def store(self, key: CacheKey, entry: CacheEntry[list[KeywordFrequency]]) -> None:
        records = self.repository.find_by_user_and_date(key.user_id, key.day)
        survivors, superseded = consolidate_records(records)

        if superseded:
            self.repository.delete_all(superseded)
            logger.info(
                "Removed %d duplicate keyword rows for %s", len(superseded), key
            )

        to_save: list[KeywordRecord] = []
        written: set[str] = set()
        for item in entry.payload:
            normalized = normalize_keyword(item.keyword)
            written.add(normalized)
            found = survivors.get(normalized)
            if found is not None:
                record, _ = found
                if record.frequency != item.frequency:
                    to_save.append(replace(record, frequency=item.frequency))
            else:
                to_save.append(KeywordRecord(
                    user_id=key.user_id,
                    keyword=item.keyword,
                    frequency=item.frequency,
                    day=key.day,
                ))
        # rows outside the payload still absorb their deleted duplicates
        for normalized, (record, total) in survivors.items():
            if normalized not in written and record.frequency != total:
                to_save.append(replace(record, frequency=total))
        if to_save:
            self.repository.save_all(to_save)

    def delete(self, key: CacheKey) -> None:
        records = self.repository.find_by_user_and_date(key.user_id, key.day)
        if records:
            self.repository.delete_all(records)
