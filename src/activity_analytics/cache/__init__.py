"""In-process and persistent caching of analytics results."""

from activity_analytics.cache.memory import CacheEntry, CacheKey, InProcessCache
from activity_analytics.cache.manager import BackgroundTasks, TieredCacheManager
from activity_analytics.cache.repository import (
    KeywordRecord,
    KeywordRepository,
    SQLiteDatabase,
    SQLiteKeywordRepository,
    SQLiteTimeAnalysisRepository,
    TimeAnalysisRecord,
    TimeAnalysisRepository,
)
from activity_analytics.cache.tiers import KeywordDigestTier, PersistentTier, TimeAnalysisTier

__all__ = [
    "CacheEntry",
    "CacheKey",
    "InProcessCache",
    "BackgroundTasks",
    "TieredCacheManager",
    "KeywordRecord",
    "KeywordRepository",
    "SQLiteDatabase",
    "SQLiteKeywordRepository",
    "SQLiteTimeAnalysisRepository",
    "TimeAnalysisRecord",
    "TimeAnalysisRepository",
    "KeywordDigestTier",
    "PersistentTier",
    "TimeAnalysisTier",
]
