"""Browsing-activity analytics: categorized time usage and keyword digests."""

from activity_analytics.config import AnalyticsSettings
from activity_analytics.exceptions import (
    AnalyticsError,
    CacheReadError,
    CacheWriteError,
    ClassificationError,
    ClassifierResponseMalformedError,
    ClassifierTimeoutError,
    ClassifierUnavailableError,
    EmptyInputError,
    PersistedDataCorruptError,
)
from activity_analytics.ingest import parse_visited_page, parse_visited_pages
from activity_analytics.models import (
    ActivityStats,
    CategorizedPage,
    Category,
    CategorySummary,
    HourlyBreakdown,
    KeywordFrequency,
    VisitedPage,
)
from activity_analytics.service import ActivityAnalyticsService, create_service

__all__ = [
    "AnalyticsSettings",
    "AnalyticsError",
    "CacheReadError",
    "CacheWriteError",
    "ClassificationError",
    "ClassifierResponseMalformedError",
    "ClassifierTimeoutError",
    "ClassifierUnavailableError",
    "EmptyInputError",
    "PersistedDataCorruptError",
    "parse_visited_page",
    "parse_visited_pages",
    "ActivityStats",
    "CategorizedPage",
    "Category",
    "CategorySummary",
    "HourlyBreakdown",
    "KeywordFrequency",
    "VisitedPage",
    "ActivityAnalyticsService",
    "create_service",
]
