"""Time distribution, category aggregation and keyword ranking."""

from activity_analytics.analytics.timeline import distribute, seconds_until_end_of_hour
from activity_analytics.analytics.aggregator import aggregate, redistribute
from activity_analytics.analytics.keywords import (
    TOP_N,
    consolidate_records,
    merge_keywords,
    normalize_keyword,
    sum_keywords,
    top_keywords,
)

__all__ = [
    "distribute",
    "seconds_until_end_of_hour",
    "aggregate",
    "redistribute",
    "TOP_N",
    "consolidate_records",
    "merge_keywords",
    "normalize_keyword",
    "sum_keywords",
    "top_keywords",
]
