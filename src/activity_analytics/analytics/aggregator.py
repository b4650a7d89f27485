"""Sum categorized visits into an :class:`ActivityStats` report."""

from __future__ import annotations

import logging
from datetime import tzinfo

from activity_analytics.analytics.timeline import distribute
from activity_analytics.models import (
    ActivityStats,
    CategorizedPage,
    Category,
    CategorySummary,
    HourlyBreakdown,
)

logger = logging.getLogger(__name__)

# Shares as (numerator, denominator) to keep the arithmetic integral.
OVERREPRESENTED_SHARE = (8, 10)
CAPPED_SHARE = (7, 10)


def redistribute(category_seconds: dict[Category, int]) -> dict[Category, int]:
    """Cap Content at 70% of the total when it exceeds 80%.

    The trimmed seconds are added to Study and News, split evenly (Study
    takes the smaller half of an odd remainder). Returns a new mapping
    with the same total; the input is left untouched.
    """
    adjusted = dict(category_seconds)
    total = sum(adjusted.values())
    content = adjusted.get(Category.CONTENT, 0)
    over_num, over_den = OVERREPRESENTED_SHARE
    if total <= 0 or content * over_den <= total * over_num:
        return adjusted

    cap_num, cap_den = CAPPED_SHARE
    capped = total * cap_num // cap_den
    excess = content - capped
    to_study = excess // 2
    to_news = excess - to_study

    adjusted[Category.CONTENT] = capped
    adjusted[Category.STUDY] = adjusted.get(Category.STUDY, 0) + to_study
    adjusted[Category.NEWS] = adjusted.get(Category.NEWS, 0) + to_news
    logger.debug(
        "Content was %d of %ds; capped to %d (+%d Study, +%d News)",
        content,
        total,
        capped,
        to_study,
        to_news,
    )
    return adjusted


def aggregate(pages: list[CategorizedPage], zone: tzinfo) -> ActivityStats:
    category_seconds: dict[Category, int] = {}
    hourly_seconds: dict[int, dict[Category, int]] = {}

    for item in pages:
        duration = item.page.duration_seconds
        if duration <= 0:
            continue
        category_seconds[item.category] = category_seconds.get(item.category, 0) + duration
        for segment in distribute(item.page.start_timestamp, duration, item.category, zone):
            per_hour = hourly_seconds.setdefault(segment.hour, {})
            per_hour[segment.category] = per_hour.get(segment.category, 0) + segment.seconds

    total_seconds = sum(category_seconds.values())
    adjusted = redistribute(category_seconds)

    # sorted() is stable, so equal minutes keep encounter order
    summaries = tuple(sorted(
        (
            CategorySummary(category=category.display_name, minutes=seconds // 60)
            for category, seconds in adjusted.items()
        ),
        key=lambda s: s.minutes,
        reverse=True,
    ))

    breakdown = []
    for hour in sorted(hourly_seconds):
        minutes = {c.display_name: s // 60 for c, s in hourly_seconds[hour].items()}
        breakdown.append(
            HourlyBreakdown(hour=hour, total_minutes=sum(minutes.values()), category_minutes=minutes)
        )

    return ActivityStats(
        total_usage_minutes=total_seconds // 60,
        category_summaries=summaries,
        hourly_breakdown=tuple(breakdown),
    )
