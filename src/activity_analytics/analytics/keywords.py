"""Case-insensitive keyword merging and ranking."""

from __future__ import annotations

import logging
from typing import Iterable, TypeVar

from activity_analytics.models import KeywordFrequency

logger = logging.getLogger(__name__)

TOP_N = 9

R = TypeVar("R")


def normalize_keyword(keyword: str | None) -> str:
    if keyword is None:
        return ""
    return keyword.strip().lower()


def sum_keywords(items: Iterable[KeywordFrequency]) -> list[KeywordFrequency]:
    """Collapse keywords equal after normalization, summing their frequencies.

    The first-seen spelling and first-seen order are kept.
    """
    display: dict[str, str] = {}
    totals: dict[str, int] = {}
    for item in items:
        key = normalize_keyword(item.keyword)
        if not key:
            continue
        if key not in totals:
            display[key] = item.keyword.strip()
            totals[key] = 0
        totals[key] += item.frequency
    return [KeywordFrequency(keyword=display[k], frequency=totals[k]) for k in totals]


def merge_keywords(
    new_keywords: Iterable[KeywordFrequency],
    existing_keywords: Iterable[KeywordFrequency],
) -> list[KeywordFrequency]:
    return sum_keywords([*new_keywords, *existing_keywords])


def top_keywords(items: Iterable[KeywordFrequency], limit: int = TOP_N) -> list[KeywordFrequency]:
    """Highest-frequency keywords first; ties keep first-encountered order."""
    ranked = sorted(sum_keywords(items), key=lambda k: k.frequency, reverse=True)
    return ranked[:limit]


def consolidate_records(
    records: Iterable[R],
    keyword_of=lambda r: r.keyword,
    frequency_of=lambda r: r.frequency,
) -> tuple[dict[str, tuple[R, int]], list[R]]:
    """Group stored keyword rows that collide after normalization.

    Returns ``(survivors, superseded)``: ``survivors`` maps each normalized
    keyword to its first row and the summed frequency of all its rows;
    ``superseded`` lists the remaining duplicate rows, which the caller
    must delete.
    """
    survivors: dict[str, tuple[R, int]] = {}
    superseded: list[R] = []
    for record in records:
        key = normalize_keyword(keyword_of(record))
        if key in survivors:
            first, total = survivors[key]
            logger.warning(
                "Duplicate stored keyword %r (normalized %r); merging frequencies",
                keyword_of(record),
                key,
            )
            survivors[key] = (first, total + frequency_of(record))
            superseded.append(record)
        else:
            survivors[key] = (record, frequency_of(record))
    return survivors, superseded
