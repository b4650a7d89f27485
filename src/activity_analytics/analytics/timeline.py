"""Split visit durations across local wall-clock hours."""

from __future__ import annotations

from datetime import datetime, tzinfo

from activity_analytics.models import Category, TimeSegment


def seconds_until_end_of_hour(epoch_seconds: int, zone: tzinfo) -> int:
    """Seconds from ``epoch_seconds`` through ``HH:59:59`` local time, inclusive."""
    local = datetime.fromtimestamp(epoch_seconds, zone)
    end_of_hour = local.replace(minute=59, second=59, microsecond=0)
    return int(end_of_hour.timestamp()) - epoch_seconds + 1


def distribute(
    start_epoch_seconds: int,
    duration_seconds: int,
    category: Category,
    zone: tzinfo,
) -> list[TimeSegment]:
    """Attribute every second of one visit to the local hour it falls in.

    The emitted segments sum to ``duration_seconds`` and none of them
    crosses an hour boundary. Non-positive durations produce no segments.
    """
    segments: list[TimeSegment] = []
    current = int(start_epoch_seconds)
    remaining = max(0, int(duration_seconds))

    while remaining > 0:
        hour = datetime.fromtimestamp(current, zone).hour
        step = min(remaining, seconds_until_end_of_hour(current, zone))
        segments.append(TimeSegment(hour=hour, category=category, seconds=step))
        current += step
        remaining -= step

    return segments
