"""Normalize raw visit-log rows into :class:`VisitedPage` records."""

from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import urlparse

from activity_analytics.models import VisitedPage

logger = logging.getLogger(__name__)

WEB_SCHEMES = frozenset({"http", "https"})


def parse_visited_page(
    raw: dict,
    excluded_domains: Iterable[str] | None = None,
    max_url_length: int = 2000,
    max_title_length: int = 300,
) -> VisitedPage | None:
    """Normalize one raw visit row; returns None for filtered/invalid rows.

    Both the browser extension's camelCase keys (``visitCount``,
    ``startTimestamp``, ``durationSeconds``) and snake_case keys are accepted.
    A page is dropped when its URL is not a web URL, its host is excluded,
    or its start time is not a number.
    """
    located = _web_location(raw.get("url"), max_url_length)
    if located is None:
        return None
    url, host = located

    if _host_excluded(host, _blocklist(excluded_domains)):
        return None

    try:
        start_timestamp = int(float(_lookup(raw, "startTimestamp", "start_timestamp")))
    except (TypeError, ValueError):
        return None

    return VisitedPage(
        title=(raw.get("title") or "").strip()[:max_title_length],
        url=url,
        visit_count=max(1, _as_int(_lookup(raw, "visitCount", "visit_count"), 1)),
        start_timestamp=start_timestamp,
        duration_seconds=max(0, _as_int(_lookup(raw, "durationSeconds", "duration_seconds"), 0)),
    )


def parse_visited_pages(
    rows: Iterable[dict],
    excluded_domains: Iterable[str] | None = None,
) -> list[VisitedPage]:
    """Parse every row, dropping the ones :func:`parse_visited_page` rejects."""
    blocklist = _blocklist(excluded_domains)
    pages: list[VisitedPage] = []
    skipped = 0
    for raw in rows:
        page = parse_visited_page(raw, excluded_domains=blocklist)
        if page is None:
            skipped += 1
        else:
            pages.append(page)
    if skipped:
        logger.info("Skipped %d invalid or excluded visit rows", skipped)
    return pages


def _web_location(raw_url, max_length: int) -> tuple[str, str] | None:
    """Return ``(url, host)`` for an http(s) URL, or None."""
    url = str(raw_url or "").strip()[:max_length]
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme.lower() not in WEB_SCHEMES:
        return None
    host = (parsed.hostname or "").removeprefix("www.")
    if not host:
        return None
    return url, host


def _blocklist(domains: Iterable[str] | None) -> tuple[str, ...]:
    if not domains:
        return ()
    return tuple(d.strip().lower() for d in domains if d and d.strip())


def _host_excluded(host: str, blocklist: tuple[str, ...]) -> bool:
    # a blocked domain also covers its subdomains
    return any(host == d or host.endswith("." + d) for d in blocklist)


def _lookup(raw: dict, *keys: str):
    return next((raw[k] for k in keys if raw.get(k) is not None), None)


def _as_int(value, default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default
