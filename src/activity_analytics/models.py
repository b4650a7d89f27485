"""Data models shared by the classifier, analytics and cache layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Category(Enum):
    """Fixed set of topics a visited page can be attributed to."""

    STUDY = ("Study", "공부, 학습", "공부")
    NEWS = ("News", "뉴스, 정보 탐색", "뉴스")
    CONTENT = ("Content", "콘텐츠 소비", "콘텐츠")
    SHOPPING = ("Shopping", "쇼핑", "쇼핑")
    WORK = ("Work", "업무, 프로젝트", "업무")

    def __init__(self, display_name: str, label: str, alias: str):
        self.display_name = display_name
        self.label = label
        self.alias = alias

    def __str__(self) -> str:
        return self.display_name

    @classmethod
    def default(cls) -> Category:
        return cls.CONTENT

    @classmethod
    def from_name(cls, name: str) -> Category:
        """Look up a member by display name, raising ValueError if unknown."""
        category = cls.parse(name)
        if category is None:
            raise ValueError(f"Unknown category: {name!r}")
        return category

    @classmethod
    def parse(cls, raw: str | None) -> Category | None:
        """Match a classifier label against every known spelling.

        Accepts the English name, the Korean label or its short alias, case
        insensitively, and also any comma-separated segment of ``raw`` so
        mixed labels such as ``"Study, 학습"`` resolve.
        """
        if not raw or not isinstance(raw, str):
            return None
        text = raw.strip().lower()
        if not text:
            return None
        candidates = [text] + [part.strip() for part in text.split(",") if part.strip()]
        for candidate in candidates:
            for member in cls:
                if candidate in (
                    member.display_name.lower(),
                    member.label.lower(),
                    member.alias.lower(),
                ):
                    return member
        return None


@dataclass(frozen=True)
class VisitedPage:
    """One browser visit event as submitted by the client."""

    title: str
    url: str
    visit_count: int
    start_timestamp: int  # unix seconds
    duration_seconds: int

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "visitCount": self.visit_count,
            "startTimestamp": self.start_timestamp,
            "durationSeconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class CategorizedPage:
    page: VisitedPage
    category: Category


@dataclass(frozen=True)
class TimeSegment:
    """Part of a visit attributed to a single local hour."""

    hour: int
    category: Category
    seconds: int


@dataclass(frozen=True)
class CategorySummary:
    category: str
    minutes: int

    def to_dict(self) -> dict:
        return {"category": self.category, "totalTimeMinutes": self.minutes}


@dataclass(frozen=True)
class HourlyBreakdown:
    hour: int
    total_minutes: int
    category_minutes: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # read-only view over a private copy; cached reports are shared
        object.__setattr__(self, "category_minutes", MappingProxyType(dict(self.category_minutes)))

    def __hash__(self) -> int:
        return hash((self.hour, self.total_minutes, tuple(sorted(self.category_minutes.items()))))

    def to_dict(self) -> dict:
        return {
            "hour": self.hour,
            "totalUsageMinutes": self.total_minutes,
            "categoryMinutes": dict(self.category_minutes),
        }


@dataclass(frozen=True)
class ActivityStats:
    """Time-usage report for one user and day.

    Immutable all the way down: sequences are stored as tuples, so one
    cached instance can be handed to every caller.
    """

    total_usage_minutes: int
    category_summaries: tuple[CategorySummary, ...] = ()
    hourly_breakdown: tuple[HourlyBreakdown, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "category_summaries", tuple(self.category_summaries))
        object.__setattr__(self, "hourly_breakdown", tuple(self.hourly_breakdown))

    def category_percentages(self) -> list[tuple[str, int]]:
        """Share of each category in whole percent of the total usage."""
        if self.total_usage_minutes == 0:
            return []
        return [
            (s.category, round(s.minutes * 100.0 / self.total_usage_minutes))
            for s in self.category_summaries
        ]

    def to_dict(self) -> dict:
        return {
            "totalUsageTimeMinutes": self.total_usage_minutes,
            "categorySummaries": [s.to_dict() for s in self.category_summaries],
            "hourlyActivityBreakdown": [h.to_dict() for h in self.hourly_breakdown],
        }

    @classmethod
    def from_dict(cls, data: dict) -> ActivityStats:
        """Rebuild stats from :meth:`to_dict` output; raises KeyError/TypeError/ValueError on bad input."""
        return cls(
            total_usage_minutes=int(data["totalUsageTimeMinutes"]),
            category_summaries=tuple(
                CategorySummary(category=str(s["category"]), minutes=int(s["totalTimeMinutes"]))
                for s in data.get("categorySummaries", [])
            ),
            hourly_breakdown=tuple(
                HourlyBreakdown(
                    hour=int(h["hour"]),
                    total_minutes=int(h["totalUsageMinutes"]),
                    category_minutes={
                        str(k): int(v) for k, v in h.get("categoryMinutes", {}).items()
                    },
                )
                for h in data.get("hourlyActivityBreakdown", [])
            ),
        )


@dataclass(frozen=True)
class KeywordFrequency:
    """A keyword with its observed frequency; ``keyword`` keeps display casing."""

    keyword: str
    frequency: int

    @property
    def normalized(self) -> str:
        return (self.keyword or "").strip().lower()

    def to_dict(self) -> dict:
        return {"keyword": self.keyword, "frequency": self.frequency}
