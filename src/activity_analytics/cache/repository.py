"""Persistent records and their repositories (SQLite by default)."""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path

from activity_analytics.exceptions import (
    CacheReadError,
    CacheWriteError,
    PersistedDataCorruptError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeAnalysisRecord:
    """One user's stored time report for one day; stats are JSON columns."""

    user_id: str
    day: date
    total_usage_minutes: int
    category_summaries_json: str
    hourly_breakdown_json: str
    page_count: int | None = None
    id: int | None = None


@dataclass(frozen=True)
class KeywordRecord:
    user_id: str
    keyword: str
    frequency: int
    day: date
    id: int | None = None


class TimeAnalysisRepository(ABC):
    """Storage for :class:`TimeAnalysisRecord` rows."""

    @abstractmethod
    def find_by_user_and_date(self, user_id: str, day: date) -> TimeAnalysisRecord | None:
        ...

    @abstractmethod
    def save(self, record: TimeAnalysisRecord) -> TimeAnalysisRecord:
        """Insert, or update when ``record.id`` is set; returns the stored record."""
        ...

    @abstractmethod
    def delete_all(self, records: list[TimeAnalysisRecord]) -> None:
        ...


class KeywordRepository(ABC):
    """Storage for :class:`KeywordRecord` rows."""

    @abstractmethod
    def find_by_user_and_date(self, user_id: str, day: date) -> list[KeywordRecord]:
        ...

    @abstractmethod
    def save_all(self, records: list[KeywordRecord]) -> list[KeywordRecord]:
        ...

    @abstractmethod
    def delete_all(self, records: list[KeywordRecord]) -> None:
        ...


_SCHEMA = """
CREATE TABLE IF NOT EXISTS time_analysis_data (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    total_usage_minutes INTEGER NOT NULL,
    category_summaries_json TEXT NOT NULL,
    hourly_breakdowns_json TEXT NOT NULL,
    page_count INTEGER,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_time_analysis_user_date
    ON time_analysis_data (user_id, date);

CREATE TABLE IF NOT EXISTS keyword_data (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    keyword TEXT NOT NULL,
    frequency INTEGER NOT NULL,
    date TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_keyword_user_date
    ON keyword_data (user_id, date);
"""


class SQLiteDatabase:
    """A single shared SQLite connection, serialized by a lock.

    Background cache writers run on worker threads, so the connection is
    opened with ``check_same_thread=False`` and every use holds ``lock``.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise CacheWriteError(f"Failed to open analytics database {self.db_path}: {e}") from e
        self.lock = threading.Lock()
        logger.debug("Opened analytics database at %s", self.db_path)

    def close(self) -> None:
        with self.lock:
            self.conn.close()


def _parse_day(value: str, table: str, row_id) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise PersistedDataCorruptError(f"Bad date {value!r} in {table} row {row_id}") from e


class SQLiteTimeAnalysisRepository(TimeAnalysisRepository):
    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def find_by_user_and_date(self, user_id: str, day: date) -> TimeAnalysisRecord | None:
        try:
            with self.db.lock:
                row = self.db.conn.execute(
                    """
                    SELECT id, user_id, date, total_usage_minutes, category_summaries_json,
                           hourly_breakdowns_json, page_count
                    FROM time_analysis_data
                    WHERE user_id = ? AND date = ?
                    ORDER BY updated_at DESC, id DESC
                    LIMIT 1
                    """,
                    (user_id, day.isoformat()),
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheReadError(f"Failed to read time analysis for {user_id}: {e}") from e
        if row is None:
            return None
        return TimeAnalysisRecord(
            id=row["id"],
            user_id=row["user_id"],
            day=_parse_day(row["date"], "time_analysis_data", row["id"]),
            total_usage_minutes=int(row["total_usage_minutes"]),
            category_summaries_json=row["category_summaries_json"],
            hourly_breakdown_json=row["hourly_breakdowns_json"],
            page_count=row["page_count"],
        )

    def save(self, record: TimeAnalysisRecord) -> TimeAnalysisRecord:
        values = (
            record.user_id,
            record.day.isoformat(),
            record.total_usage_minutes,
            record.category_summaries_json,
            record.hourly_breakdown_json,
            record.page_count,
            datetime.now().isoformat(),
        )
        try:
            with self.db.lock, self.db.conn:
                if record.id is None:
                    cursor = self.db.conn.execute(
                        """
                        INSERT INTO time_analysis_data (
                            user_id, date, total_usage_minutes, category_summaries_json,
                            hourly_breakdowns_json, page_count, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        values,
                    )
                    return replace(record, id=cursor.lastrowid)
                self.db.conn.execute(
                    """
                    UPDATE time_analysis_data
                    SET user_id = ?, date = ?, total_usage_minutes = ?,
                        category_summaries_json = ?, hourly_breakdowns_json = ?,
                        page_count = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    values + (record.id,),
                )
                return record
        except sqlite3.Error as e:
            raise CacheWriteError(f"Failed to save time analysis for {record.user_id}: {e}") from e

    def delete_all(self, records: list[TimeAnalysisRecord]) -> None:
        ids = [(r.id,) for r in records if r.id is not None]
        if not ids:
            return
        try:
            with self.db.lock, self.db.conn:
                self.db.conn.executemany("DELETE FROM time_analysis_data WHERE id = ?", ids)
        except sqlite3.Error as e:
            raise CacheWriteError(f"Failed to delete time analysis rows: {e}") from e


class SQLiteKeywordRepository(KeywordRepository):
    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def find_by_user_and_date(self, user_id: str, day: date) -> list[KeywordRecord]:
        try:
            with self.db.lock:
                rows = self.db.conn.execute(
                    """
                    SELECT id, user_id, keyword, frequency, date
                    FROM keyword_data
                    WHERE user_id = ? AND date = ?
                    ORDER BY id
                    """,
                    (user_id, day.isoformat()),
                ).fetchall()
        except sqlite3.Error as e:
            raise CacheReadError(f"Failed to read keywords for {user_id}: {e}") from e

        records = []
        for row in rows:
            try:
                frequency = int(row["frequency"])
            except (TypeError, ValueError) as e:
                raise PersistedDataCorruptError(
                    f"Bad frequency {row['frequency']!r} in keyword_data row {row['id']}"
                ) from e
            records.append(
                KeywordRecord(
                    id=row["id"],
                    user_id=row["user_id"],
                    keyword=row["keyword"] or "",
                    frequency=frequency,
                    day=_parse_day(row["date"], "keyword_data", row["id"]),
                )
            )
        return records

    def save_all(self, records: list[KeywordRecord]) -> list[KeywordRecord]:
        now = datetime.now().isoformat()
        saved: list[KeywordRecord] = []
        try:
            with self.db.lock, self.db.conn:
                for record in records:
                    if record.id is None:
                        cursor = self.db.conn.execute(
                            """
                            INSERT INTO keyword_data (user_id, keyword, frequency, date, created_at)
                            VALUES (?, ?, ?, ?, ?)
                            """,
                            (record.user_id, record.keyword, record.frequency,
                             record.day.isoformat(), now),
                        )
                        saved.append(replace(record, id=cursor.lastrowid))
                    else:
                        self.db.conn.execute(
                            "UPDATE keyword_data SET keyword = ?, frequency = ? WHERE id = ?",
                            (record.keyword, record.frequency, record.id),
                        )
                        saved.append(record)
        except sqlite3.Error as e:
            raise CacheWriteError(f"Failed to save keywords: {e}") from e
        return saved

    def delete_all(self, records: list[KeywordRecord]) -> None:
        ids = [(r.id,) for r in records if r.id is not None]
        if not ids:
            return
        try:
            with self.db.lock, self.db.conn:
                self.db.conn.executemany("DELETE FROM keyword_data WHERE id = ?", ids)
        except sqlite3.Error as e:
            raise CacheWriteError(f"Failed to delete keyword rows: {e}") from e
