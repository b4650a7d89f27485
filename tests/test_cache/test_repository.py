"""Tests for SQLite record repositories."""

from datetime import date

import pytest

from activity_analytics.cache.repository import (
    KeywordRecord,
    SQLiteDatabase,
    SQLiteKeywordRepository,
    SQLiteTimeAnalysisRepository,
    TimeAnalysisRecord,
)
from activity_analytics.exceptions import CacheReadError, PersistedDataCorruptError

DAY = date(2024, 1, 15)


@pytest.fixture
def db(tmp_path):
    database = SQLiteDatabase(tmp_path / "nested" / "analytics.db")
    yield database
    database.close()


def _time_record(**overrides):
    values = dict(
        user_id="u1",
        day=DAY,
        total_usage_minutes=60,
        category_summaries_json='[{"category": "Study", "totalTimeMinutes": 60}]',
        hourly_breakdown_json="[]",
        page_count=3,
    )
    values.update(overrides)
    return TimeAnalysisRecord(**values)


def test_database_creates_parent_directory(tmp_path):
    database = SQLiteDatabase(tmp_path / "a" / "b" / "analytics.db")
    assert (tmp_path / "a" / "b" / "analytics.db").exists()
    database.close()


def test_time_save_insert_then_find(db):
    repo = SQLiteTimeAnalysisRepository(db)
    saved = repo.save(_time_record())
    assert saved.id is not None

    found = repo.find_by_user_and_date("u1", DAY)
    assert found == saved


def test_time_save_update_in_place(db):
    repo = SQLiteTimeAnalysisRepository(db)
    saved = repo.save(_time_record())
    repo.save(_time_record(id=saved.id, total_usage_minutes=90, page_count=5))

    found = repo.find_by_user_and_date("u1", DAY)
    assert found.id == saved.id
    assert found.total_usage_minutes == 90
    assert found.page_count == 5


def test_time_find_scoped_to_user_and_day(db):
    repo = SQLiteTimeAnalysisRepository(db)
    repo.save(_time_record())
    assert repo.find_by_user_and_date("u2", DAY) is None
    assert repo.find_by_user_and_date("u1", date(2024, 1, 16)) is None


def test_time_delete_all(db):
    repo = SQLiteTimeAnalysisRepository(db)
    saved = repo.save(_time_record())
    repo.delete_all([saved])
    assert repo.find_by_user_and_date("u1", DAY) is None


def test_time_find_returns_latest_duplicate(db):
    repo = SQLiteTimeAnalysisRepository(db)
    older = repo.save(_time_record(total_usage_minutes=10))
    newer = repo.save(_time_record(total_usage_minutes=20))
    with db.lock, db.conn:
        db.conn.execute("UPDATE time_analysis_data SET updated_at = '2000-01-01' WHERE id = ?", (older.id,))

    assert repo.find_by_user_and_date("u1", DAY).id == newer.id


def test_keyword_save_all_and_find(db):
    repo = SQLiteKeywordRepository(db)
    saved = repo.save_all([
        KeywordRecord(user_id="u1", keyword="Go", frequency=2, day=DAY),
        KeywordRecord(user_id="u1", keyword="Seoul", frequency=1, day=DAY),
    ])
    assert all(r.id is not None for r in saved)

    found = repo.find_by_user_and_date("u1", DAY)
    assert [(r.keyword, r.frequency) for r in found] == [("Go", 2), ("Seoul", 1)]


def test_keyword_update_and_delete(db):
    repo = SQLiteKeywordRepository(db)
    go, seoul = repo.save_all([
        KeywordRecord(user_id="u1", keyword="Go", frequency=2, day=DAY),
        KeywordRecord(user_id="u1", keyword="Seoul", frequency=1, day=DAY),
    ])
    repo.save_all([KeywordRecord(user_id="u1", keyword="Go", frequency=7, day=DAY, id=go.id)])
    repo.delete_all([seoul])

    found = repo.find_by_user_and_date("u1", DAY)
    assert [(r.keyword, r.frequency) for r in found] == [("Go", 7)]


def test_keyword_bad_frequency_is_corrupt(db):
    repo = SQLiteKeywordRepository(db)
    (go,) = repo.save_all([KeywordRecord(user_id="u1", keyword="Go", frequency=2, day=DAY)])
    with db.lock, db.conn:
        db.conn.execute("UPDATE keyword_data SET frequency = 'lots' WHERE id = ?", (go.id,))

    with pytest.raises(PersistedDataCorruptError, match="Bad frequency"):
        repo.find_by_user_and_date("u1", DAY)


def test_delete_all_empty_is_noop(db):
    SQLiteKeywordRepository(db).delete_all([])
    SQLiteTimeAnalysisRepository(db).delete_all([])


@pytest.mark.parametrize("repository_class", [SQLiteTimeAnalysisRepository, SQLiteKeywordRepository])
def test_find_on_closed_database_raises_read_error(db, repository_class):
    repository = repository_class(db)
    db.close()

    with pytest.raises(CacheReadError, match="Failed to read"):
        repository.find_by_user_and_date("u1", DAY)
