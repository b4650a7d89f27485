"""Tests for the tiered cache manager and background pool."""

import threading
from datetime import date

import pytest

from activity_analytics.cache.manager import BackgroundTasks, TieredCacheManager
from activity_analytics.cache.memory import CacheEntry, CacheKey
from activity_analytics.cache.tiers import PersistentTier
from activity_analytics.exceptions import CacheWriteError

KEY = CacheKey("time", "u1", date(2024, 1, 15))


class FakeTier(PersistentTier):
    def __init__(self, fail_with=None):
        self.entries = {}
        self.loads = 0
        self.fail_with = fail_with

    def load(self, key):
        self.loads += 1
        return self.entries.get(key)

    def store(self, key, entry):
        if self.fail_with is not None:
            raise self.fail_with
        self.entries[key] = entry

    def delete(self, key):
        self.entries.pop(key, None)


class FakeClock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def tasks():
    pool = BackgroundTasks(max_workers=2, max_pending=16)
    yield pool
    pool.shutdown()


def _manager(tier, tasks, clock=None):
    return TieredCacheManager(tier, tasks, ttl_seconds=60, clock=clock or FakeClock())


def test_put_is_visible_immediately_and_persisted_in_background(tasks):
    tier = FakeTier()
    manager = _manager(tier, tasks)

    manager.put(KEY, "stats", page_count=3)
    assert manager.get(KEY).payload == "stats"

    assert tasks.join(timeout=5)
    assert tier.entries[KEY].payload == "stats"
    assert tier.entries[KEY].page_count == 3


def test_miss_returns_none(tasks):
    assert _manager(FakeTier(), tasks).get(KEY) is None


def test_persistent_hit_backfills_memory(tasks):
    tier = FakeTier()
    tier.entries[KEY] = CacheEntry(payload="stored", cached_at_millis=1_000_000)
    manager = _manager(tier, tasks)

    assert manager.get(KEY).payload == "stored"
    assert manager.get(KEY).payload == "stored"
    assert tier.loads == 1


def test_expired_memory_entry_falls_back_to_tier(tasks):
    clock = FakeClock()
    tier = FakeTier()
    manager = _manager(tier, tasks, clock)
    manager.put(KEY, "stats")
    tasks.join(timeout=5)

    clock.now += 61_000
    assert manager.sweep() == 1
    assert manager.get(KEY).payload == "stats"
    assert tier.loads == 1


def test_invalidate_clears_both_tiers(tasks):
    tier = FakeTier()
    manager = _manager(tier, tasks)
    manager.put(KEY, "stats")
    tasks.join(timeout=5)

    manager.invalidate(KEY)
    assert manager.get(KEY) is None
    assert KEY not in tier.entries


def test_invalidate_discards_queued_persist():
    pool = BackgroundTasks(max_workers=1, max_pending=8)
    gate = threading.Event()
    tier = FakeTier()
    manager = _manager(tier, pool)
    try:
        pool.submit("gate", gate.wait, 5)
        manager.put(KEY, "stale", page_count=3)
        manager.invalidate(KEY)
        gate.set()
        assert pool.join(timeout=5)

        assert KEY not in tier.entries
        assert manager.get(KEY) is None
    finally:
        gate.set()
        pool.shutdown()


def test_put_after_invalidate_is_persisted():
    pool = BackgroundTasks(max_workers=1, max_pending=8)
    gate = threading.Event()
    tier = FakeTier()
    manager = _manager(tier, pool)
    try:
        pool.submit("gate", gate.wait, 5)
        manager.put(KEY, "stale")
        manager.invalidate(KEY)
        manager.put(KEY, "fresh")
        gate.set()
        assert pool.join(timeout=5)

        assert tier.entries[KEY].payload == "fresh"
    finally:
        gate.set()
        pool.shutdown()


@pytest.mark.parametrize("submitted, flagged", [(16, True), (14, False), (15, False)])
def test_refresh_flag_on_page_growth(tasks, submitted, flagged):
    manager = _manager(FakeTier(), tasks)
    manager.put(KEY, "stats", page_count=10)
    tasks.join(timeout=5)

    assert manager.get(KEY, page_count=submitted).payload == "stats"
    tasks.join(timeout=5)
    assert manager.is_refresh_candidate(KEY) is flagged


def test_put_clears_refresh_flag(tasks):
    manager = _manager(FakeTier(), tasks)
    manager.put(KEY, "stats", page_count=10)
    manager.get(KEY, page_count=100)
    tasks.join(timeout=5)
    assert KEY in manager.refresh_candidates

    manager.put(KEY, "fresh", page_count=100)
    assert not manager.is_refresh_candidate(KEY)


@pytest.mark.parametrize("error", [CacheWriteError("disk full"), RuntimeError("boom")])
def test_persist_failure_is_logged_not_raised(tasks, caplog, error):
    manager = _manager(FakeTier(fail_with=error), tasks)

    manager.put(KEY, "stats")
    tasks.join(timeout=5)

    assert manager.get(KEY).payload == "stats"
    assert "Persistent cache write failed" in caplog.text


def test_background_tasks_drop_when_full(caplog):
    pool = BackgroundTasks(max_workers=1, max_pending=1)
    release = threading.Event()
    try:
        assert pool.submit("blocker", release.wait, 5) is True
        assert pool.submit("second", lambda: None) is False
        assert "Background queue full" in caplog.text
    finally:
        release.set()
        pool.shutdown()


def test_background_tasks_log_exceptions(caplog):
    pool = BackgroundTasks(max_workers=1, max_pending=4)

    def fail():
        raise ValueError("bad")

    assert pool.submit("failing task", fail) is True
    assert pool.join(timeout=5)
    pool.shutdown()
    assert "Background task failed: failing task" in caplog.text


def test_background_tasks_reject_after_shutdown():
    pool = BackgroundTasks(max_workers=1, max_pending=4)
    pool.shutdown()
    assert pool.submit("late", lambda: None) is False


def test_sweeper_thread_stops_on_close(tasks):
    manager = _manager(FakeTier(), tasks)
    manager.start_sweeper(0.01)
    manager.close()
    assert manager._sweeper is None
