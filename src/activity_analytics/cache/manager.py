"""Two-tier cache: in-process TTL map in front of a persistent tier."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Callable, Generic, TypeVar

from activity_analytics.cache.memory import CacheEntry, CacheKey, InProcessCache, now_millis
from activity_analytics.cache.tiers import PersistentTier
from activity_analytics.exceptions import CacheError, CacheWriteError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A hit is flagged once the submitted page count exceeds the cached one by this share.
DEFAULT_REFRESH_GROWTH_RATIO = 0.5


class BackgroundTasks:
    """Fire-and-forget worker pool with a bounded number of pending tasks.

    Tasks submitted while the pool is full are dropped with a warning.
    Exceptions raised by tasks are logged and never reach the submitter.
    """

    def __init__(self, max_workers: int = 2, max_pending: int = 64, name: str = "analytics-bg"):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._slots = threading.BoundedSemaphore(max_pending)
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, description: str, func: Callable, *args) -> bool:
        """Schedule ``func(*args)``; returns False if it was not accepted."""
        if self._closed:
            logger.warning("Background pool closed; dropping %s", description)
            return False
        if not self._slots.acquire(blocking=False):
            logger.warning("Background queue full; dropping %s", description)
            return False

        def run():
            try:
                func(*args)
            except Exception:
                logger.exception("Background task failed: %s", description)
            finally:
                self._slots.release()

        try:
            future = self._executor.submit(run)
        except RuntimeError:
            self._slots.release()
            logger.warning("Background pool shut down; dropping %s", description)
            return False
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return True

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for every task submitted so far; True when all finished."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)


class TieredCacheManager(Generic[T]):
    """Cache for one kind of analytics result.

    Reads check the in-process cache, then the persistent tier (backfilling
    memory on a hit). Writes replace the in-process entry immediately and
    persist in the background; persistent failures are logged only.

    Args:
        tier: Persistent tier holding entries indefinitely.
        tasks: Pool used for persistence and refresh-eligibility checks.
        ttl_seconds: In-process entry lifetime.
        clock: Millisecond clock, injectable for tests.
        refresh_growth_ratio: Page-count growth that marks an entry for refresh.
    """

    def __init__(
        self,
        tier: PersistentTier[T],
        tasks: BackgroundTasks,
        ttl_seconds: int,
        clock: Callable[[], int] = now_millis,
        refresh_growth_ratio: float = DEFAULT_REFRESH_GROWTH_RATIO,
    ):
        self.memory: InProcessCache[T] = InProcessCache(ttl_seconds, clock=clock)
        self.tier = tier
        self.tasks = tasks
        self.refresh_growth_ratio = refresh_growth_ratio
        self._clock = clock
        self._refresh_candidates: set[CacheKey] = set()
        # guards refresh flags, generations and the memory write in put/invalidate
        self._state_lock = threading.Lock()
        # bumped by invalidate(); a queued persist from an older generation is discarded
        self._generations: dict[CacheKey, int] = {}
        self._write_lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop_sweeper = threading.Event()

    def get(self, key: CacheKey, page_count: int | None = None) -> CacheEntry[T] | None:
        """Look ``key`` up in memory, then in the persistent tier.

        When ``page_count`` is given and an entry is found, a background
        check flags the key if the new page count outgrew the cached one.

        Raises:
            PersistedDataCorruptError: the stored record cannot be decoded.
            CacheReadError: the persistent tier could not be queried.
        """
        entry = self.memory.get(key)
        if entry is not None:
            logger.debug("Memory cache hit for %s", key)
        else:
            entry = self.tier.load(key)
            if entry is None:
                logger.debug("Cache miss for %s", key)
                return None
            logger.debug("Persistent cache hit for %s; backfilling memory", key)
            self.memory.put(key, entry)

        if page_count is not None:
            self.tasks.submit(
                f"refresh check for {key}", self._check_refresh, key, entry, page_count
            )
        return entry

    def put(self, key: CacheKey, payload: T, page_count: int | None = None) -> CacheEntry[T]:
        entry = CacheEntry(payload=payload, cached_at_millis=self._clock(), page_count=page_count)
        with self._state_lock:
            self.memory.put(key, entry)
            self._refresh_candidates.discard(key)
            generation = self._generations.get(key, 0)
        self.tasks.submit(f"persist {key}", self._persist, key, entry, generation)
        return entry

    def invalidate(self, key: CacheKey) -> None:
        """Remove ``key`` from both tiers, deleting its persisted rows.

        Persists queued by earlier :meth:`put` calls are discarded when they
        run, so they cannot bring the deleted rows back.
        """
        with self._write_lock:
            with self._state_lock:
                self._refresh_candidates.discard(key)
                self._generations[key] = self._generations.get(key, 0) + 1
                self.memory.invalidate(key)
            self.tier.delete(key)
        logger.info("Invalidated cache for %s", key)

    def sweep(self) -> int:
        return self.memory.sweep()

    def is_refresh_candidate(self, key: CacheKey) -> bool:
        with self._state_lock:
            return key in self._refresh_candidates

    @property
    def refresh_candidates(self) -> frozenset[CacheKey]:
        with self._state_lock:
            return frozenset(self._refresh_candidates)

    def start_sweeper(self, interval_seconds: float) -> None:
        """Sweep expired in-process entries every ``interval_seconds``."""
        if self._sweeper is not None:
            return
        self._stop_sweeper.clear()

        def loop():
            while not self._stop_sweeper.wait(interval_seconds):
                try:
                    self.sweep()
                except Exception:
                    logger.exception("Cache sweep failed")

        self._sweeper = threading.Thread(target=loop, name="analytics-cache-sweeper", daemon=True)
        self._sweeper.start()

    def close(self) -> None:
        self._stop_sweeper.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
        self.memory.clear()

    def _persist(self, key: CacheKey, entry: CacheEntry[T], generation: int) -> None:
        try:
            with self._write_lock:
                with self._state_lock:
                    current = self._generations.get(key, 0)
                if current != generation:
                    logger.debug("Skipping persist of %s; invalidated after it was queued", key)
                    return
                self.tier.store(key, entry)
        except CacheError as e:
            logger.error("Persistent cache write failed for %s: %s", key, e)
        except Exception as e:
            logger.error(
                "Persistent cache write failed for %s: %s",
                key,
                CacheWriteError(f"{type(e).__name__}: {e}"),
            )

    def _check_refresh(self, key: CacheKey, entry: CacheEntry[T], page_count: int) -> None:
        cached_count = entry.page_count
        if cached_count is None:
            return
        if page_count > cached_count * (1 + self.refresh_growth_ratio):
            with self._state_lock:
                self._refresh_candidates.add(key)
            # flagged only; the entry keeps serving until put() or invalidate()
            logger.info(
                "Cached entry %s covers %d pages but %d were submitted; flagged for refresh",
                key,
                cached_count,
                page_count,
            )
