from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional, TypeVar

import structlog

from . import settings
from .logs import DailyLog
from .periods import TimePeriod, local_now
from .source import LogSource

logger = structlog.get_logger(__name__)

T = TypeVar("T")

LogPredicate = Callable[[DailyLog], bool]


@dataclass(frozen=True)
class CacheEntry:
    logs: tuple[DailyLog, ...]
    fetched_at: float


def _sorted(logs: list[DailyLog]) -> tuple[DailyLog, ...]:
    return tuple(sorted(logs, key=lambda log: log.date))


class LogCache:
    """In-memory cache in front of a LogSource.

    Two layers: a per-period entry (long TTL) and one session-wide snapshot of
    every log (short TTL) that period views are filtered from. All state is
    guarded by a single lock and the source fetch runs while it is held, so
    concurrent misses share one fetch.

    Returned tuples are shared between callers and must not be modified.
    Writers to the log store call `invalidate_all()` or `invalidate_session()`.
    """

    def __init__(
        self,
        source: LogSource,
        period_ttl: Optional[float] = None,
        session_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = local_now,
    ) -> None:
        self.source = source
        self.period_ttl = settings.PERIOD_CACHE_TTL_SECONDS if period_ttl is None else period_ttl
        self.session_ttl = settings.SESSION_CACHE_TTL_SECONDS if session_ttl is None else session_ttl
        self._clock = clock
        self._now = now

        self._lock = threading.Lock()
        self._period_entries: dict[TimePeriod, CacheEntry] = {}
        self._session_entry: Optional[CacheEntry] = None

    # -- reads ---------------------------------------------------------------

    def get_logs(self, period: TimePeriod) -> tuple[DailyLog, ...]:
        """Logs for one period, cached per period."""
        with self._lock:
            entry = self._period_entries.get(period)
            if entry is not None and self._fresh(entry, self.period_ttl):
                logger.debug("period cache hit", period=period.value, count=len(entry.logs))
                return entry.logs

            logs = self._fetch()
            if logs is None:
                return ()
            filtered = self._slice(logs, period)
            self._period_entries[period] = CacheEntry(logs=filtered, fetched_at=self._clock())
            logger.debug("period cache filled", period=period.value, count=len(filtered))
            return filtered

    def get_all_logs(self) -> tuple[DailyLog, ...]:
        """Every log, from the session-wide snapshot."""
        with self._lock:
            return self._session_logs()

    def filter_by_period(self, period: TimePeriod) -> tuple[DailyLog, ...]:
        """Period view derived from the session snapshot (no extra source read)."""
        with self._lock:
            logs = self._session_logs()
        return self._slice(logs, period)

    def count(self, period: TimePeriod, predicate: LogPredicate) -> int:
        return sum(1 for log in self.filter_by_period(period) if predicate(log))

    def count_all(self, predicate: LogPredicate) -> int:
        return sum(1 for log in self.get_all_logs() if predicate(log))

    # -- batch helpers ----------------------------------------------------------

    def batch(self, period: TimePeriod, operations: Mapping[str, Callable[[tuple[DailyLog, ...]], T]]) -> dict[str, T]:
        """Run several computations against one snapshot of the period."""
        logs = self.filter_by_period(period)
        return {key: op(logs) for key, op in operations.items()}

    def batch_counts(self, period: TimePeriod, predicates: Mapping[str, LogPredicate]) -> dict[str, int]:
        logs = self.filter_by_period(period)
        return {key: sum(1 for log in logs if pred(log)) for key, pred in predicates.items()}

    def available_symptoms(self) -> dict[str, bool]:
        """Symptom name -> is_binary, taken from the most recent log that rates it."""
        out: dict[str, bool] = {}
        for log in reversed(self.get_all_logs()):
            for rating in log.symptom_ratings:
                if rating.symptom_name not in out:
                    out[rating.symptom_name] = rating.is_binary
        return out

    def available_medications(self) -> set[str]:
        return self._names(lambda log: log.medications_taken)

    def available_activities(self) -> set[str]:
        return self._names(lambda log: log.activities)

    def available_meals(self) -> set[str]:
        return self._names(lambda log: log.meals)

    # -- invalidation -----------------------------------------------------------

    def invalidate_all(self) -> None:
        with self._lock:
            self._period_entries.clear()
            self._session_entry = None
        logger.info("log cache invalidated", scope="all")

    def invalidate_session(self) -> None:
        with self._lock:
            self._session_entry = None
        logger.info("log cache invalidated", scope="session")

    # -- internals (call with the lock held) ------------------------------------

    def _fresh(self, entry: CacheEntry, ttl: float) -> bool:
        return self._clock() - entry.fetched_at < ttl

    def _session_logs(self) -> tuple[DailyLog, ...]:
        entry = self._session_entry
        if entry is not None and self._fresh(entry, self.session_ttl):
            logger.debug("session cache hit", count=len(entry.logs))
            return entry.logs

        logs = self._fetch()
        if logs is None:
            return ()
        snapshot = _sorted(logs)
        self._session_entry = CacheEntry(logs=snapshot, fetched_at=self._clock())
        logger.debug("session cache filled", count=len(snapshot))
        return snapshot

    def _fetch(self) -> Optional[list[DailyLog]]:
        # Failures are not cached; the next read tries the source again.
        try:
            return list(self.source.fetch_all())
        except Exception as e:
            logger.warning("log source fetch failed", error=str(e), error_type=type(e).__name__)
            return None

    def _slice(self, logs: Iterable[DailyLog], period: TimePeriod) -> tuple[DailyLog, ...]:
        rng = period.date_range(self._now())
        if rng is None:
            return _sorted(list(logs))
        start, end = rng
        return _sorted([log for log in logs if start <= log.date <= end])

    def _names(self, pick: Callable[[DailyLog], list[str]]) -> set[str]:
        names: set[str] = set()
        for log in self.get_all_logs():
            for name in pick(log):
                clean = name.strip()
                if clean:
                    names.add(clean)
        return names
