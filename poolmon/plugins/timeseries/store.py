"""
TimeSeriesStore: bounded in-memory buffer of points plus a best-effort durable copy.

The buffer is kept sorted by timestamp with at most one point per timestamp;
overflow evicts the oldest timestamp. Every accepted write is forwarded to the
durable backend on a single background worker; the outcome is reported as a
DurableWriteResult on the returned future and never raised to the writer.
"""
import bisect
import logging
import math
import threading
from collections import namedtuple
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from poolmon.core.errors import InvalidPointError
from poolmon.plugins.timeseries.backend import TimeSeriesBackend
from poolmon.plugins.timeseries.point import (
    BOOLEAN_FIELDS,
    FIELD_NAMES,
    TimeSeriesPoint,
    as_utc,
    point_fields,
    point_from_fields,
)

DurableWriteResult = namedtuple("DurableWriteResult", ["ok", "timestamp", "error", "skipped"], defaults=(None, False))

Stats = namedtuple("Stats", ["min", "max", "avg"])
EMPTY_STATS = Stats(None, None, None)

DEFAULT_CAPACITY = 1440


def round_half_up(value: float) -> float:
    """One decimal, halves rounded up (72.25 -> 72.3)."""
    return math.floor(value * 10 + 0.5) / 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimeSeriesStore:
    def __init__(
        self,
        backend: Optional[TimeSeriesBackend] = None,
        capacity: int = DEFAULT_CAPACITY,
        measurement: str = "pool_metrics",
        recent_window_hours: float = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.backend = backend
        self.capacity = capacity
        self.measurement = measurement
        self.recent_window_hours = recent_window_hours
        self._clock = clock or _utc_now
        self.logger = logging.getLogger(self.__class__.__name__)

        self._stamps: List[datetime] = []
        self._points: List[TimeSeriesPoint] = []
        self._latest: Optional[TimeSeriesPoint] = None
        self._lock = threading.Lock()

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="timeseries-durable")
        self._pending = set()
        self._pending_lock = threading.Lock()

    def write(self, point: TimeSeriesPoint) -> Future:
        """Insert point into the buffer and queue the durable copy.

        Returns a Future resolving to a DurableWriteResult.
        """
        if point is None or getattr(point, "timestamp", None) is None:
            raise InvalidPointError("Time-series point has no timestamp")
        if not isinstance(point.timestamp, datetime):
            raise InvalidPointError(f"Invalid point timestamp: {point.timestamp!r}")
        point = point._replace(timestamp=as_utc(point.timestamp))

        with self._lock:
            index = bisect.bisect_left(self._stamps, point.timestamp)
            if index < len(self._stamps) and self._stamps[index] == point.timestamp:
                self._points[index] = point
            else:
                self._stamps.insert(index, point.timestamp)
                self._points.insert(index, point)
                if len(self._points) > self.capacity:
                    evicted = self._stamps.pop(0)
                    self._points.pop(0)
                    self.logger.debug(f"Buffer full, evicted point at {evicted.isoformat()}")
            if self._latest is None or point.timestamp >= self._latest.timestamp:
                self._latest = point

        return self._forward(point)

    def _forward(self, point: TimeSeriesPoint) -> Future:
        if self.backend is None:
            future = Future()
            future.set_result(DurableWriteResult(True, point.timestamp, None, True))
            return future
        future = self._executor.submit(self._write_durable, point)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._discard_pending)
        return future

    def _discard_pending(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _write_durable(self, point: TimeSeriesPoint) -> DurableWriteResult:
        try:
            self.backend.write_point(self.measurement, point_fields(point), point.timestamp)
            return DurableWriteResult(True, point.timestamp)
        except Exception as e:
            self.logger.error(f"Durable write failed for point at {point.timestamp.isoformat()}: {e}")
            return DurableWriteResult(False, point.timestamp, str(e))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued durable writes. True if none is left pending."""
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: Optional[float] = 10) -> None:
        self.flush(timeout)
        self._executor.shutdown(wait=False)

    def get_latest(self) -> Optional[TimeSeriesPoint]:
        return self._latest

    def size(self) -> int:
        with self._lock:
            return len(self._points)

    def clear(self) -> None:
        with self._lock:
            self._stamps.clear()
            self._points.clear()
            self._latest = None

    def _memory_range(self, start: datetime) -> List[TimeSeriesPoint]:
        with self._lock:
            index = bisect.bisect_left(self._stamps, start)
            return self._points[index:]

    def _backend_range(self, start: datetime, end: datetime) -> Optional[List[TimeSeriesPoint]]:
        try:
            rows = self.backend.query_range(self.measurement, start, end)
        except Exception as e:
            self.logger.warning(f"Durable backend query failed, using in-memory buffer: {e}")
            return None
        return [point_from_fields(row.timestamp, row.fields) for row in rows]

    def query_range(self, hours: float = 24, limit: int = 1000) -> List[TimeSeriesPoint]:
        """Points from the last `hours`, ascending, at most `limit` (the earliest ones).

        The durable backend serves windows longer than the recent window; the
        buffer serves short windows and stands in when the backend fails or has
        nothing for the range.
        """
        if limit is not None and limit <= 0:
            return []
        now = self._clock()
        start = now - timedelta(hours=hours)

        points = None
        if self.backend is not None and hours > self.recent_window_hours:
            points = self._backend_range(start, now)
            if not points:
                points = None
        if points is None:
            points = self._memory_range(start)
        return points[:limit] if limit is not None else points

    def stats(self, field: str, hours: float = 24) -> Stats:
        """min/max/avg of one numeric field over the window, rounded to one decimal."""
        if field not in FIELD_NAMES or field in BOOLEAN_FIELDS:
            raise ValueError(f"Unknown numeric field: {field}")
        values = [
            v for v in (getattr(p, field) for p in self.query_range(hours, limit=None))
            if v is not None and not isinstance(v, bool)
        ]
        if not values:
            return EMPTY_STATS
        return Stats(
            round_half_up(min(values)),
            round_half_up(max(values)),
            round_half_up(sum(values) / len(values)),
        )

    def describe(self) -> Dict[str, Any]:
        latest = self._latest
        return {
            "size": self.size(),
            "capacity": self.capacity,
            "measurement": self.measurement,
            "durable_backend": self.backend.__class__.__name__ if self.backend else None,
            "latest_timestamp": latest.timestamp.isoformat() if latest else None,
        }
