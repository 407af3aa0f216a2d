import logging
import threading
import time
from collections import namedtuple
from datetime import datetime
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# value: cached object; stamp: the value's own timestamp (ordering); stored_at: clock reading at write (TTL)
CacheEntry = namedtuple("CacheEntry", ["value", "stamp", "stored_at"])


class ResponseCache:
    """In-memory TTL cache keyed by session key.

    Entries older than ttl_seconds are treated as a miss and dropped. Concurrent
    writers are resolved last-write-wins on the value's timestamp, so a slow
    collection that finishes late never replaces a newer snapshot.
    """

    DEFAULT_TTL = 15

    def __init__(self, ttl_seconds: float = DEFAULT_TTL, clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value if present and younger than the TTL."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: str, value: Any, stamp: Optional[datetime] = None) -> bool:
        """Store value under key. Returns False if a newer value is already cached."""
        with self._lock:
            current = self._entries.get(key)
            if current is not None and stamp is not None and current.stamp is not None and current.stamp > stamp:
                logger.debug(f"Cache: keeping newer entry for {key}")
                return False
            self._entries[key] = CacheEntry(value, stamp, self._clock())
            return True

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class LatestValue:
    """Single-slot holder for the most recent value, last-write-wins on timestamp."""

    def __init__(self):
        self._value = None
        self._stamp = None
        self._lock = threading.Lock()

    def set(self, value: Any, stamp: Optional[datetime] = None) -> bool:
        with self._lock:
            if self._stamp is not None and stamp is not None and self._stamp > stamp:
                return False
            self._value = value
            self._stamp = stamp
            return True

    def get(self) -> Optional[Any]:
        with self._lock:
            return self._value
