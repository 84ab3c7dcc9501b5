"""
In-memory TTL cache.

Shields the remote document store from repeated reads. Expiry is lazy: an
entry is checked when it is read and dropped if stale, there is no sweeper
thread. One instance is built at startup and handed to the data service.

The cache is per process. A write on one instance does not invalidate the
cache of another; staleness there is bounded by the entry TTL.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)


class _Miss:
    """Sentinel type returned by ``TTLCache.get`` on a miss."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS = _Miss()


@dataclass
class CacheEntry:
    data: Any
    stored_at: float
    ttl_seconds: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) >= self.ttl_seconds


class TTLCache:
    """
    Process-local key/value cache with per-entry expiry.

    Attributes:
        clock: Callable returning the current time in seconds. Defaults to
            ``time.monotonic``; tests pass a fake clock to advance time.

    Example:
        >>> cache = TTLCache()
        >>> cache.set("orders_all", [], ttl_minutes=5)
        >>> cache.get("orders_all")
        []
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl_minutes: float = 5) -> None:
        """Store a value; expiry is fixed at insertion time."""
        self._entries[key] = CacheEntry(
            data=value,
            stored_at=self.clock(),
            ttl_seconds=ttl_minutes * 60,
        )
        logger.debug(f"Cache set for key: {key} (TTL: {ttl_minutes}m)")

    def get(self, key: str) -> Any:
        """Return the cached value, or ``MISS`` if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return MISS

        if entry.is_expired(self.clock()):
            del self._entries[key]
            logger.debug(f"Cache expired and removed for key: {key}")
            return MISS

        logger.debug(f"Cache hit for key: {key}")
        return entry.data

    def has(self, key: str) -> bool:
        return self.get(key) is not MISS

    def invalidate(self, key: str) -> None:
        """Remove one entry. No error if it is not there."""
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Cache invalidated for key: {key}")

    def invalidate_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.invalidate(key)

    def invalidate_all(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"All {count} cache entries cleared")

    def get_info(self) -> dict[str, dict[str, Any]]:
        """
        Diagnostic view of every stored entry.

        Read-only: stale entries are reported with ``isExpired`` but are not
        evicted here.
        """
        now = self.clock()
        info = {}
        for key, entry in self._entries.items():
            remaining = max(0.0, entry.ttl_seconds - entry.age(now))
            info[key] = {
                "ageSeconds": round(entry.age(now)),
                "ttlRemainingSeconds": round(remaining),
                "isExpired": entry.is_expired(now),
                "sizeEstimate": f"{_size_estimate(entry.data)} bytes",
            }
        return info

    def __len__(self) -> int:
        return len(self._entries)


def _size_estimate(data: Any) -> int:
    try:
        return len(json.dumps(data, default=str))
    except (TypeError, ValueError):
        return 0
