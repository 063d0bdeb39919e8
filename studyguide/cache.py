from __future__ import annotations
"""
In-memory TTL Cache.

Bounded, time-limited key/value store shared by the inference gateway
(response cache) and the synthesis orchestrator (result cache).
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A single cached value."""

    key: str
    value: Any
    timestamp: float


class TTLCache:
    """
    Insertion-ordered cache with optional expiry and a hard size bound.

    Expired entries are swept on every write; when the cache is full the
    oldest entry is evicted first. A ``ttl_seconds`` of None disables expiry.
    """

    def __init__(
        self,
        ttl_seconds: float | None = 300.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive: {max_entries}")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return now - entry.timestamp >= self.ttl_seconds

    def get(self, key: str) -> Any | None:
        """Return a live value or None. Expired entries are dropped."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, sweeping expired entries and evicting the oldest."""
        self.sweep()
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, timestamp=self._clock())

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry {evicted[:40]}")

    def delete(self, key: str) -> bool:
        """Remove a key. Returns whether it was present."""
        return self._entries.pop(key, None) is not None

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        if self.ttl_seconds is None:
            return 0
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, Any]:
        """Size, hit/miss counters and the current keys."""
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "keys": list(self._entries.keys()),
        }

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._is_expired(entry, self._clock())

    def __len__(self) -> int:
        return len(self._entries)
