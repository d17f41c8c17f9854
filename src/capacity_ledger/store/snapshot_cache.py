"""
Read-through cache for the resource lists the ledger works on.

Each key ("engineers", "projects", "assignments") is backed by a loader.
Entries are reloaded on a miss, when older than the TTL, or on an explicit
refresh(). Mutations elsewhere call invalidate() so the next read reloads.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    refreshes: int = 0
    size: int = 0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "refreshes": self.refreshes,
            "size": self.size,
        }


class SnapshotCache:
    """Thread-safe read-through cache with time-based staleness."""

    def __init__(
        self,
        loaders: Dict[str, Callable[[], Any]],
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            loaders: Maps each key to a zero-argument callable returning a fresh value.
            ttl_seconds: Age after which an entry is stale. 0 reloads on every read.
            clock: Monotonic time source, injectable for tests.
        """
        self._loaders = dict(loaders)
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}  # key -> (value, loaded_at)
        self._lock = threading.RLock()
        self._stats = CacheStats()

    def keys(self) -> list[str]:
        return list(self._loaders)

    def _loader(self, key: str) -> Callable[[], Any]:
        try:
            return self._loaders[key]
        except KeyError:
            raise KeyError(f"Unknown cache key: {key}") from None

    def get(self, key: str) -> Any:
        """
        Return the cached value, loading it first if missing or stale.
        """
        loader = self._loader(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not self._expired(entry[1]):
                self._stats.hits += 1
                return entry[0]

            self._stats.misses += 1
            value = loader()
            self._entries[key] = (value, self._clock())
            return value

    def refresh(self, key: str) -> Any:
        """
        Reload a key unconditionally and return the new value.
        """
        loader = self._loader(key)
        with self._lock:
            value = loader()
            self._entries[key] = (value, self._clock())
            self._stats.refreshes += 1
            logger.debug("Refreshed cache key %s", key)
            return value

    def invalidate(self, key: str) -> None:
        self._loader(key)
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def is_stale(self, key: str) -> bool:
        self._loader(key)
        with self._lock:
            entry = self._entries.get(key)
            return entry is None or self._expired(entry[1])

    def age(self, key: str) -> float | None:
        with self._lock:
            entry = self._entries.get(key)
            return None if entry is None else self._clock() - entry[1]

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                refreshes=self._stats.refreshes,
                size=len(self._entries),
            )

    def _expired(self, loaded_at: float) -> bool:
        return self._clock() - loaded_at >= self._ttl
