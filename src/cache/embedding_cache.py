# src/cache/embedding_cache.py — v1
"""In-memory, TTL-bounded embedding cache keyed by content hash.

Entries are checked lazily on read: an expired entry, or one produced by a
different model than the caller's, counts as a miss and is dropped. Bulk
eviction is opportunistic: once the cache grows past its high-water mark,
the next write sweeps every expired entry in one pass.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence

from learnhub.cache.models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 24 * 60 * 60
DEFAULT_HIGH_WATER_MARK = 10_000


class EmbeddingCache:
    """Content-addressed vector cache with TTL and model checks.

    A lock guards the map so the cache can be shared with worker threads.
    Two concurrent misses on one key may both call the provider; the
    second write simply replaces the first.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_TTL_S,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        if high_water_mark < 1:
            raise ValueError("high_water_mark must be >= 1")
        self._ttl_s = ttl_s
        self._high_water_mark = high_water_mark
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        # No entry can expire before this instant; puts skip the sweep until then.
        self._next_sweep_at = 0.0

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    @property
    def high_water_mark(self) -> int:
        return self._high_water_mark

    def get(self, key: str, model: str) -> list[float] | None:
        """Return the cached vector for ``key`` if still valid under ``model``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_valid(self._clock(), self._ttl_s, model):
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                return None
            self._hits += 1
            return list(entry.vector)

    def put(self, key: str, vector: Sequence[float], model: str) -> None:
        """Store ``vector``; sweeps expired entries past the high-water mark."""
        entry = CacheEntry(
            key=key, vector=tuple(vector), model=model, created_at=self._clock()
        )
        with self._lock:
            self._entries[key] = entry
            over_limit = (
                len(self._entries) > self._high_water_mark
                and entry.created_at >= self._next_sweep_at
            )
        if over_limit:
            self.sweep_expired()

    def sweep_expired(self) -> int:
        """Drop every entry older than the TTL. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, entry in self._entries.items()
                if now - entry.created_at >= self._ttl_s
            ]
            for key in expired:
                del self._entries[key]
            self._evictions += len(expired)
            remaining = len(self._entries)
            self._next_sweep_at = (
                min(e.created_at for e in self._entries.values()) + self._ttl_s
                if self._entries
                else 0.0
            )
        log = logger.info if expired else logger.debug
        log("Swept %d expired embedding(s), %d remain", len(expired), remaining)
        return len(expired)

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._next_sweep_at = 0.0
            self._evictions += removed
        return removed

    def stats(self, model: str | None = None) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                model=model,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
