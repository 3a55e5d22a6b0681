# src/cache/models.py — v1
"""Embedding cache models: CacheEntry, CacheStats."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """Cached vector for one (normalized text, model) pair.

    ``created_at`` is in the cache clock's units (seconds).
    """

    model_config = ConfigDict(frozen=True)

    key: str
    vector: tuple[float, ...]
    model: str
    created_at: float

    def is_valid(self, now: float, ttl_s: float, model: str) -> bool:
        """Valid while younger than the TTL and produced by ``model``."""
        return (now - self.created_at) < ttl_s and self.model == model


class CacheStats(BaseModel):
    """Snapshot of cache counters."""

    size: int
    hits: int
    misses: int
    evictions: int
    model: str | None = None

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0
