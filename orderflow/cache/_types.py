"""
Cache types.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], float]
"""Monotonic seconds."""


class Tier[T](Protocol):
    """
    Cache tier protocol.

    Implement this for shared backends (Redis, Memcached, etc.)
    """

    @property
    def name(self) -> str:
        """Tier name for debugging."""
        ...

    async def get(self, key: str) -> T | None:
        """Get value. Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: T) -> None:
        """Set value."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...

    async def clear(self) -> int:
        """Drop everything. Returns count."""
        ...

    def ttl_remaining(self, key: str) -> timedelta | None:
        """Remaining lifetime of a live entry, None if unknown."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# TTL Tier — In-Memory, expiring
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class _Entry[T]:
    value: T
    expires_at: float | None


class TTLTier[T]:
    """
    In-memory LRU tier whose entries expire after ``ttl``.

    Expiry is checked on read; there is no background timer.

    Example:
        tier = TTLTier[float](ttl=timedelta(hours=1), max_size=10_000)
    """

    def __init__(
        self,
        ttl: timedelta | None = None,
        max_size: int = 10_000,
        clock: Clock = time.monotonic,
    ) -> None:
        self._ttl = ttl.total_seconds() if ttl is not None else None
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, _Entry[T]] = OrderedDict()

    @property
    def name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._entries)

    def _live(self, key: str) -> _Entry[T] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry

    async def get(self, key: str) -> T | None:
        entry = self._live(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry.value

    async def set(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)

        expires_at = self._clock() + self._ttl if self._ttl is not None else None
        self._entries[key] = _Entry(value, expires_at)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def ttl_remaining(self, key: str) -> timedelta | None:
        entry = self._live(key)
        if entry is None or entry.expires_at is None:
            return None
        return timedelta(seconds=max(0.0, entry.expires_at - self._clock()))


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache lookup result with metadata."""
    value: T
    hit: bool
    tier: str | None
    ttl_remaining: timedelta | None


@dataclass(slots=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    tier_errors: int = 0


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Clock",
    "Tier",
    "TTLTier",
    "CacheResult",
    "CacheStats",
)
