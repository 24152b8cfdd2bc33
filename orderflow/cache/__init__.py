"""
Cache — advisory, TTL-bounded caching.

    from orderflow import cache as C

    distances = C.cache(key_fn, fetch_fn).tier(C.TTLTier(ttl=timedelta(hours=1))).build()
    result = await distances.get(query)
"""

from __future__ import annotations

from orderflow.cache._types import (
    Clock,
    Tier,
    TTLTier,
    CacheResult,
    CacheStats,
)
from orderflow.cache._builder import cache, Cache, CacheExecutor

__all__ = (
    "Clock",
    "Tier",
    "TTLTier",
    "CacheResult",
    "CacheStats",
    "cache",
    "Cache",
    "CacheExecutor",
)
