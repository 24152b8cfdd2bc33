"""
Cache builder.

    distances = C.cache(key_of, measure).tier(C.TTLTier(ttl=timedelta(hours=1))).build()
    match await distances.get(query):
        case Ok(found):
            found.value, found.hit
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from orderflow.cache._types import Tier, CacheResult, CacheStats

log = structlog.get_logger(__name__)

type KeyFn[K] = Callable[[K], str]
type Fetch[K, T, E] = Callable[[K], LazyCoroResult[T, E]]


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    """Immutable description of a cache: key function, fetch, tiers in lookup order."""

    _key_fn: KeyFn[K]
    _fetch: Fetch[K, T, E]
    _tiers: tuple[Tier[T], ...]

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        return Cache(self._key_fn, self._fetch, (*self._tiers, t))

    def build(self) -> CacheExecutor[K, T, E]:
        return CacheExecutor(key_fn=self._key_fn, tiers=self._tiers, fetch=self._fetch)


@dataclass(slots=True, frozen=True)
class CacheExecutor[K, T, E]:
    """
    Read-through lookup over the configured tiers.

    The cache is advisory: a tier that raises counts as a miss and is
    logged, fetch errors are returned without being stored, and two
    concurrent misses for one key may both fetch.
    """

    key_fn: KeyFn[K]
    tiers: tuple[Tier[T], ...]
    fetch: Fetch[K, T, E]
    stats: CacheStats = field(default_factory=CacheStats)

    async def _lookup(self, cache_key: str) -> CacheResult[T] | None:
        for t in self.tiers:
            try:
                value = await t.get(cache_key)
            except Exception as e:
                self.stats.tier_errors += 1
                log.warning("cache_tier_get_failed", tier=t.name, key=cache_key, error=str(e))
                continue
            if value is not None:
                return CacheResult(value, hit=True, tier=t.name, ttl_remaining=t.ttl_remaining(cache_key))
        return None

    async def _populate(self, cache_key: str, value: T) -> None:
        for t in self.tiers:
            try:
                await t.set(cache_key, value)
            except Exception as e:
                self.stats.tier_errors += 1
                log.warning("cache_tier_set_failed", tier=t.name, key=cache_key, error=str(e))

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], E]:
        """First tier holding the key wins; otherwise fetch and write every tier."""
        cache_key = self.key_fn(key)

        async def execute() -> Result[CacheResult[T], E]:
            found = await self._lookup(cache_key)
            if found is not None:
                self.stats.hits += 1
                return Ok(found)

            self.stats.misses += 1
            match await self.fetch(key):
                case Ok(value):
                    await self._populate(cache_key, value)
                    return Ok(CacheResult(value, hit=False, tier=None, ttl_remaining=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def invalidate(self, key: K) -> bool:
        cache_key = self.key_fn(key)
        results = [await t.delete(cache_key) for t in self.tiers]
        return any(results)

    async def clear(self) -> int:
        """Drop every entry; returns how many were held."""
        return sum([await t.clear() for t in self.tiers])


def cache[K, T, E](key: KeyFn[K], fetch: Fetch[K, T, E]) -> Cache[K, T, E]:
    return Cache(key, fetch, ())


__all__ = ("Cache", "CacheExecutor", "cache")
