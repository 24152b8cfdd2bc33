"""
DistanceEngine — warehouse → destination distance with an advisory cache.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Protocol

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from orderflow import cache as C
from orderflow._types import Coordinates, ProviderError
from orderflow.distance._haversine import haversine_km
from orderflow.distance._provider import DistanceProvider

log = structlog.get_logger(__name__)


class Origin(Protocol):
    """Anything with a stable id and a location (warehouses)."""

    @property
    def id(self) -> str: ...

    @property
    def location(self) -> Coordinates: ...


class DistanceMethod(Enum):
    EXTERNAL_PROVIDER = "external_provider"
    HAVERSINE = "haversine"


@dataclass(frozen=True, slots=True)
class DistanceResult:
    km: float
    method: DistanceMethod
    cached: bool


@dataclass(frozen=True, slots=True)
class _Query:
    origin: Origin
    destination: Coordinates


@dataclass(frozen=True, slots=True)
class _Measured:
    km: float
    method: DistanceMethod


def _cache_key(q: _Query) -> str:
    return f"{q.origin.id}_{q.destination.lat}_{q.destination.lng}"


class DistanceEngine:
    """
    Distance between a warehouse and a destination.

    The external provider is tried first unless ``deterministic`` is set or
    no provider is configured; any provider failure silently falls back to
    Haversine and only shows up as ``method``. Cache hits skip both.

    Example:
        engine = DistanceEngine(GoogleDistanceMatrix(key), ttl=timedelta(minutes=60))
        result = await engine.distance(warehouse, Coordinates(17.4, 78.4))
        result.km, result.method, result.cached
    """

    def __init__(
        self,
        provider: DistanceProvider | None = None,
        *,
        ttl: timedelta = timedelta(minutes=60),
        deterministic: bool = False,
        max_entries: int = 10_000,
        clock: C.Clock = time.monotonic,
        haversine_places: int = 1,
    ) -> None:
        self._provider = provider
        self._deterministic = deterministic
        self._places = haversine_places
        self._tier: C.TTLTier[_Measured] = C.TTLTier(ttl=ttl, max_size=max_entries, clock=clock)
        self._cache = C.cache(_cache_key, self._measure).tier(self._tier).build()

    @property
    def deterministic(self) -> bool:
        return self._deterministic

    def _haversine(self, q: _Query) -> _Measured:
        km = haversine_km(q.origin.location, q.destination, places=self._places)
        return _Measured(km, DistanceMethod.HAVERSINE)

    def _measure(self, q: _Query) -> LazyCoroResult[_Measured, ProviderError]:
        provider = None if self._deterministic else self._provider

        async def impl() -> Result[_Measured, ProviderError]:
            if provider is not None:
                match await provider.distance_matrix(q.origin.location, q.destination):
                    case Ok(meters):
                        return Ok(_Measured(round(meters / 1000, 1), DistanceMethod.EXTERNAL_PROVIDER))
                    case Error(e):
                        log.warning(
                            "distance_provider_failed",
                            provider=e.provider,
                            error=e.message,
                            warehouse=q.origin.id,
                        )
            measured = self._haversine(q)
            log.debug("distance_haversine", warehouse=q.origin.id, km=measured.km)
            return Ok(measured)

        return LazyCoroResult(impl)

    async def distance(self, origin: Origin, destination: Coordinates) -> DistanceResult:
        query = _Query(origin, destination)
        match await self._cache.get(query):
            case Ok(hit):
                return DistanceResult(hit.value.km, hit.value.method, hit.hit)
            case Error(e):
                # _measure never fails; kept total for the type checker
                log.error("distance_measure_failed", provider=e.provider, error=e.message)
                measured = self._haversine(query)
                return DistanceResult(measured.km, measured.method, False)

    async def clear_cache(self) -> int:
        return await self._cache.clear()

    def cache_stats(self) -> dict[str, int]:
        stats = self._cache.stats
        return {
            "hits": stats.hits,
            "misses": stats.misses,
            "size": len(self._tier),
        }


__all__ = ("Origin", "DistanceMethod", "DistanceResult", "DistanceEngine")
