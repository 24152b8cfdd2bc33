"""
CoordinateResolver — address → best-effort coordinates.

Save time uses ``smart_geocode`` (full address, then postal centroid).
Use time uses ``resolve_coordinates`` (saved, full address, postal centroid,
else unresolved).
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from orderflow._types import (
    Coordinates,
    CoordsSource,
    CountryBounds,
    INDIA,
    ProviderError,
    validate_coordinates,
)
from orderflow.domain import Address
from orderflow.errors import AddressUnresolved
from orderflow.geo._provider import GeocodingProvider

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    """Coordinates tagged with where they came from. ``coordinates`` is None only when UNRESOLVED."""

    coordinates: Coordinates | None
    source: CoordsSource

    @property
    def resolved(self) -> bool:
        return self.coordinates is not None


UNRESOLVED = GeocodeResult(None, CoordsSource.UNRESOLVED)


class CoordinateResolver:
    def __init__(
        self,
        provider: GeocodingProvider | None,
        bounds: CountryBounds = INDIA,
    ) -> None:
        self._provider = provider
        self._bounds = bounds

    async def _first_in_bounds(
        self,
        call: LazyCoroResult[list[Coordinates], ProviderError],
        step: str,
    ) -> Coordinates | None:
        match await call:
            case Ok(points):
                if not points:
                    log.info("geocode_no_result", step=step)
                    return None
                first = points[0]
                point, reason = validate_coordinates(first.lat, first.lng, self._bounds)
                if point is None:
                    log.warning("geocode_rejected", step=step, reason=reason, lat=first.lat, lng=first.lng)
                return point
            case Error(e):
                log.warning("geocode_provider_failed", step=step, provider=e.provider, error=e.message)
                return None

    async def resolve(
        self,
        line: str,
        city: str,
        state: str,
        postal_code: str,
    ) -> Coordinates | None:
        """Full-address geocode restricted to the country of operation."""
        if self._provider is None:
            return None
        query = f"{line}, {city}, {state}, {postal_code}, {self._bounds.country_name}"
        return await self._first_in_bounds(
            self._provider.search(query, self._bounds.country_code), "address",
        )

    async def resolve_by_postal_code(self, postal_code: str) -> Coordinates | None:
        """Postal-code centroid."""
        if self._provider is None:
            return None
        return await self._first_in_bounds(
            self._provider.search_by_postal_code(postal_code, self._bounds.country_name),
            "postal_code",
        )

    async def _geocode(self, line: str, city: str, state: str, postal_code: str) -> GeocodeResult:
        point = await self.resolve(line, city, state, postal_code)
        if point is not None:
            return GeocodeResult(point, CoordsSource.GEOCODED)
        point = await self.resolve_by_postal_code(postal_code)
        if point is not None:
            return GeocodeResult(point, CoordsSource.PINCODE)
        return UNRESOLVED

    async def smart_geocode(
        self,
        line: str,
        city: str,
        state: str,
        postal_code: str,
    ) -> Result[GeocodeResult, AddressUnresolved]:
        """
        Save-time geocoding.

        Never yields placeholder coordinates; exhaustion is AddressUnresolved.
        """
        result = await self._geocode(line, city, state, postal_code)
        if not result.resolved:
            return Error(AddressUnresolved())
        return Ok(result)

    async def resolve_coordinates(self, address: Address) -> GeocodeResult:
        """
        Use-time coordinates for a saved address.

        Saved coordinates win when usable; otherwise geocoding is re-run.
        The result is UNRESOLVED, never 0,0, when everything fails.
        """
        saved = address.saved_coordinates(self._bounds)
        if saved is not None:
            return GeocodeResult(saved, CoordsSource.SAVED)

        result = await self._geocode(address.line, address.city, address.state, address.postal_code)
        if not result.resolved:
            log.warning("coordinates_unresolved", address_id=address.id)
        return result


__all__ = ("GeocodeResult", "UNRESOLVED", "CoordinateResolver")
