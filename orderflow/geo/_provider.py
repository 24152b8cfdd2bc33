"""
Geocoding providers.
"""

from __future__ import annotations

from typing import Any, Protocol

import requests
from kungfu import LazyCoroResult

from orderflow._types import Coordinates, ProviderError
from orderflow.lift import from_blocking

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "CSStore-ECommerce/1.0"


class GeocodingProvider(Protocol):
    """
    External geocoder. An empty list is a normal outcome, not a failure.
    """

    def search(
        self, query: str, country_code: str,
    ) -> LazyCoroResult[list[Coordinates], ProviderError]: ...

    def search_by_postal_code(
        self, postal_code: str, country: str,
    ) -> LazyCoroResult[list[Coordinates], ProviderError]: ...


def _points(rows: object) -> list[Coordinates]:
    if not isinstance(rows, list):
        return []
    points: list[Coordinates] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            points.append(Coordinates(float(row["lat"]), float(row["lon"])))
        except (KeyError, TypeError, ValueError):
            continue
    return points


class NominatimGeocoder:
    """OpenStreetMap Nominatim search API."""

    def __init__(
        self,
        base_url: str = DEFAULT_NOMINATIM_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        # Nominatim rejects anonymous clients
        self.session.headers.update({"User-Agent": user_agent})

    def _get(self, params: dict[str, Any]) -> list[Coordinates]:
        resp = self.session.get(self.base_url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return _points(resp.json())

    def _call(self, params: dict[str, Any]) -> LazyCoroResult[list[Coordinates], ProviderError]:
        return from_blocking(
            lambda: self._get(params),
            on_error=lambda e: ProviderError("nominatim", f"{type(e).__name__}: {e}"),
            timeout=self.timeout,
        )

    def search(
        self, query: str, country_code: str,
    ) -> LazyCoroResult[list[Coordinates], ProviderError]:
        return self._call({
            "q": query,
            "format": "json",
            "limit": 1,
            "countrycodes": country_code,
            "addressdetails": 1,
        })

    def search_by_postal_code(
        self, postal_code: str, country: str,
    ) -> LazyCoroResult[list[Coordinates], ProviderError]:
        return self._call({
            "postalcode": postal_code,
            "country": country,
            "format": "json",
            "limit": 1,
        })


__all__ = (
    "DEFAULT_NOMINATIM_URL",
    "DEFAULT_USER_AGENT",
    "GeocodingProvider",
    "NominatimGeocoder",
)
