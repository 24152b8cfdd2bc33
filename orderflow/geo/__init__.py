"""
Geo — geocoding providers and the coordinate fallback chain.
"""

from __future__ import annotations

from orderflow.geo._provider import (
    DEFAULT_NOMINATIM_URL,
    DEFAULT_USER_AGENT,
    GeocodingProvider,
    NominatimGeocoder,
)
from orderflow.geo._resolver import GeocodeResult, UNRESOLVED, CoordinateResolver

__all__ = (
    "DEFAULT_NOMINATIM_URL",
    "DEFAULT_USER_AGENT",
    "GeocodingProvider",
    "NominatimGeocoder",
    "GeocodeResult",
    "UNRESOLVED",
    "CoordinateResolver",
)
