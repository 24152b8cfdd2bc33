"""
Great-circle distance.
"""

from __future__ import annotations

import math

from orderflow._types import Coordinates

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinates, b: Coordinates, *, places: int | None = None) -> float:
    """
    Great-circle distance between two points, in kilometres.

    ``places`` rounds the result; None keeps full precision.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    km = EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(km, places) if places is not None else km


__all__ = ("EARTH_RADIUS_KM", "haversine_km")
