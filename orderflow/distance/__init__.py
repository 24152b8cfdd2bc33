"""
Distance — provider-first distance with Haversine fallback and TTL cache.
"""

from __future__ import annotations

from orderflow.distance._haversine import EARTH_RADIUS_KM, haversine_km
from orderflow.distance._provider import (
    GOOGLE_DISTANCE_MATRIX_URL,
    DistanceProvider,
    GoogleDistanceMatrix,
)
from orderflow.distance._engine import (
    Origin,
    DistanceMethod,
    DistanceResult,
    DistanceEngine,
)

__all__ = (
    "EARTH_RADIUS_KM",
    "haversine_km",
    "GOOGLE_DISTANCE_MATRIX_URL",
    "DistanceProvider",
    "GoogleDistanceMatrix",
    "Origin",
    "DistanceMethod",
    "DistanceResult",
    "DistanceEngine",
)
