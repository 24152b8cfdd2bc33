"""
Core types for orderflow.

Re-exports from kungfu + geographic primitives shared by every engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Money = Decimal
"""Currency amount in rupees."""

# ═══════════════════════════════════════════════════════════════════════════════
# Coordinates
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float

    def __str__(self) -> str:
        return f"{self.lat},{self.lng}"


class CoordsSource(Enum):
    """
    Provenance of an address's coordinates.

    SAVED: previously persisted and still valid.
    GEOCODED: full-address geocode.
    PINCODE: postal-code centroid.
    UNRESOLVED: unusable; never fed into fee computation.
    """

    SAVED = "saved"
    GEOCODED = "geocoded"
    PINCODE = "pincode"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True)
class CountryBounds:
    """Latitude/longitude bounding box of the country of operation."""

    country_code: str
    country_name: str
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, point: Coordinates) -> bool:
        return (
            self.min_lat <= point.lat <= self.max_lat
            and self.min_lng <= point.lng <= self.max_lng
        )


INDIA = CountryBounds(
    country_code="in",
    country_name="India",
    min_lat=6.0,
    max_lat=37.0,
    min_lng=68.0,
    max_lng=98.0,
)


def validate_coordinates(
    lat: object,
    lng: object,
    bounds: CountryBounds = INDIA,
) -> tuple[Coordinates | None, str | None]:
    """
    Check a raw lat/lng pair.

    Returns (coordinates, None) when usable, else (None, reason).
    """
    if lat is None or lng is None:
        return None, "missing"
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None, "not numeric"
    try:
        flat = float(lat)  # type: ignore[arg-type]
        flng = float(lng)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None, "not numeric"
    if math.isnan(flat) or math.isnan(flng):
        return None, "not numeric"
    if flat == 0 or flng == 0:
        return None, "zero"
    point = Coordinates(flat, flng)
    if not bounds.contains(point):
        return None, "out of bounds"
    return point, None


# ═══════════════════════════════════════════════════════════════════════════════
# Provider failure
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProviderError:
    """An external provider call failed (transport, status, timeout, payload)."""

    provider: str
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Aliases
    "Lazy",
    "Money",
    # Geography
    "Coordinates",
    "CoordsSource",
    "CountryBounds",
    "INDIA",
    "validate_coordinates",
    "ProviderError",
)
