"""
orderflow — order placement and delivery-fee computation.

    from orderflow import districts as D  # Postal code → state, districts
    from orderflow import geo as Geo      # Address → coordinates
    from orderflow import distance as Dst # Warehouse → destination km
    from orderflow import fees as F       # Distance → priced delivery
    from orderflow import orders as O     # Cart → exactly one order
"""

from orderflow import saga
from orderflow import cache
from orderflow import graph
from orderflow import lift
from orderflow import districts
from orderflow import geo
from orderflow import distance
from orderflow import fees
from orderflow import orders
from orderflow import store
from orderflow._types import (
    Lazy,
    Money,
    Coordinates,
    CoordsSource,
    CountryBounds,
    INDIA,
    ProviderError,
)
from orderflow.errors import (
    OrderflowError,
    PlacementError,
    PlacementReason,
)

__version__ = "0.1.0"

__all__ = (
    "saga",
    "cache",
    "graph",
    "lift",
    "districts",
    "geo",
    "distance",
    "fees",
    "orders",
    "store",
    "Lazy",
    "Money",
    "Coordinates",
    "CoordsSource",
    "CountryBounds",
    "INDIA",
    "ProviderError",
    "OrderflowError",
    "PlacementError",
    "PlacementReason",
)
