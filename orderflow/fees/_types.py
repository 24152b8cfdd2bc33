"""
Fee results.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

ZERO = Decimal("0")

# ═══════════════════════════════════════════════════════════════════════════════
# Lines
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SurchargeLine:
    id: str
    name: str
    kind: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class WarehouseRef:
    id: str
    name: str
    city: str


@dataclass(frozen=True, slots=True)
class TierQuote:
    """What a fee strategy charges for a distance, before surcharges."""

    base_fee: Decimal
    distance_fee: Decimal
    estimated_time: str


# ═══════════════════════════════════════════════════════════════════════════════
# FeeBreakdown
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FeeBreakdown:
    """
    Priced delivery.

    ``breakdown`` is the line-itemised audit text; orders persist the whole
    object via ``to_document`` and never recompute it.
    """

    warehouse: WarehouseRef | None
    distance_km: float
    distance_method: str
    distance_cached: bool
    base_fee: Decimal
    distance_fee: Decimal
    surcharges: tuple[SurchargeLine, ...]
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    is_free_delivery: bool
    is_deliverable: bool
    estimated_time: str
    estimated_days: int
    strategy: str
    config_version: str
    breakdown: str

    @property
    def surcharge_total(self) -> Decimal:
        return sum((s.amount for s in self.surcharges), ZERO)

    def to_document(self) -> dict[str, Any]:
        return {
            "warehouse": (
                {"id": self.warehouse.id, "name": self.warehouse.name, "city": self.warehouse.city}
                if self.warehouse is not None
                else None
            ),
            "distance": {
                "km": self.distance_km,
                "method": self.distance_method,
                "cached": self.distance_cached,
            },
            "fees": {
                "base_fee": str(self.base_fee),
                "distance_fee": str(self.distance_fee),
                "surcharges": [
                    {"id": s.id, "name": s.name, "kind": s.kind, "amount": str(s.amount)}
                    for s in self.surcharges
                ],
                "subtotal": str(self.subtotal),
                "discount": str(self.discount),
                "total": str(self.total),
            },
            "delivery": {
                "is_free_delivery": self.is_free_delivery,
                "is_deliverable": self.is_deliverable,
                "estimated_time": self.estimated_time,
                "estimated_days": self.estimated_days,
            },
            "strategy": self.strategy,
            "config_version": self.config_version,
            "breakdown": self.breakdown,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> FeeBreakdown:
        wh = doc.get("warehouse")
        fees = doc["fees"]
        delivery = doc["delivery"]
        return cls(
            warehouse=WarehouseRef(wh["id"], wh["name"], wh["city"]) if wh else None,
            distance_km=float(doc["distance"]["km"]),
            distance_method=doc["distance"]["method"],
            distance_cached=bool(doc["distance"]["cached"]),
            base_fee=Decimal(fees["base_fee"]),
            distance_fee=Decimal(fees["distance_fee"]),
            surcharges=tuple(
                SurchargeLine(s["id"], s["name"], s["kind"], Decimal(s["amount"]))
                for s in fees["surcharges"]
            ),
            subtotal=Decimal(fees["subtotal"]),
            discount=Decimal(fees["discount"]),
            total=Decimal(fees["total"]),
            is_free_delivery=bool(delivery["is_free_delivery"]),
            is_deliverable=bool(delivery["is_deliverable"]),
            estimated_time=delivery["estimated_time"],
            estimated_days=int(delivery["estimated_days"]),
            strategy=doc["strategy"],
            config_version=doc["config_version"],
            breakdown=doc["breakdown"],
        )


__all__ = (
    "ZERO",
    "SurchargeLine",
    "WarehouseRef",
    "TierQuote",
    "FeeBreakdown",
)
