"""
Order types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from orderflow._types import Coordinates, CoordsSource
from orderflow.domain import Address
from orderflow.fees import FeeBreakdown

# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethod(Enum):
    COD = "cod"
    UPI = "upi"


class PaymentStatus(Enum):
    PENDING = "pending"
    AWAITING_UPI_APPROVAL = "awaiting_upi_approval"


class OrderStatus(Enum):
    """Only CREATED is set here; later states belong to payment and fulfilment."""

    CREATED = "created"
    CONFIRMED = "confirmed"
    PENDING_PAYMENT = "pending_payment"


# ═══════════════════════════════════════════════════════════════════════════════
# Lines and snapshots
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderItem:
    """Line priced from the live product at placement time."""

    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    image: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class AddressSnapshot:
    """Frozen copy of the delivery address; later address edits do not reach it."""

    name: str
    phone: str
    line: str
    city: str
    state: str
    postal_code: str
    postal_district: str
    admin_district: str
    lat: float
    lng: float
    coords_source: CoordsSource

    @classmethod
    def of(cls, address: Address, point: Coordinates, source: CoordsSource) -> AddressSnapshot:
        return cls(
            name=address.name,
            phone=address.phone,
            line=address.line,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            postal_district=address.postal_district,
            admin_district=address.admin_district,
            lat=point.lat,
            lng=point.lng,
            coords_source=source,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    account_id: str
    items: tuple[OrderItem, ...]
    items_total: Decimal
    delivery_fee: Decimal
    fee_breakdown: FeeBreakdown
    discount: Decimal
    grand_total: Decimal
    address: AddressSnapshot
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    created_at: datetime
    idempotency_key: str | None = None
    upi_vpa: str | None = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_document(self) -> dict[str, Any]:
        a = self.address
        return {
            "id": self.id,
            "account_id": self.account_id,
            "items": [
                {
                    "product_id": i.product_id,
                    "name": i.name,
                    "quantity": i.quantity,
                    "unit_price": str(i.unit_price),
                    "image": i.image,
                }
                for i in self.items
            ],
            "items_total": str(self.items_total),
            "delivery_fee": str(self.delivery_fee),
            "fee_breakdown": self.fee_breakdown.to_document(),
            "discount": str(self.discount),
            "grand_total": str(self.grand_total),
            "address": {
                "name": a.name,
                "phone": a.phone,
                "line": a.line,
                "city": a.city,
                "state": a.state,
                "postal_code": a.postal_code,
                "postal_district": a.postal_district,
                "admin_district": a.admin_district,
                "lat": a.lat,
                "lng": a.lng,
                "coords_source": a.coords_source.value,
            },
            "payment_method": self.payment_method.value,
            "payment_status": self.payment_status.value,
            "order_status": self.order_status.value,
            "created_at": self.created_at.isoformat(),
            "idempotency_key": self.idempotency_key,
            "upi_vpa": self.upi_vpa,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Order:
        a = doc["address"]
        return cls(
            id=doc["id"],
            account_id=doc["account_id"],
            items=tuple(
                OrderItem(
                    product_id=i["product_id"],
                    name=i["name"],
                    quantity=int(i["quantity"]),
                    unit_price=Decimal(i["unit_price"]),
                    image=i.get("image"),
                )
                for i in doc["items"]
            ),
            items_total=Decimal(doc["items_total"]),
            delivery_fee=Decimal(doc["delivery_fee"]),
            fee_breakdown=FeeBreakdown.from_document(doc["fee_breakdown"]),
            discount=Decimal(doc["discount"]),
            grand_total=Decimal(doc["grand_total"]),
            address=AddressSnapshot(
                name=a["name"],
                phone=a["phone"],
                line=a["line"],
                city=a["city"],
                state=a["state"],
                postal_code=a["postal_code"],
                postal_district=a["postal_district"],
                admin_district=a["admin_district"],
                lat=float(a["lat"]),
                lng=float(a["lng"]),
                coords_source=CoordsSource(a["coords_source"]),
            ),
            payment_method=PaymentMethod(doc["payment_method"]),
            payment_status=PaymentStatus(doc["payment_status"]),
            order_status=OrderStatus(doc["order_status"]),
            created_at=datetime.fromisoformat(doc["created_at"]),
            idempotency_key=doc.get("idempotency_key"),
            upi_vpa=doc.get("upi_vpa"),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Placement outcome
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PlacementOutcome:
    """``created`` is False when an earlier attempt with the same key won."""

    order: Order
    created: bool


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "PaymentMethod",
    "PaymentStatus",
    "OrderStatus",
    "OrderItem",
    "AddressSnapshot",
    "Order",
    "PlacementOutcome",
)
