"""
Domain — accounts, addresses, products and carts.

Orders live in ``orderflow.orders``; these are the records placement reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal

from orderflow._types import Coordinates, CoordsSource, validate_coordinates, INDIA, CountryBounds


# ═══════════════════════════════════════════════════════════════════════════════
# Account
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Account:
    id: str
    name: str
    email: str | None = None
    phone: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Address
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Address:
    """
    Saved delivery address.

    When ``coords_source`` is UNRESOLVED, ``lat``/``lng`` are unusable
    regardless of their values.
    """

    id: str
    account_id: str
    name: str
    phone: str
    line: str
    city: str
    state: str
    postal_code: str
    postal_district: str = ""
    admin_district: str = ""
    lat: float | None = None
    lng: float | None = None
    coords_source: CoordsSource = CoordsSource.UNRESOLVED
    is_default: bool = False
    label: str = "Home"

    def saved_coordinates(self, bounds: CountryBounds = INDIA) -> Coordinates | None:
        """Stored coordinates if they are usable, else None."""
        if self.coords_source is CoordsSource.UNRESOLVED:
            return None
        point, _ = validate_coordinates(self.lat, self.lng, bounds)
        return point

    def with_coordinates(self, point: Coordinates | None, source: CoordsSource) -> Address:
        if point is None:
            return replace(self, lat=None, lng=None, coords_source=CoordsSource.UNRESOLVED)
        return replace(self, lat=point.lat, lng=point.lng, coords_source=source)

    def with_district(self, state: str, postal_district: str, admin_district: str) -> Address:
        return replace(
            self,
            state=state,
            postal_district=postal_district,
            admin_district=admin_district,
        )

    def as_default(self, is_default: bool = True) -> Address:
        return replace(self, is_default=is_default)


# ═══════════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    price: Decimal
    stock: int
    weight_kg: Decimal = Decimal("0")
    image: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartItem:
    """Cart line with a price/name snapshot taken when it was added."""

    product_id: str
    quantity: int
    price: Decimal
    name: str = ""
    image: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class Cart:
    """
    Cart for one account.

    Mutations return a new cart; ``total`` and ``item_count`` always reflect
    the current lines.
    """

    account_id: str
    items: tuple[CartItem, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def with_item(self, product: Product, quantity: int = 1) -> Cart:
        """Add ``quantity`` of product, merging into an existing line."""
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        items = list(self.items)
        for i, item in enumerate(items):
            if item.product_id == product.id:
                items[i] = replace(item, quantity=item.quantity + quantity)
                return replace(self, items=tuple(items))
        items.append(CartItem(
            product_id=product.id,
            quantity=quantity,
            price=product.price,
            name=product.name,
            image=product.image,
        ))
        return replace(self, items=tuple(items))

    def without_item(self, product_id: str) -> Cart:
        return replace(
            self,
            items=tuple(item for item in self.items if item.product_id != product_id),
        )

    def cleared(self) -> Cart:
        return replace(self, items=())


__all__ = (
    "Account",
    "Address",
    "Product",
    "CartItem",
    "Cart",
)
