"""
Placement graph — VALIDATE → PRICE as nodnod nodes.

    PlacementInputs
         │
    RequestNode
         │
    DeliveryAddressNode ──────────┐
         │                        │
    CartLinesNode                 │
         │                        │
    DeliveryFeeNode               │
         │                        │
    PlacementPlanNode ◄───────────┘

Every failure is a PlacementError raised from the node; it propagates out of
the graph run before the cart or inventory is written.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

from kungfu import Ok, Error

from orderflow import graph as G
from orderflow._types import Coordinates, CoordsSource
from orderflow.districts import DistrictErrorKind, DistrictResolver, PostalDetails
from orderflow.domain import Address, Cart
from orderflow.errors import PlacementError, PlacementReason
from orderflow.fees import FeeBreakdown, FeeEngine
from orderflow.geo import CoordinateResolver
from orderflow.orders._types import (
    AddressSnapshot,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from orderflow.orders._validation import validate_delivery_address

if TYPE_CHECKING:
    from orderflow.store import UnitOfWork


# ═══════════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PlacementServices:
    districts: DistrictResolver
    coordinates: CoordinateResolver
    fees: FeeEngine


@dataclass(frozen=True, slots=True)
class PlacementRequest:
    account_id: str
    payment_method: PaymentMethod
    idempotency_key: "str | None" = None
    upi_vpa: "str | None" = None
    is_express: bool = False
    now: "datetime | None" = None


@dataclass(frozen=True, slots=True)
class PlacementInputs:
    """One attempt: the request bound to an order id and a unit of work."""

    request: PlacementRequest
    order_id: str
    uow: "UnitOfWork"
    services: PlacementServices


@dataclass(frozen=True, slots=True)
class DeliveryTarget:
    address: Address
    details: PostalDetails
    coordinates: Coordinates
    source: CoordsSource

    def snapshot(self) -> AddressSnapshot:
        return AddressSnapshot.of(self.address, self.coordinates, self.source)


@dataclass(frozen=True, slots=True)
class PricedCart:
    cart: Cart
    items: "tuple[OrderItem, ...]"
    items_total: Decimal
    weight_kg: Decimal


@dataclass(frozen=True, slots=True)
class PlacementPlan:
    order: Order
    cart: Cart


# ═══════════════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class RequestNode:
    """Entry point: wraps the placement inputs."""

    def __init__(self, data: PlacementInputs) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, inputs: PlacementInputs) -> "RequestNode":
        return cls(inputs)


@G.node
class DeliveryAddressNode:
    """
    Default address → validated, district-resolved, located target.

    Local format checks run first; geocoding only when saved coordinates
    are unusable.
    """

    def __init__(self, data: DeliveryTarget) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: RequestNode) -> "DeliveryAddressNode":
        inputs = request.data
        uow = inputs.uow
        services = inputs.services

        if await uow.get_account(inputs.request.account_id) is None:
            raise PlacementError(PlacementReason.ACCOUNT_NOT_FOUND, "Account not found")

        address = await uow.get_default_address(inputs.request.account_id)
        if address is None:
            raise PlacementError(
                PlacementReason.NO_DEFAULT_ADDRESS,
                "Please add a delivery address before placing an order",
            )

        validate_delivery_address(address)

        match await services.districts.resolve(address.postal_code.strip()):
            case Ok(details):
                pass
            case Error(e) if e.kind is DistrictErrorKind.INVALID_FORMAT:
                raise PlacementError(PlacementReason.INVALID_POSTAL_CODE, e.message)
            case Error(e):
                raise PlacementError(
                    PlacementReason.DISTRICT_UNRESOLVED,
                    "Unable to resolve district for this pincode. Please update your address.",
                )

        if not details.deliverable:
            raise PlacementError(
                PlacementReason.NOT_SERVICEABLE,
                f"Delivery is not available in {details.state}",
            )

        resolved = address.with_district(details.state, details.postal_district, details.admin_district)
        located = await services.coordinates.resolve_coordinates(resolved)
        if located.coordinates is None:
            raise PlacementError(
                PlacementReason.ADDRESS_UNRESOLVED,
                "Unable to locate this address. Please update it with a valid pincode.",
            )

        return cls(DeliveryTarget(resolved, details, located.coordinates, located.source))


@G.node
class CartLinesNode:
    """
    Cart lines priced from live products.

    Quantity comes from the cart, price from the product record now.
    Cash on delivery also requires live stock to cover every line.
    """

    def __init__(self, data: PricedCart) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls,
        request: RequestNode,
        address: DeliveryAddressNode,
    ) -> "CartLinesNode":
        inputs = request.data
        uow = inputs.uow

        cart = await uow.get_cart(inputs.request.account_id)
        if cart.is_empty:
            raise PlacementError(PlacementReason.EMPTY_CART, "Cart is empty")

        items: list[OrderItem] = []
        weight = Decimal("0")
        for line in cart.items:
            if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
                raise PlacementError(
                    PlacementReason.INVALID_CART_ITEM,
                    f"Invalid quantity for {line.name or line.product_id}",
                    product_id=line.product_id,
                )

            product = await uow.get_product(line.product_id)
            if product is None:
                raise PlacementError(
                    PlacementReason.PRODUCT_NOT_FOUND,
                    f"Product {line.name or line.product_id} is no longer available",
                    product_id=line.product_id,
                )

            if inputs.request.payment_method is PaymentMethod.COD and product.stock < line.quantity:
                raise PlacementError(
                    PlacementReason.INSUFFICIENT_STOCK,
                    f"Insufficient stock for {product.name}",
                    product_id=product.id,
                )

            items.append(OrderItem(
                product_id=product.id,
                name=product.name,
                quantity=line.quantity,
                unit_price=product.price,
                image=product.image,
            ))
            weight += product.weight_kg * line.quantity

        items_total = sum((item.line_total for item in items), Decimal("0"))
        return cls(PricedCart(cart, tuple(items), items_total, weight))


@G.node
class DeliveryFeeNode:
    """Fee for the resolved target; out of range aborts the placement."""

    def __init__(self, data: FeeBreakdown) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls,
        request: RequestNode,
        address: DeliveryAddressNode,
        cart: CartLinesNode,
    ) -> "DeliveryFeeNode":
        inputs = request.data
        fee = await inputs.services.fees.quote(
            address.data.coordinates,
            order_amount=cart.data.items_total,
            order_weight=cart.data.weight_kg,
            is_express=inputs.request.is_express,
            now=inputs.request.now,
        )
        if not fee.is_deliverable:
            raise PlacementError(PlacementReason.OUT_OF_DELIVERY_RANGE, fee.breakdown)
        return cls(fee)


@G.node
class PlacementPlanNode:
    """The order to persist, plus the cart it came from."""

    def __init__(self, data: PlacementPlan) -> None:
        self.data = data

    @classmethod
    def __compose__(
        cls,
        request: RequestNode,
        address: DeliveryAddressNode,
        cart: CartLinesNode,
        fee: DeliveryFeeNode,
    ) -> "PlacementPlanNode":
        inputs = request.data
        priced = cart.data
        delivery_fee = fee.data.total
        discount = Decimal("0")

        order = Order(
            id=inputs.order_id,
            account_id=inputs.request.account_id,
            items=priced.items,
            items_total=priced.items_total,
            delivery_fee=delivery_fee,
            fee_breakdown=fee.data,
            discount=discount,
            grand_total=priced.items_total + delivery_fee - discount,
            address=address.data.snapshot(),
            payment_method=inputs.request.payment_method,
            payment_status=(
                PaymentStatus.PENDING
                if inputs.request.payment_method is PaymentMethod.COD
                else PaymentStatus.AWAITING_UPI_APPROVAL
            ),
            order_status=OrderStatus.CREATED,
            created_at=inputs.request.now or datetime.now(timezone.utc),
            idempotency_key=inputs.request.idempotency_key,
            upi_vpa=inputs.request.upi_vpa if inputs.request.payment_method is PaymentMethod.UPI else None,
        )
        return cls(PlacementPlan(order, priced.cart))


__all__ = (
    "PlacementServices",
    "PlacementRequest",
    "PlacementInputs",
    "DeliveryTarget",
    "PricedCart",
    "PlacementPlan",
    "RequestNode",
    "DeliveryAddressNode",
    "CartLinesNode",
    "DeliveryFeeNode",
    "PlacementPlanNode",
)
