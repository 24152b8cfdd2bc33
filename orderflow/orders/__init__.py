"""
Orders — placement from cart with idempotency, stock reservation and events.

    from orderflow import orders as O

    coordinator = O.OrderTransactionCoordinator(store, districts, coordinates, fees)
    result = await coordinator.create_order_from_cart("acc-1", O.PaymentMethod.COD, "key-1")
"""

from __future__ import annotations

from orderflow.orders._types import (
    PaymentMethod,
    PaymentStatus,
    OrderStatus,
    OrderItem,
    AddressSnapshot,
    Order,
    PlacementOutcome,
)
from orderflow.orders._validation import (
    PHONE_PATTERN,
    UPI_VPA_PATTERN,
    normalize_phone,
    is_mobile_number,
    validate_delivery_address,
    parse_payment,
)
from orderflow.orders._events import OrderPlaced, OrderEventPublisher, LoggingPublisher
from orderflow.orders._nodes import (
    PlacementServices,
    PlacementRequest,
    PlacementInputs,
    DeliveryTarget,
    PricedCart,
    PlacementPlan,
    RequestNode,
    DeliveryAddressNode,
    CartLinesNode,
    DeliveryFeeNode,
    PlacementPlanNode,
)
from orderflow.orders._coordinator import OrderTransactionCoordinator, new_order_id

__all__ = (
    "PaymentMethod",
    "PaymentStatus",
    "OrderStatus",
    "OrderItem",
    "AddressSnapshot",
    "Order",
    "PlacementOutcome",
    "PHONE_PATTERN",
    "UPI_VPA_PATTERN",
    "normalize_phone",
    "is_mobile_number",
    "validate_delivery_address",
    "parse_payment",
    "OrderPlaced",
    "OrderEventPublisher",
    "LoggingPublisher",
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
    "OrderTransactionCoordinator",
    "new_order_id",
)
