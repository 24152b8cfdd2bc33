"""
Errors — every failure a caller can tell apart.
"""

from __future__ import annotations

from enum import Enum


class OrderflowError(Exception):
    """Base for all orderflow errors."""


class ConfigurationError(OrderflowError, ValueError):
    """Configuration tables are inconsistent."""


class AddressUnresolved(OrderflowError):
    """Geocoding and postal-code lookup were both exhausted."""

    def __init__(self, message: str = "Unable to locate this address or pincode") -> None:
        super().__init__(message)
        self.message = message


class TransactionsUnsupported(OrderflowError):
    """Backing store cannot run multi-document transactions."""


class DuplicateOrder(OrderflowError):
    """An order already exists for (account_id, idempotency_key)."""

    def __init__(self, account_id: str, idempotency_key: str) -> None:
        super().__init__(f"order exists for {account_id}/{idempotency_key}")
        self.account_id = account_id
        self.idempotency_key = idempotency_key


class InsufficientStock(OrderflowError):
    """Conditional stock decrement was rejected."""

    def __init__(self, product_id: str, requested: int, available: int | None = None) -> None:
        detail = f", have {available}" if available is not None else ""
        super().__init__(f"{product_id}: need {requested}{detail}")
        self.product_id = product_id
        self.requested = requested
        self.available = available


class PlacementReason(Enum):
    """Reason codes surfaced to callers of order placement."""

    INVALID_REQUEST = "invalid_request"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ADDRESS_NOT_FOUND = "address_not_found"
    NO_DEFAULT_ADDRESS = "no_default_address"
    MISSING_ADDRESS_FIELD = "missing_address_field"
    INVALID_PHONE = "invalid_phone"
    INVALID_POSTAL_CODE = "invalid_postal_code"
    ADDRESS_UNRESOLVED = "address_unresolved"
    NOT_SERVICEABLE = "not_serviceable"
    DISTRICT_UNRESOLVED = "district_unresolved"
    OUT_OF_DELIVERY_RANGE = "out_of_delivery_range"
    EMPTY_CART = "empty_cart"
    INVALID_CART_ITEM = "invalid_cart_item"
    PRODUCT_NOT_FOUND = "product_not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    PERSISTENCE_FAILED = "persistence_failed"


class PlacementError(OrderflowError):
    """Placement aborted with a caller-displayable reason."""

    def __init__(
        self,
        reason: PlacementReason,
        message: str,
        product_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.product_id = product_id

    @property
    def code(self) -> str:
        return self.reason.value

    def __repr__(self) -> str:
        return f"PlacementError({self.reason.name}, {self.message!r})"


__all__ = (
    "OrderflowError",
    "ConfigurationError",
    "AddressUnresolved",
    "TransactionsUnsupported",
    "DuplicateOrder",
    "InsufficientStock",
    "PlacementReason",
    "PlacementError",
)
