"""
Request and address checks run before any external call.
"""

from __future__ import annotations

import re

from orderflow.districts import is_postal_code
from orderflow.domain import Address
from orderflow.errors import PlacementError, PlacementReason
from orderflow.orders._types import PaymentMethod

PHONE_PATTERN = re.compile(r"^[6-9][0-9]{9}$")
UPI_VPA_PATTERN = re.compile(r"^[\w.\-]{2,256}@[A-Za-z][A-Za-z0-9]{1,63}$")

_REQUIRED_FIELDS = (
    ("name", "name"),
    ("phone", "phone number"),
    ("line", "address line"),
    ("city", "city"),
    ("state", "state"),
    ("postal_code", "pincode"),
)


def normalize_phone(phone: str) -> str:
    """Drop spaces, dashes and a leading +91 / 91 country code."""
    digits = re.sub(r"[\s\-]", "", phone)
    if digits.startswith("+91"):
        digits = digits[3:]
    elif len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    return digits


def is_mobile_number(phone: str) -> bool:
    return PHONE_PATTERN.fullmatch(normalize_phone(phone)) is not None


def validate_delivery_address(address: Address) -> None:
    """Raise PlacementError naming the first missing or malformed field."""
    for attr, label in _REQUIRED_FIELDS:
        value = getattr(address, attr)
        if not isinstance(value, str) or not value.strip():
            raise PlacementError(
                PlacementReason.MISSING_ADDRESS_FIELD,
                f"Delivery address is missing {label}",
            )
    if not is_mobile_number(address.phone):
        raise PlacementError(
            PlacementReason.INVALID_PHONE,
            "Phone number must be a valid 10-digit mobile number",
        )
    if not is_postal_code(address.postal_code.strip()):
        raise PlacementError(
            PlacementReason.INVALID_POSTAL_CODE,
            "Pincode must be exactly 6 digits",
        )


def parse_payment(method: PaymentMethod | str, upi_vpa: str | None) -> PaymentMethod:
    if isinstance(method, PaymentMethod):
        parsed = method
    else:
        try:
            parsed = PaymentMethod(str(method).strip().lower())
        except ValueError:
            raise PlacementError(
                PlacementReason.INVALID_REQUEST,
                f"Unsupported payment method {method!r}",
            ) from None

    if parsed is PaymentMethod.UPI:
        if not upi_vpa or UPI_VPA_PATTERN.fullmatch(upi_vpa.strip()) is None:
            raise PlacementError(
                PlacementReason.INVALID_REQUEST,
                "A valid UPI ID is required for UPI payments",
            )
    return parsed


__all__ = (
    "PHONE_PATTERN",
    "UPI_VPA_PATTERN",
    "normalize_phone",
    "is_mobile_number",
    "validate_delivery_address",
    "parse_payment",
)
