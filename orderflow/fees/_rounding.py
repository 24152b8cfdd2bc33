"""
Deterministic money rounding (half-up, never banker's).
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

ONE = Decimal("1")
CENT = Decimal("0.01")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce to Decimal; floats go through ``str`` to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_half_up(value: Decimal, places: Decimal = ONE) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def round_to_increment(value: Decimal, increment: Decimal) -> Decimal:
    """
    Round to the nearest multiple of ``increment``, ties away from zero.

    Idempotent: a value already on the grid is returned unchanged.
    """
    if increment <= 0:
        raise ValueError("increment must be positive")
    steps = (value / increment).quantize(ONE, rounding=ROUND_HALF_UP)
    return steps * increment


def format_rupees(value: Decimal) -> str:
    """``40`` for whole amounts, ``40.50`` otherwise."""
    if value == value.to_integral_value():
        return f"₹{value.quantize(ONE)}"
    return f"₹{value.quantize(CENT, rounding=ROUND_HALF_UP)}"


__all__ = ("ONE", "CENT", "to_money", "round_half_up", "round_to_increment", "format_rupees")
