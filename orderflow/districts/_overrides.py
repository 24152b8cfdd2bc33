"""
District overrides — postal district → administrative district.

Postal circles still use some pre-reorganisation district names; the
override table maps those onto the current administrative district.
"""

from __future__ import annotations

from collections.abc import Mapping

type DistrictOverrides = Mapping[str, Mapping[str, str]]
"""state → postal_district → admin_district."""

DEFAULT_OVERRIDES: DistrictOverrides = {
    "Andhra Pradesh": {
        "Krishna": "NTR",
        "Chittoor": "Annamayya",
    },
    "Telangana": {
        "Medak": "Sangareddy",
    },
}

DEFAULT_SERVICEABLE_STATES: frozenset[str] = frozenset({"Andhra Pradesh", "Telangana"})


def apply_override(
    state: str,
    postal_district: str,
    overrides: DistrictOverrides = DEFAULT_OVERRIDES,
) -> str:
    """Administrative district for ``postal_district``; unchanged when no override exists."""
    return overrides.get(state, {}).get(postal_district) or postal_district


__all__ = (
    "DistrictOverrides",
    "DEFAULT_OVERRIDES",
    "DEFAULT_SERVICEABLE_STATES",
    "apply_override",
)
