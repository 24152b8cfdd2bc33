"""
District resolution types.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

POSTAL_CODE_PATTERN = re.compile(r"^[0-9]{6}$")


def is_postal_code(value: object) -> bool:
    """True for exactly six ASCII digits."""
    return isinstance(value, str) and POSTAL_CODE_PATTERN.fullmatch(value) is not None


# ═══════════════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PostalRecord:
    """One row of the persisted postal-code fallback collection."""

    postal_code: str
    state: str
    district: str
    taluka: str | None = None


@dataclass(frozen=True, slots=True)
class PostalDetails:
    """
    Resolved postal code.

    ``deliverable`` is independent of resolution success: a code can resolve
    to a state that is not served.
    """

    postal_code: str
    state: str
    postal_district: str
    admin_district: str
    cities: tuple[str, ...]
    deliverable: bool
    source: str

    @property
    def single_city(self) -> str | None:
        return self.cities[0] if len(self.cities) == 1 else None


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class DistrictErrorKind(Enum):
    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class DistrictError:
    kind: DistrictErrorKind
    postal_code: str
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Fallback source
# ═══════════════════════════════════════════════════════════════════════════════


class PostalCodeSource(Protocol):
    """Persisted postal-code collection, consulted when the dataset misses."""

    async def find_postal_code(self, postal_code: str) -> PostalRecord | None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "POSTAL_CODE_PATTERN",
    "is_postal_code",
    "PostalRecord",
    "PostalDetails",
    "DistrictErrorKind",
    "DistrictError",
    "PostalCodeSource",
)
