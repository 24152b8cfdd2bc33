"""
Districts — postal-code resolution with administrative overrides.

    from orderflow import districts as D

    resolver = D.DistrictResolver(D.PincodeDataset(path), fallback=store)
    result = await resolver.resolve("500001")
"""

from __future__ import annotations

from orderflow.districts._types import (
    POSTAL_CODE_PATTERN,
    is_postal_code,
    PostalRecord,
    PostalDetails,
    DistrictErrorKind,
    DistrictError,
    PostalCodeSource,
)
from orderflow.districts._overrides import (
    DistrictOverrides,
    DEFAULT_OVERRIDES,
    DEFAULT_SERVICEABLE_STATES,
    apply_override,
)
from orderflow.districts._dataset import DatasetEntry, build_index, PincodeDataset
from orderflow.districts._resolver import DistrictResolver

__all__ = (
    "POSTAL_CODE_PATTERN",
    "is_postal_code",
    "PostalRecord",
    "PostalDetails",
    "DistrictErrorKind",
    "DistrictError",
    "PostalCodeSource",
    "DistrictOverrides",
    "DEFAULT_OVERRIDES",
    "DEFAULT_SERVICEABLE_STATES",
    "apply_override",
    "DatasetEntry",
    "build_index",
    "PincodeDataset",
    "DistrictResolver",
)
