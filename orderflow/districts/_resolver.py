"""
DistrictResolver — postal code → state / district / serviceability.
"""

from __future__ import annotations

from collections.abc import Set

import structlog
from kungfu import Result, Ok, Error

from orderflow.districts._types import (
    is_postal_code,
    PostalDetails,
    DistrictError,
    DistrictErrorKind,
    PostalCodeSource,
)
from orderflow.districts._dataset import PincodeDataset
from orderflow.districts._overrides import (
    DistrictOverrides,
    DEFAULT_OVERRIDES,
    DEFAULT_SERVICEABLE_STATES,
    apply_override,
)

log = structlog.get_logger(__name__)


class DistrictResolver:
    """
    Resolve a six-digit postal code.

    The bulk dataset is consulted first; the persisted source only when the
    dataset has no entry for that code.

    Example:
        resolver = DistrictResolver(PincodeDataset(path), fallback=store)

        match await resolver.resolve("521235"):
            case Ok(details) if details.deliverable:
                ...
            case Ok(details):
                ...  # resolves, but the state is not served
            case Error(e):
                ...  # e.kind is INVALID_FORMAT or NOT_FOUND
    """

    def __init__(
        self,
        dataset: PincodeDataset,
        fallback: PostalCodeSource | None = None,
        overrides: DistrictOverrides = DEFAULT_OVERRIDES,
        serviceable_states: Set[str] = DEFAULT_SERVICEABLE_STATES,
    ) -> None:
        self._dataset = dataset
        self._fallback = fallback
        self._overrides = overrides
        self._serviceable = frozenset(serviceable_states)

    def is_serviceable(self, state: str) -> bool:
        return state in self._serviceable

    def _details(
        self,
        postal_code: str,
        state: str,
        postal_district: str,
        cities: tuple[str, ...],
        source: str,
    ) -> PostalDetails:
        return PostalDetails(
            postal_code=postal_code,
            state=state,
            postal_district=postal_district,
            admin_district=apply_override(state, postal_district, self._overrides),
            cities=cities,
            deliverable=self.is_serviceable(state),
            source=source,
        )

    async def resolve(self, postal_code: str) -> Result[PostalDetails, DistrictError]:
        code = postal_code.strip() if isinstance(postal_code, str) else postal_code
        if not is_postal_code(code):
            return Error(DistrictError(
                kind=DistrictErrorKind.INVALID_FORMAT,
                postal_code=str(postal_code),
                message="Pincode must be exactly 6 digits",
            ))

        entry = await self._dataset.lookup(code)
        if entry is not None:
            return Ok(self._details(
                code, entry.state, entry.postal_district, tuple(entry.cities), "dataset",
            ))

        if self._fallback is not None:
            record = await self._fallback.find_postal_code(code)
            if record is not None and record.state.strip():
                cities = (record.taluka,) if record.taluka else ()
                return Ok(self._details(
                    code, record.state.strip(), record.district.strip(), cities, "store",
                ))

        log.info("postal_code_not_found", postal_code=code)
        return Error(DistrictError(
            kind=DistrictErrorKind.NOT_FOUND,
            postal_code=code,
            message=f"Pincode {code} not found",
        ))


__all__ = ("DistrictResolver",)
