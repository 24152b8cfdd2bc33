"""
Pricing — fee previews outside of placement.

    pricing = DeliveryPricing(fees, coordinates, districts)

    match await pricing.estimate_fee_for_postal_code("500001", Decimal("1500")):
        case Ok(fee):
            print(fee.total, fee.breakdown)
        case Error(e):
            print(e.code, e.message)

Account checkout previews price a saved address; guest previews price the
postal-code centroid. Neither falls back to a placeholder location.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from kungfu import Result, Ok, Error

from orderflow._types import Coordinates
from orderflow.districts import DistrictErrorKind, DistrictResolver, PostalDetails
from orderflow.domain import Address
from orderflow.errors import PlacementError, PlacementReason
from orderflow.fees import FeeBreakdown, FeeEngine
from orderflow.geo import CoordinateResolver

log = structlog.get_logger(__name__)

type Amount = Decimal | int | float | str


class DeliveryPricing:
    def __init__(
        self,
        fees: FeeEngine,
        coordinates: CoordinateResolver,
        districts: DistrictResolver,
    ) -> None:
        self._fees = fees
        self._coordinates = coordinates
        self._districts = districts

    @property
    def fees(self) -> FeeEngine:
        return self._fees

    async def _serviceable(self, postal_code: str) -> Result[PostalDetails, PlacementError]:
        match await self._districts.resolve(postal_code.strip()):
            case Ok(details) if details.deliverable:
                return Ok(details)
            case Ok(details):
                return Error(PlacementError(
                    PlacementReason.NOT_SERVICEABLE,
                    f"Delivery is not available in {details.state}",
                ))
            case Error(e) if e.kind is DistrictErrorKind.INVALID_FORMAT:
                return Error(PlacementError(PlacementReason.INVALID_POSTAL_CODE, e.message))
            case Error(e):
                return Error(PlacementError(
                    PlacementReason.DISTRICT_UNRESOLVED,
                    "Pincode not found. Delivery may not be available in your area.",
                ))

    async def _price(
        self,
        destination: Coordinates,
        order_amount: Amount,
        order_weight: Amount,
        is_express: bool,
        now: datetime | None,
    ) -> Result[FeeBreakdown, PlacementError]:
        # Out of range is a priced answer here (zero fees, is_deliverable=False);
        # only placement turns it into a rejection
        fee = await self._fees.quote(destination, order_amount, order_weight, is_express, now)
        if not fee.is_deliverable:
            log.info("preview_undeliverable", distance_km=fee.distance_km)
        return Ok(fee)

    async def calculate_fee_for_address(
        self,
        address: Address,
        order_amount: Amount,
        order_weight: Amount = 0,
        is_express: bool = False,
        now: datetime | None = None,
    ) -> Result[FeeBreakdown, PlacementError]:
        """
        Fee for a saved address.

        The postal code must resolve to a serviceable district; coordinates
        come from the address or, failing that, from geocoding.
        """
        match await self._serviceable(address.postal_code):
            case Error(e):
                return Error(e)
            case Ok(details):
                resolved = address.with_district(
                    details.state, details.postal_district, details.admin_district,
                )

        located = await self._coordinates.resolve_coordinates(resolved)
        if located.coordinates is None:
            return Error(PlacementError(
                PlacementReason.ADDRESS_UNRESOLVED,
                "Address coordinates not found. Please update your address with valid location.",
            ))
        return await self._price(located.coordinates, order_amount, order_weight, is_express, now)

    async def estimate_fee_for_postal_code(
        self,
        postal_code: str,
        order_amount: Amount,
        order_weight: Amount = 0,
        now: datetime | None = None,
    ) -> Result[FeeBreakdown, PlacementError]:
        """Guest estimate priced at the postal-code centroid, standard delivery."""
        match await self._serviceable(postal_code):
            case Error(e):
                return Error(e)
            case Ok(details):
                pass

        centroid = await self._coordinates.resolve_by_postal_code(details.postal_code)
        if centroid is None:
            log.info("estimate_unresolved", postal_code=details.postal_code)
            return Error(PlacementError(
                PlacementReason.ADDRESS_UNRESOLVED,
                "Unable to locate this pincode",
            ))
        return await self._price(centroid, order_amount, order_weight, False, now)


__all__ = ("DeliveryPricing",)
