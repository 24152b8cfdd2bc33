"""
Address book — saving delivery addresses with canonical districts and coordinates.

    book = AddressBook(store, districts, coordinates)

    match await book.add_address("acc-1", AddressDraft(
        name="Ravi", phone="9876543210", line="12 MG Road",
        city="Hyderabad", state="Telangana", postal_code="500001",
    )):
        case Ok(address):
            print(address.coords_source)
        case Error(e):
            print(e.code, e.message)

State, postal district and administrative district always come from the
postal-code lookup, never from the caller. Coordinates come from
``smart_geocode``; when it is exhausted nothing is written.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import structlog
from kungfu import Result, Ok, Error

from orderflow.districts import DistrictErrorKind, DistrictResolver, is_postal_code
from orderflow.domain import Address
from orderflow.errors import PlacementError, PlacementReason
from orderflow.geo import CoordinateResolver
from orderflow.orders import validate_delivery_address

if TYPE_CHECKING:
    from orderflow.store import Store, UnitOfWork

log = structlog.get_logger(__name__)


def new_address_id() -> str:
    return f"ADDR-{uuid.uuid4().hex[:12].upper()}"


@dataclass(frozen=True, slots=True)
class AddressDraft:
    name: str
    phone: str
    line: str
    city: str
    state: str
    postal_code: str
    label: str = "Home"


@dataclass(frozen=True, slots=True)
class AddressUpdate:
    """Fields left as None keep their saved value."""

    name: str | None = None
    phone: str | None = None
    line: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    label: str | None = None
    is_default: bool | None = None

    def apply(self, address: Address) -> Address:
        changes = {
            field: value
            for field, value in (
                ("name", self.name),
                ("phone", self.phone),
                ("line", self.line),
                ("city", self.city),
                ("state", self.state),
                ("postal_code", self.postal_code),
                ("label", self.label),
            )
            if value is not None
        }
        return replace(address, **changes)


_LOCATION_FIELDS = ("line", "city", "state", "postal_code")


def _location_changed(before: Address, after: Address) -> bool:
    return any(getattr(before, f) != getattr(after, f) for f in _LOCATION_FIELDS)


def _not_found(what: str) -> PlacementError:
    reason = PlacementReason.ACCOUNT_NOT_FOUND if what == "Account" else PlacementReason.ADDRESS_NOT_FOUND
    return PlacementError(reason, f"{what} not found")


class AddressBook:
    """
    Exactly one default address per account: the first address saved
    becomes the default, and making any address default clears the others.
    """

    def __init__(
        self,
        store: Store,
        districts: DistrictResolver,
        coordinates: CoordinateResolver,
        *,
        id_factory: Callable[[], str] = new_address_id,
    ) -> None:
        self._store = store
        self._districts = districts
        self._coordinates = coordinates
        self._id_factory = id_factory

    # ─── Canonicalisation ────────────────────────────────────────────────────

    async def _canonical(self, address: Address) -> Result[Address, PlacementError]:
        """Resolved district fields, then field checks, then coordinates."""
        postal_code = address.postal_code.strip()
        if not is_postal_code(postal_code):
            return Error(PlacementError(
                PlacementReason.INVALID_POSTAL_CODE,
                "Enter a valid pincode to continue",
            ))

        match await self._districts.resolve(postal_code):
            case Ok(details):
                pass
            case Error(e) if e.kind is DistrictErrorKind.INVALID_FORMAT:
                return Error(PlacementError(PlacementReason.INVALID_POSTAL_CODE, e.message))
            case Error(_):
                return Error(PlacementError(
                    PlacementReason.DISTRICT_UNRESOLVED,
                    "Enter a valid pincode to continue",
                ))

        address = replace(
            address.with_district(details.state, details.postal_district, details.admin_district),
            postal_code=postal_code,
            city=details.single_city or address.city.strip(),
        )

        try:
            validate_delivery_address(address)
        except PlacementError as e:
            return Error(e)

        match await self._coordinates.smart_geocode(
            address.line, address.city, address.state, address.postal_code,
        ):
            case Ok(located):
                return Ok(address.with_coordinates(located.coordinates, located.source))
            case Error(e):
                log.info("address_unresolved", account_id=address.account_id, postal_code=postal_code)
                return Error(PlacementError(PlacementReason.ADDRESS_UNRESOLVED, e.message))

    async def _require_account(self, uow: UnitOfWork, account_id: str) -> PlacementError | None:
        if await uow.get_account(account_id) is None:
            return _not_found("Account")
        return None

    # ─── Operations ──────────────────────────────────────────────────────────

    async def addresses(self, account_id: str) -> list[Address]:
        async with self._store.unit_of_work(transactional=False) as uow:
            return await uow.list_addresses(account_id)

    async def add_address(
        self,
        account_id: str,
        draft: AddressDraft,
        *,
        make_default: bool = False,
    ) -> Result[Address, PlacementError]:
        async with self._store.unit_of_work(transactional=False) as uow:
            if (missing := await self._require_account(uow, account_id)) is not None:
                return Error(missing)
            existing = await uow.list_addresses(account_id)

        candidate = Address(
            id=self._id_factory(),
            account_id=account_id,
            name=draft.name.strip(),
            phone=draft.phone.strip(),
            line=draft.line.strip(),
            city=draft.city,
            state=draft.state,
            postal_code=draft.postal_code,
            label=draft.label,
        )
        match await self._canonical(candidate):
            case Error(e):
                return Error(e)
            case Ok(address):
                pass

        address = address.as_default(make_default or not existing)
        async with self._store.unit_of_work(transactional=self._store.supports_transactions) as uow:
            await uow.save_address(address)
            if address.is_default:
                await uow.set_default_address(account_id, address.id)

        log.info(
            "address_saved",
            account_id=account_id,
            address_id=address.id,
            coords_source=address.coords_source.value,
            is_default=address.is_default,
        )
        return Ok(address)

    async def update_address(
        self,
        account_id: str,
        address_id: str,
        update: AddressUpdate,
    ) -> Result[Address, PlacementError]:
        """Re-geocodes only when line, city, state or postal code changed."""
        async with self._store.unit_of_work(transactional=False) as uow:
            current = await uow.get_address(account_id, address_id)
        if current is None:
            return Error(_not_found("Address"))

        updated = update.apply(current)
        regeocode = _location_changed(current, updated)
        if regeocode:
            match await self._canonical(updated):
                case Error(e):
                    return Error(e)
                case Ok(address):
                    updated = address
        else:
            try:
                validate_delivery_address(updated)
            except PlacementError as e:
                return Error(e)

        # The current default cannot be unset, only replaced
        if update.is_default:
            updated = updated.as_default()

        async with self._store.unit_of_work(transactional=self._store.supports_transactions) as uow:
            await uow.save_address(updated)
            if updated.is_default and not current.is_default:
                await uow.set_default_address(account_id, updated.id)

        log.info(
            "address_updated",
            account_id=account_id,
            address_id=address_id,
            regeocoded=regeocode,
        )
        return Ok(updated)

    async def set_default(self, account_id: str, address_id: str) -> Result[Address, PlacementError]:
        async with self._store.unit_of_work(transactional=self._store.supports_transactions) as uow:
            address = await uow.get_address(account_id, address_id)
            if address is None:
                return Error(_not_found("Address"))
            await uow.set_default_address(account_id, address_id)
        return Ok(address.as_default())


__all__ = (
    "AddressDraft",
    "AddressUpdate",
    "AddressBook",
    "new_address_id",
)
