"""
HTTP surface — FastAPI routes over the wired services.

    app = create_app(services)            # explicit wiring (tests, embedding)
    app = create_app()                    # Settings.from_env() at startup

Request bodies are pydantic models validated before any core logic runs.
PlacementError reasons map onto status codes: format problems 400, missing
records 404, stock conflicts 409, not deliverable 422.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Literal

import structlog
from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from kungfu import Result, Ok, Error
from pydantic import BaseModel, Field

from orderflow.addresses import AddressDraft
from orderflow.domain import Address
from orderflow.errors import PlacementError, PlacementReason
from orderflow.fees import format_rupees
from orderflow.settings import Services, Settings, build_services

log = structlog.get_logger(__name__)

STATUS_BY_REASON: dict[PlacementReason, int] = {
    PlacementReason.INVALID_REQUEST: 400,
    PlacementReason.MISSING_ADDRESS_FIELD: 400,
    PlacementReason.INVALID_PHONE: 400,
    PlacementReason.INVALID_POSTAL_CODE: 400,
    PlacementReason.ADDRESS_UNRESOLVED: 400,
    PlacementReason.DISTRICT_UNRESOLVED: 400,
    PlacementReason.EMPTY_CART: 400,
    PlacementReason.INVALID_CART_ITEM: 400,
    PlacementReason.ACCOUNT_NOT_FOUND: 404,
    PlacementReason.ADDRESS_NOT_FOUND: 404,
    PlacementReason.NO_DEFAULT_ADDRESS: 404,
    PlacementReason.PRODUCT_NOT_FOUND: 404,
    PlacementReason.INSUFFICIENT_STOCK: 409,
    PlacementReason.NOT_SERVICEABLE: 422,
    PlacementReason.OUT_OF_DELIVERY_RANGE: 422,
    PlacementReason.PERSISTENCE_FAILED: 503,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Request models
# ═══════════════════════════════════════════════════════════════════════════════


class FeePreviewRequest(BaseModel):
    order_amount: Decimal = Field(ge=0)
    order_weight: Decimal = Field(default=Decimal("0"), ge=0)
    is_express: bool = False
    address_id: str | None = None


class EstimateRequest(BaseModel):
    postal_code: str = Field(min_length=1)
    order_amount: Decimal = Field(default=Decimal("0"), ge=0)
    order_weight: Decimal = Field(default=Decimal("0"), ge=0)


class PlaceOrderRequest(BaseModel):
    payment_method: Literal["cod", "upi"]
    upi_vpa: str | None = None
    is_express: bool = False
    idempotency_key: str | None = Field(default=None, max_length=128)


class AddressRequest(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    line: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    city: str = ""
    state: str = ""
    label: str = "Home"
    is_default: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _services(request: Request) -> Services:
    return request.app.state.services


def _unwrap[T](result: Result[T, PlacementError]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise e


def _address_document(address: Address) -> dict[str, Any]:
    return {
        "id": address.id,
        "label": address.label,
        "name": address.name,
        "phone": address.phone,
        "line": address.line,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "postal_district": address.postal_district,
        "admin_district": address.admin_district,
        "lat": address.lat,
        "lng": address.lng,
        "coords_source": address.coords_source.value,
        "is_default": address.is_default,
    }


async def _placement_error(request: Request, exc: PlacementError) -> JSONResponse:
    status = STATUS_BY_REASON.get(exc.reason, 400)
    log.info("request_rejected", path=request.url.path, status=status, reason=exc.code)
    return JSONResponse(
        status_code=status,
        content={"code": exc.code, "message": exc.message, "product_id": exc.product_id},
    )


# ═══════════════════════════════════════════════════════════════════════════════
# App
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(services: Services | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services is None:
            app.state.services = await build_services(Settings.from_env())
        else:
            app.state.services = services
        yield
        await app.state.services.orders.drain()

    app = FastAPI(title="orderflow", lifespan=lifespan)
    if services is not None:
        app.state.services = services
    app.add_exception_handler(PlacementError, _placement_error)  # type: ignore[arg-type]

    @app.post("/accounts/{account_id}/delivery-fee")
    async def delivery_fee(
        account_id: str,
        body: FeePreviewRequest,
        svc: Services = Depends(_services),
    ) -> dict[str, Any]:
        async with svc.store.unit_of_work(transactional=False) as uow:
            if await uow.get_account(account_id) is None:
                raise PlacementError(PlacementReason.ACCOUNT_NOT_FOUND, "Account not found")
            if body.address_id is not None:
                address = await uow.get_address(account_id, body.address_id)
                if address is None:
                    raise PlacementError(PlacementReason.ADDRESS_NOT_FOUND, "Address not found")
            else:
                address = await uow.get_default_address(account_id)
                if address is None:
                    raise PlacementError(
                        PlacementReason.NO_DEFAULT_ADDRESS,
                        "Add delivery address to calculate delivery fee",
                    )

        fee = _unwrap(await svc.pricing.calculate_fee_for_address(
            address, body.order_amount, body.order_weight, body.is_express,
        ))
        return {
            "fee": fee.to_document(),
            "display_total": format_rupees(fee.total),
            "address": _address_document(address),
        }

    @app.post("/delivery-fee/estimate")
    async def estimate(body: EstimateRequest, svc: Services = Depends(_services)) -> dict[str, Any]:
        fee = _unwrap(await svc.pricing.estimate_fee_for_postal_code(
            body.postal_code, body.order_amount, body.order_weight,
        ))
        return {
            "fee": fee.to_document(),
            "display_total": format_rupees(fee.total),
            "note": "This is an estimated delivery fee. Actual fee may vary based on exact location.",
        }

    @app.get("/delivery-fee/config")
    async def fee_config(svc: Services = Depends(_services)) -> dict[str, Any]:
        config = svc.fees.config
        return {
            "version": config.version,
            "fee_mode": config.fee_mode.value,
            "free_delivery_threshold": str(config.free_delivery_threshold),
            "minimum_fee": str(config.minimum_fee),
            "maximum_fee": str(config.maximum_fee) if config.maximum_fee is not None else None,
            "tiers": [
                {
                    "min_km": tier.min_km,
                    "max_km": tier.max_km,
                    "base_fee": str(tier.base_fee),
                    "per_km_fee": str(tier.per_km_fee),
                    "estimated_time": tier.estimated_time,
                }
                for tier in config.tiers
            ],
            "warehouses": [
                {
                    "id": w.id,
                    "name": w.name,
                    "city": w.city,
                    "opens_at": w.opens_at.isoformat(timespec="minutes"),
                    "closes_at": w.closes_at.isoformat(timespec="minutes"),
                }
                for w in config.active_warehouses()
            ],
        }

    @app.post("/accounts/{account_id}/orders")
    async def place_order(
        account_id: str,
        body: PlaceOrderRequest,
        idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
        svc: Services = Depends(_services),
    ) -> JSONResponse:
        outcome = _unwrap(await svc.orders.create_order_from_cart(
            account_id,
            body.payment_method,
            idempotency_key or body.idempotency_key,
            upi_vpa=body.upi_vpa,
            is_express=body.is_express,
        ))
        return JSONResponse(
            status_code=201 if outcome.created else 200,
            content={"order": outcome.order.to_document(), "created": outcome.created},
        )

    @app.post("/accounts/{account_id}/addresses", status_code=201)
    async def add_address(
        account_id: str,
        body: AddressRequest,
        svc: Services = Depends(_services),
    ) -> dict[str, Any]:
        address = _unwrap(await svc.addresses.add_address(
            account_id,
            AddressDraft(
                name=body.name,
                phone=body.phone,
                line=body.line,
                city=body.city,
                state=body.state,
                postal_code=body.postal_code,
                label=body.label,
            ),
            make_default=body.is_default,
        ))
        return {"address": _address_document(address)}

    return app


__all__ = ("STATUS_BY_REASON", "create_app")
