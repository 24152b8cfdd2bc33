from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from orderflow.api import create_app
from orderflow.domain import Cart
from orderflow.settings import Services
from orderflow.store import MemoryStore

from tests.support import OIL, RecordingPublisher, hyderabad_address


@pytest.fixture
def client(services: Services) -> Iterator[TestClient]:
    with TestClient(create_app(services)) as c:
        yield c


# ═══════════════════════════════════════════════════════════════════════════════
# Delivery fee
# ═══════════════════════════════════════════════════════════════════════════════


def test_fee_preview_for_default_address(client: TestClient) -> None:
    resp = client.post("/accounts/acc-1/delivery-fee", json={"order_amount": "500"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["fee"]["fees"]["total"] == "40"
    assert body["fee"]["delivery"]["is_deliverable"] is True
    assert body["display_total"] == "₹40"
    assert body["address"]["id"] == "addr-1"


def test_fee_preview_errors(client: TestClient, store: MemoryStore) -> None:
    resp = client.post("/accounts/nobody/delivery-fee", json={"order_amount": 500})
    assert (resp.status_code, resp.json()["code"]) == (404, "account_not_found")

    resp = client.post("/accounts/acc-1/delivery-fee", json={"order_amount": 500, "address_id": "nope"})
    assert (resp.status_code, resp.json()["code"]) == (404, "address_not_found")

    store.add_address(hyderabad_address(is_default=False))
    resp = client.post("/accounts/acc-1/delivery-fee", json={"order_amount": 500})
    assert (resp.status_code, resp.json()["code"]) == (404, "no_default_address")


def test_negative_amount_is_rejected_before_pricing(client: TestClient) -> None:
    resp = client.post("/accounts/acc-1/delivery-fee", json={"order_amount": -1})
    assert resp.status_code == 422


def test_estimate(client: TestClient) -> None:
    resp = client.post("/delivery-fee/estimate", json={"postal_code": "521235", "order_amount": 500})

    assert resp.status_code == 200
    body = resp.json()
    assert body["fee"]["warehouse"]["id"] == "WH001"
    assert body["note"].startswith("This is an estimated delivery fee")


@pytest.mark.parametrize(
    ("postal_code", "status", "code"),
    [
        ("110001", 422, "not_serviceable"),
        ("12", 400, "invalid_postal_code"),
        ("999999", 400, "district_unresolved"),
    ],
)
def test_estimate_errors(client: TestClient, postal_code: str, status: int, code: str) -> None:
    resp = client.post("/delivery-fee/estimate", json={"postal_code": postal_code})
    assert (resp.status_code, resp.json()["code"]) == (status, code)


def test_config(client: TestClient) -> None:
    body = client.get("/delivery-fee/config").json()

    assert body["version"] == "tiered-2024.1"
    assert body["fee_mode"] == "tiered"
    assert body["free_delivery_threshold"] == "2000"
    assert len(body["tiers"]) == 6
    assert body["tiers"][-1]["max_km"] is None
    assert {w["id"]: w["opens_at"] for w in body["warehouses"]} == {"WH001": "09:00", "WH002": "08:00"}


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


def test_place_order_is_idempotent_over_http(client: TestClient, store: MemoryStore) -> None:
    first = client.post(
        "/accounts/acc-1/orders", json={"payment_method": "cod"}, headers={"Idempotency-Key": "web-1"},
    )
    second = client.post(
        "/accounts/acc-1/orders", json={"payment_method": "cod", "idempotency_key": "web-1"},
    )

    assert first.status_code == 201 and first.json()["created"] is True
    assert second.status_code == 200 and second.json()["created"] is False
    assert second.json()["order"]["id"] == first.json()["order"]["id"]
    assert first.json()["order"]["grand_total"] == "880"
    assert store.stock_of("p-rice") == 8


def test_order_rejections_map_to_status_codes(client: TestClient, store: MemoryStore) -> None:
    resp = client.post("/accounts/acc-1/orders", json={"payment_method": "card"})
    assert resp.status_code == 422

    resp = client.post("/accounts/acc-1/orders", json={"payment_method": "upi"})
    assert (resp.status_code, resp.json()["code"]) == (400, "invalid_request")

    store.put_cart(Cart("acc-1").with_item(OIL, 5))
    resp = client.post("/accounts/acc-1/orders", json={"payment_method": "cod"})
    assert resp.status_code == 409
    assert resp.json() == {
        "code": "insufficient_stock",
        "message": "Insufficient stock for Groundnut Oil 1L",
        "product_id": "p-oil",
    }

    store.put_cart(Cart("acc-1"))
    resp = client.post("/accounts/acc-1/orders", json={"payment_method": "cod"})
    assert (resp.status_code, resp.json()["code"]) == (400, "empty_cart")


def test_events_are_drained_on_shutdown(services: Services, publisher: RecordingPublisher) -> None:
    with TestClient(create_app(services)) as client:
        resp = client.post("/accounts/acc-1/orders", json={"payment_method": "cod"})
        assert resp.status_code == 201

    assert [e.order_id for e in publisher.events] == [resp.json()["order"]["id"]]


# ═══════════════════════════════════════════════════════════════════════════════
# Addresses
# ═══════════════════════════════════════════════════════════════════════════════


def test_add_address(client: TestClient) -> None:
    resp = client.post("/accounts/acc-1/addresses", json={
        "name": "Sita Devi",
        "phone": "9876501234",
        "line": "Boya Bazar",
        "postal_code": "521235",
        "is_default": True,
    })

    assert resp.status_code == 201
    address = resp.json()["address"]
    assert address["admin_district"] == "NTR"
    assert address["city"] == "Tiruvuru"
    assert address["coords_source"] == "geocoded"
    assert address["is_default"] is True


def test_add_address_with_bad_phone(client: TestClient) -> None:
    resp = client.post("/accounts/acc-1/addresses", json={
        "name": "Sita Devi",
        "phone": "12345",
        "line": "Boya Bazar",
        "postal_code": "521235",
    })
    assert (resp.status_code, resp.json()["code"]) == (400, "invalid_phone")
