from __future__ import annotations

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest
from kungfu import Ok, Error

from orderflow._types import CoordsSource
from orderflow.domain import Account, Cart, Product
from orderflow.errors import PlacementError, PlacementReason
from orderflow.fees import TIRUVURU_WAREHOUSE
from orderflow.orders import (
    OrderStatus,
    OrderTransactionCoordinator,
    PaymentMethod,
    PaymentStatus,
    PlacementOutcome,
)
from orderflow.settings import Services, wire
from orderflow.store import MemoryStore, MemoryUnitOfWork

from tests.support import (
    OIL,
    POSTAL_CODES,
    QUIET_HOUR,
    RICE,
    FakeGeocoder,
    RecordingPublisher,
    hyderabad_address,
    quiet_config,
    seed,
)


def placed(result: object) -> PlacementOutcome:
    match result:
        case Ok(outcome):
            return outcome
        case Error(e):
            raise AssertionError(f"placement failed: {e!r}")
    raise AssertionError(f"not a result: {result!r}")


def rejected(result: object) -> PlacementError:
    match result:
        case Error(e):
            return e
        case Ok(outcome):
            raise AssertionError(f"unexpected order {outcome.order.id}")
    raise AssertionError(f"not a result: {result!r}")


def add_customer(store: MemoryStore, account_id: str, cart: Cart | None = None) -> None:
    store.add_account(Account(account_id, "Second Customer"))
    store.add_address(hyderabad_address(id=f"addr-{account_id}", account_id=account_id))
    store.put_cart(cart or Cart(account_id).with_item(OIL, 1))


# ═══════════════════════════════════════════════════════════════════════════════
# Happy path
# ═══════════════════════════════════════════════════════════════════════════════


async def test_cod_order_reserves_stock_and_clears_cart(services: Services, store: MemoryStore) -> None:
    outcome = placed(await services.orders.create_order_from_cart("acc-1", "cod", now=QUIET_HOUR))
    order = outcome.order

    assert outcome.created
    assert order.items_total == Decimal("840")
    assert order.delivery_fee == order.fee_breakdown.total == Decimal("40")
    assert order.grand_total == Decimal("880")
    assert order.discount == 0
    assert order.payment_method is PaymentMethod.COD
    assert order.payment_status is PaymentStatus.PENDING
    assert order.order_status is OrderStatus.CREATED
    assert order.address.coords_source is CoordsSource.SAVED
    assert order.address.admin_district == "Hyderabad"
    assert order.created_at == QUIET_HOUR

    assert store.stock_of("p-rice") == 8
    assert store.carts["acc-1"].is_empty
    assert store.orders[order.id] == order


async def test_items_are_priced_from_the_live_product(services: Services, store: MemoryStore) -> None:
    store.add_product(replace(RICE, price=Decimal("450")))

    order = placed(await services.orders.create_order_from_cart("acc-1", "cod", now=QUIET_HOUR)).order

    assert order.items[0].unit_price == Decimal("450")
    assert order.items_total == Decimal("900")


async def test_upi_order_leaves_stock_and_cart_alone(services: Services, store: MemoryStore) -> None:
    order = placed(await services.orders.create_order_from_cart(
        "acc-1", "upi", upi_vpa="ravi@okaxis", now=QUIET_HOUR,
    )).order

    assert order.payment_status is PaymentStatus.AWAITING_UPI_APPROVAL
    assert order.upi_vpa == "ravi@okaxis"
    assert store.stock_of("p-rice") == 10
    assert not store.carts["acc-1"].is_empty


async def test_express_order_carries_express_surcharge(services: Services) -> None:
    order = placed(await services.orders.create_order_from_cart(
        "acc-1", "cod", is_express=True, now=QUIET_HOUR,
    )).order

    assert [s.id for s in order.fee_breakdown.surcharges] == ["EXPRESS_DELIVERY"]
    assert order.fee_breakdown.estimated_days == 1


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotency
# ═══════════════════════════════════════════════════════════════════════════════


async def test_retry_with_same_key_returns_the_same_order(services: Services, store: MemoryStore) -> None:
    first = placed(await services.orders.create_order_from_cart("acc-1", "cod", "key-1"))
    second = placed(await services.orders.create_order_from_cart("acc-1", "cod", " key-1 "))

    assert first.created and not second.created
    assert second.order.id == first.order.id
    assert len(store.orders) == 1
    assert store.stock_of("p-rice") == 8


async def test_concurrent_attempts_with_one_key_create_one_order() -> None:
    store = seed(MemoryStore(postal_codes=POSTAL_CODES), cart=[(OIL, 1)])
    services = wire(store, quiet_config(), geocoder=FakeGeocoder(), deterministic=True)

    results = await asyncio.gather(
        services.orders.create_order_from_cart("acc-1", "cod", "abc"),
        services.orders.create_order_from_cart("acc-1", "cod", "abc"),
    )
    outcomes = [placed(r) for r in results]

    assert {o.order.id for o in outcomes} == {outcomes[0].order.id}
    assert sorted(o.created for o in outcomes) == [False, True]
    assert len(store.orders) == 1
    assert store.stock_of("p-oil") == 0


async def test_two_coordinators_converge_on_one_order(services: Services, store: MemoryStore) -> None:
    other = OrderTransactionCoordinator(
        store, services.districts, services.coordinates, services.fees,
    )

    results = await asyncio.gather(
        services.orders.create_order_from_cart("acc-1", "cod", "shared"),
        other.create_order_from_cart("acc-1", "cod", "shared"),
    )
    outcomes = [placed(r) for r in results]

    assert outcomes[0].order.id == outcomes[1].order.id
    assert len(store.orders) == 1
    assert store.stock_of("p-rice") == 8


async def test_rejected_key_can_be_retried_after_fixing_the_cart(
    services: Services, store: MemoryStore,
) -> None:
    store.put_cart(Cart("acc-1"))
    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod", "key-2"))
    assert error.reason is PlacementReason.EMPTY_CART

    store.put_cart(Cart("acc-1").with_item(RICE, 1))
    outcome = placed(await services.orders.create_order_from_cart("acc-1", "cod", "key-2"))
    assert outcome.created


# ═══════════════════════════════════════════════════════════════════════════════
# Stock
# ═══════════════════════════════════════════════════════════════════════════════


async def test_insufficient_stock_names_the_product(services: Services, store: MemoryStore) -> None:
    store.put_cart(Cart("acc-1").with_item(OIL, 2))

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is PlacementReason.INSUFFICIENT_STOCK
    assert error.product_id == "p-oil"
    assert error.message == "Insufficient stock for Groundnut Oil 1L"
    assert store.stock_of("p-oil") == 1
    assert not store.orders


@pytest.mark.parametrize("transactions", [True, False])
async def test_competing_accounts_never_oversell(transactions: bool) -> None:
    store = seed(MemoryStore(postal_codes=POSTAL_CODES, supports_transactions=transactions), cart=[(OIL, 1)])
    add_customer(store, "acc-2")
    services = wire(store, quiet_config(), geocoder=FakeGeocoder(), deterministic=True)

    results = await asyncio.gather(
        services.orders.create_order_from_cart("acc-1", "cod"),
        services.orders.create_order_from_cart("acc-2", "cod"),
    )

    oks = [r for r in results if isinstance(r, Ok)]
    errors = [rejected(r) for r in results if isinstance(r, Error)]
    assert len(oks) == 1
    assert [e.reason for e in errors] == [PlacementReason.INSUFFICIENT_STOCK]
    assert store.stock_of("p-oil") == 0


async def test_later_line_shortfall_releases_earlier_reservations(monkeypatch: pytest.MonkeyPatch) -> None:
    store = seed(
        MemoryStore(postal_codes=POSTAL_CODES, supports_transactions=False),
        cart=[(RICE, 2), (OIL, 1)],
    )
    services = wire(store, quiet_config(), geocoder=FakeGeocoder(), deterministic=True)
    # Stock drops between the availability check and the reservation
    original = MemoryUnitOfWork.get_product

    async def stale_product(self: MemoryUnitOfWork, product_id: str) -> Product | None:
        product = await original(self, product_id)
        if product is not None and product.id == "p-oil":
            store.add_product(replace(product, stock=0))
        return product

    monkeypatch.setattr(MemoryUnitOfWork, "get_product", stale_product)

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is PlacementReason.INSUFFICIENT_STOCK
    assert error.product_id == "p-oil"
    assert store.stock_of("p-rice") == 10
    assert not store.orders


# ═══════════════════════════════════════════════════════════════════════════════
# Transactions and rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def test_store_without_transactions_falls_back_to_compensation() -> None:
    store = seed(MemoryStore(postal_codes=POSTAL_CODES, supports_transactions=False))
    services = wire(store, quiet_config(), geocoder=FakeGeocoder(), deterministic=True)

    first = placed(await services.orders.create_order_from_cart("acc-1", "cod", "k1"))
    store.put_cart(Cart("acc-1").with_item(RICE, 1))
    second = placed(await services.orders.create_order_from_cart("acc-1", "cod", "k2"))

    assert first.created and second.created
    assert store.stock_of("p-rice") == 7


@pytest.mark.parametrize("transactions", [True, False])
async def test_failed_insert_undoes_reservations(
    transactions: bool, monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = seed(MemoryStore(postal_codes=POSTAL_CODES, supports_transactions=transactions))
    services = wire(store, quiet_config(), geocoder=FakeGeocoder(), deterministic=True)

    async def broken_insert(self: MemoryUnitOfWork, order: object) -> None:
        raise RuntimeError("disk full")

    monkeypatch.setattr(MemoryUnitOfWork, "insert_order", broken_insert)

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is PlacementReason.PERSISTENCE_FAILED
    assert store.stock_of("p-rice") == 10
    assert not store.carts["acc-1"].is_empty
    assert not store.orders


# ═══════════════════════════════════════════════════════════════════════════════
# Rejections
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("method", "vpa"),
    [("card", None), ("upi", None), ("upi", "not-a-vpa")],
)
async def test_bad_payment_details(services: Services, method: str, vpa: str | None) -> None:
    error = rejected(await services.orders.create_order_from_cart("acc-1", method, upi_vpa=vpa))
    assert error.reason is PlacementReason.INVALID_REQUEST


async def test_unknown_account(services: Services) -> None:
    error = rejected(await services.orders.create_order_from_cart("nobody", "cod"))
    assert error.reason is PlacementReason.ACCOUNT_NOT_FOUND


async def test_no_default_address(services: Services, store: MemoryStore) -> None:
    store.add_address(hyderabad_address(is_default=False))

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is PlacementReason.NO_DEFAULT_ADDRESS


async def test_empty_cart(services: Services, store: MemoryStore) -> None:
    store.put_cart(Cart("acc-1"))
    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))
    assert (error.reason, error.message) == (PlacementReason.EMPTY_CART, "Cart is empty")


async def test_removed_product(services: Services, store: MemoryStore) -> None:
    del store.products["p-rice"]
    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))
    assert error.reason is PlacementReason.PRODUCT_NOT_FOUND
    assert error.product_id == "p-rice"


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"phone": "12345"}, PlacementReason.INVALID_PHONE),
        ({"phone": "９８７６５４３２１０"}, PlacementReason.INVALID_PHONE),
        ({"line": "  "}, PlacementReason.MISSING_ADDRESS_FIELD),
        ({"postal_code": "5000"}, PlacementReason.INVALID_POSTAL_CODE),
        ({"postal_code": "５００００１"}, PlacementReason.INVALID_POSTAL_CODE),
        ({"postal_code": "999999"}, PlacementReason.DISTRICT_UNRESOLVED),
        ({"postal_code": "110001", "state": "Delhi"}, PlacementReason.NOT_SERVICEABLE),
    ],
)
async def test_address_problems_abort_before_any_write(
    services: Services,
    store: MemoryStore,
    overrides: dict[str, object],
    reason: PlacementReason,
) -> None:
    store.add_address(hyderabad_address(**overrides))

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is reason
    assert store.stock_of("p-rice") == 10
    assert not store.carts["acc-1"].is_empty


async def test_unlocatable_address(store: MemoryStore) -> None:
    store.add_address(hyderabad_address(lat=None, lng=None, coords_source=CoordsSource.UNRESOLVED))
    services = wire(store, quiet_config(), geocoder=FakeGeocoder(fail=True), deterministic=True)

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is PlacementReason.ADDRESS_UNRESOLVED


async def test_out_of_delivery_range(store: MemoryStore) -> None:
    config = quiet_config().with_warehouses([replace(TIRUVURU_WAREHOUSE, max_delivery_radius_km=10)])
    services = wire(store, config, geocoder=FakeGeocoder(), deterministic=True)

    error = rejected(await services.orders.create_order_from_cart("acc-1", "cod"))

    assert error.reason is PlacementReason.OUT_OF_DELIVERY_RANGE
    assert "exceeds maximum delivery radius" in error.message
    assert store.stock_of("p-rice") == 10


# ═══════════════════════════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════════════════════════


async def test_order_placed_event_is_published_after_commit(
    services: Services, publisher: RecordingPublisher,
) -> None:
    order = placed(await services.orders.create_order_from_cart("acc-1", "cod")).order
    await services.orders.drain()

    assert [e.event_id for e in publisher.events] == [f"order:{order.id}:created"]
    event = publisher.events[0]
    assert (event.item_count, event.grand_total, event.primary_product) == (2, order.grand_total, "Rice 5kg")


async def test_replay_does_not_publish_again(services: Services, publisher: RecordingPublisher) -> None:
    await services.orders.create_order_from_cart("acc-1", "cod", "once")
    await services.orders.create_order_from_cart("acc-1", "cod", "once")
    await services.orders.drain()

    assert len(publisher.events) == 1


async def test_publisher_failure_does_not_fail_placement(store: MemoryStore) -> None:
    services = wire(
        store, quiet_config(), geocoder=FakeGeocoder(), deterministic=True,
        publisher=RecordingPublisher(fail=True),
    )

    outcome = placed(await services.orders.create_order_from_cart("acc-1", "cod"))
    await services.orders.drain()

    assert outcome.created
    assert len(store.orders) == 1
