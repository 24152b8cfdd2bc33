"""Fakes and seed data shared by the test modules."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from kungfu import LazyCoroResult, Ok, Error

from orderflow._types import Coordinates, CoordsSource, ProviderError
from orderflow.districts import PostalRecord
from orderflow.domain import Account, Address, Cart, Product
from orderflow.fees import DeliveryConfig, default_config
from orderflow.lift import from_result
from orderflow.orders import OrderPlaced
from orderflow.store import MemoryStore

IST = ZoneInfo("Asia/Kolkata")

HYDERABAD = Coordinates(17.4065, 78.4772)
TIRUVURU = Coordinates(17.0956, 80.6089)
DELHI = Coordinates(28.6139, 77.209)

# Wednesday, mid-morning: no peak-hour or weekend surcharge
QUIET_HOUR = datetime(2024, 6, 12, 11, 0, tzinfo=IST)

POSTAL_CODES = (
    PostalRecord("500001", "Telangana", "Hyderabad", "Hyderabad"),
    PostalRecord("521235", "Andhra Pradesh", "Krishna", "Tiruvuru"),
    PostalRecord("110001", "Delhi", "New Delhi"),
)


# ═══════════════════════════════════════════════════════════════════════════════
# Providers
# ═══════════════════════════════════════════════════════════════════════════════


class FakeGeocoder:
    """Answers address queries by line prefix and postal codes by exact match."""

    def __init__(
        self,
        addresses: dict[str, Coordinates] | None = None,
        postal_codes: dict[str, Coordinates] | None = None,
        *,
        fail: bool = False,
    ) -> None:
        self.addresses = dict(addresses or {})
        self.postal_codes = dict(postal_codes or {})
        self.fail = fail
        self.queries: list[str] = []
        self.postal_queries: list[str] = []

    def _answer(self, point: Coordinates | None) -> LazyCoroResult[list[Coordinates], ProviderError]:
        if self.fail:
            return from_result(Error(ProviderError("fake", "unavailable")))
        return from_result(Ok([point] if point is not None else []))

    def search(self, query: str, country_code: str) -> LazyCoroResult[list[Coordinates], ProviderError]:
        self.queries.append(query)
        point = next((p for line, p in self.addresses.items() if query.startswith(line)), None)
        return self._answer(point)

    def search_by_postal_code(
        self, postal_code: str, country: str,
    ) -> LazyCoroResult[list[Coordinates], ProviderError]:
        self.postal_queries.append(postal_code)
        return self._answer(self.postal_codes.get(postal_code))


class FakeDistanceMatrix:
    def __init__(self, meters: float | None = None) -> None:
        self.meters = meters
        self.calls = 0

    def distance_matrix(
        self, origin: Coordinates, destination: Coordinates,
    ) -> LazyCoroResult[float, ProviderError]:
        self.calls += 1
        if self.meters is None:
            return from_result(Error(ProviderError("fake_matrix", "OVER_QUERY_LIMIT")))
        return from_result(Ok(self.meters))


class RecordingPublisher:
    def __init__(self, *, fail: bool = False) -> None:
        self.events: list[OrderPlaced] = []
        self.fail = fail

    async def publish(self, event: OrderPlaced) -> None:
        if self.fail:
            raise RuntimeError("notifier down")
        self.events.append(event)


# ═══════════════════════════════════════════════════════════════════════════════
# Seed data
# ═══════════════════════════════════════════════════════════════════════════════


def hyderabad_address(**overrides: object) -> Address:
    fields: dict[str, object] = dict(
        id="addr-1",
        account_id="acc-1",
        name="Ravi Kumar",
        phone="9876543210",
        line="12 MG Road",
        city="Hyderabad",
        state="Telangana",
        postal_code="500001",
        lat=HYDERABAD.lat,
        lng=HYDERABAD.lng,
        coords_source=CoordsSource.GEOCODED,
        is_default=True,
    )
    fields.update(overrides)
    return Address(**fields)  # type: ignore[arg-type]


RICE = Product("p-rice", "Rice 5kg", Decimal("420"), stock=10, weight_kg=Decimal("1"))
OIL = Product("p-oil", "Groundnut Oil 1L", Decimal("180"), stock=1, weight_kg=Decimal("1"))


def seed(store: MemoryStore, *, cart: Iterable[tuple[Product, int]] = ((RICE, 2),)) -> MemoryStore:
    store.add_account(Account("acc-1", "Ravi Kumar", phone="9876543210"))
    store.add_address(hyderabad_address())
    store.add_product(RICE)
    store.add_product(OIL)
    basket = Cart("acc-1")
    for product, qty in cart:
        basket = basket.with_item(product, qty)
    store.put_cart(basket)
    return store


def quiet_config() -> DeliveryConfig:
    return default_config().with_surcharge_enabled("PEAK_HOUR", False)

