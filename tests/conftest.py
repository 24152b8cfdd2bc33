from __future__ import annotations

import pytest

from orderflow.settings import Services, wire
from orderflow.store import MemoryStore

from tests.support import (
    DELHI,
    HYDERABAD,
    POSTAL_CODES,
    TIRUVURU,
    FakeGeocoder,
    RecordingPublisher,
    quiet_config,
    seed,
)


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder(
        addresses={"12 MG Road": HYDERABAD, "Boya Bazar": TIRUVURU},
        postal_codes={"500001": HYDERABAD, "521235": TIRUVURU, "110001": DELHI},
    )


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def store() -> MemoryStore:
    return seed(MemoryStore(postal_codes=POSTAL_CODES))


@pytest.fixture
def services(store: MemoryStore, geocoder: FakeGeocoder, publisher: RecordingPublisher) -> Services:
    return wire(
        store,
        quiet_config(),
        geocoder=geocoder,
        deterministic=True,
        publisher=publisher,
    )
