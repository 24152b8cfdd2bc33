from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
import requests
from kungfu import Ok, Error

from orderflow._types import Coordinates
from orderflow.distance import (
    DistanceEngine,
    DistanceMethod,
    GoogleDistanceMatrix,
    haversine_km,
)
from orderflow.fees import DEFAULT_WAREHOUSES

from tests.support import DELHI, HYDERABAD, FakeDistanceMatrix

HYDERABAD_DC = DEFAULT_WAREHOUSES[1]


class FakeResponse:
    def __init__(self, payload: Any, status: int = 200) -> None:
        self.payload = payload
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status}")

    def json(self) -> Any:
        return self.payload


class FakeSession:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.params: dict[str, Any] | None = None

    def get(self, url: str, *, params: dict[str, Any], timeout: float) -> FakeResponse:
        self.params = params
        return self.response


def test_haversine_is_symmetric_and_zero_on_identity() -> None:
    assert haversine_km(HYDERABAD, HYDERABAD) == 0
    assert haversine_km(HYDERABAD, DELHI) == pytest.approx(haversine_km(DELHI, HYDERABAD))


def test_haversine_hyderabad_to_delhi() -> None:
    assert haversine_km(HYDERABAD, DELHI, places=0) == pytest.approx(1253, abs=5)


async def test_deterministic_engine_never_calls_provider() -> None:
    provider = FakeDistanceMatrix(meters=12_345)
    engine = DistanceEngine(provider, deterministic=True)

    result = await engine.distance(HYDERABAD_DC, DELHI)

    assert result.method is DistanceMethod.HAVERSINE
    assert result.km == haversine_km(HYDERABAD_DC.location, DELHI, places=1)
    assert provider.calls == 0


async def test_provider_metres_become_km_to_one_place() -> None:
    engine = DistanceEngine(FakeDistanceMatrix(meters=12_345))

    result = await engine.distance(HYDERABAD_DC, DELHI)

    assert (result.km, result.method, result.cached) == (12.3, DistanceMethod.EXTERNAL_PROVIDER, False)


async def test_provider_failure_falls_back_to_haversine() -> None:
    engine = DistanceEngine(FakeDistanceMatrix(meters=None))

    result = await engine.distance(HYDERABAD_DC, DELHI)

    assert result.method is DistanceMethod.HAVERSINE
    assert result.km > 1000


async def test_second_lookup_is_served_from_cache() -> None:
    provider = FakeDistanceMatrix(meters=5_000)
    engine = DistanceEngine(provider)

    first = await engine.distance(HYDERABAD_DC, DELHI)
    second = await engine.distance(HYDERABAD_DC, DELHI)

    assert not first.cached and second.cached
    assert second.km == first.km
    assert provider.calls == 1
    assert engine.cache_stats() == {"hits": 1, "misses": 1, "size": 1}


async def test_cache_entries_expire() -> None:
    now = [0.0]
    provider = FakeDistanceMatrix(meters=5_000)
    engine = DistanceEngine(provider, ttl=timedelta(minutes=60), clock=lambda: now[0])

    await engine.distance(HYDERABAD_DC, DELHI)
    now[0] = 3600.0
    result = await engine.distance(HYDERABAD_DC, DELHI)

    assert not result.cached
    assert provider.calls == 2


async def test_clear_cache() -> None:
    engine = DistanceEngine(deterministic=True)
    await engine.distance(HYDERABAD_DC, DELHI)
    await engine.distance(HYDERABAD_DC, Coordinates(17.0, 80.0))

    assert await engine.clear_cache() == 2
    assert engine.cache_stats()["size"] == 0


def test_google_matrix_requires_a_key() -> None:
    with pytest.raises(ValueError):
        GoogleDistanceMatrix("")


async def test_google_matrix_reads_element_distance() -> None:
    session = FakeSession(FakeResponse({
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "distance": {"value": 4200}}]}],
    }))
    provider = GoogleDistanceMatrix("key", session=session)  # type: ignore[arg-type]

    match await provider.distance_matrix(HYDERABAD, DELHI):
        case Ok(meters):
            assert meters == 4200
        case Error(e):
            raise AssertionError(e)
    assert session.params is not None
    assert session.params["origins"] == "17.4065,78.4772"
    assert session.params["units"] == "metric"


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "REQUEST_DENIED"},
        {"status": "OK", "rows": []},
        {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]},
    ],
)
async def test_google_matrix_bad_payloads_are_provider_errors(payload: dict[str, Any]) -> None:
    provider = GoogleDistanceMatrix("key", session=FakeSession(FakeResponse(payload)))  # type: ignore[arg-type]

    match await provider.distance_matrix(HYDERABAD, DELHI):
        case Error(e):
            assert e.provider == "google_distance_matrix"
        case Ok(meters):
            raise AssertionError(f"unexpected {meters}")


async def test_google_matrix_http_error_is_provider_error() -> None:
    provider = GoogleDistanceMatrix("key", session=FakeSession(FakeResponse({}, status=500)))  # type: ignore[arg-type]

    assert isinstance(await provider.distance_matrix(HYDERABAD, DELHI), Error)
