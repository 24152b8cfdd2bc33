from __future__ import annotations

from datetime import timedelta

from kungfu import LazyCoroResult, Ok, Error

from orderflow import cache as C
from orderflow.lift import from_result


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


async def test_ttl_tier_expires_on_read() -> None:
    clock = FakeClock()
    tier = C.TTLTier[int](ttl=timedelta(seconds=60), clock=clock)

    await tier.set("a", 1)
    clock.now = 59.0
    assert await tier.get("a") == 1

    clock.now = 60.0
    assert await tier.get("a") is None
    assert len(tier) == 0


async def test_ttl_tier_evicts_least_recently_used() -> None:
    tier = C.TTLTier[int](ttl=None, max_size=2)
    await tier.set("a", 1)
    await tier.set("b", 2)
    await tier.get("a")
    await tier.set("c", 3)

    assert await tier.get("a") == 1
    assert await tier.get("b") is None
    assert await tier.get("c") == 3


async def test_executor_fetches_once_then_hits() -> None:
    calls: list[str] = []

    def fetch(key: str) -> LazyCoroResult[int, str]:
        calls.append(key)
        return from_result(Ok(len(key)))

    executor = C.cache(lambda k: k, fetch).tier(C.TTLTier[int](ttl=timedelta(minutes=5))).build()

    first = await executor.get("hello")
    second = await executor.get("hello")

    match first, second:
        case Ok(a), Ok(b):
            assert (a.value, a.hit) == (5, False)
            assert (b.value, b.hit, b.tier) == (5, True, "memory")
        case _:
            raise AssertionError("expected two Ok results")
    assert calls == ["hello"]
    assert (executor.stats.hits, executor.stats.misses) == (1, 1)


async def test_fetch_error_is_not_cached() -> None:
    attempts = 0

    def fetch(key: str) -> LazyCoroResult[int, str]:
        nonlocal attempts
        attempts += 1
        return from_result(Error("down"))

    executor = C.cache(lambda k: k, fetch).tier(C.TTLTier[int]()).build()

    assert isinstance(await executor.get("k"), Error)
    assert isinstance(await executor.get("k"), Error)
    assert attempts == 2


async def test_invalidate_and_clear() -> None:
    executor = C.cache(lambda k: k, lambda k: from_result(Ok(k.upper()))).tier(C.TTLTier[str]()).build()
    await executor.get("a")
    await executor.get("b")

    assert await executor.invalidate("a") is True
    assert await executor.invalidate("a") is False
    assert await executor.clear() == 1
