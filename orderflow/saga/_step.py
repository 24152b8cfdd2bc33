"""
Step constructors.

    reserve = S.from_async(
        lambda: uow.try_reserve_stock("p-rice", 2),
        on_error=lambda e: e,
        compensate=lambda _: uow.release_stock("p-rice", 2),
        name="reserve_stock:p-rice",
    )
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult
from combinators import lift as L

from orderflow.saga._types import SagaStep, Compensator


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """Wrap an already lazy action."""
    return SagaStep(action=action, compensate=compensate, name=name)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    Wrap a coroutine factory; a raised exception becomes ``Error(on_error(exc))``.

    The factory runs when the sequence reaches the step, not before.
    """
    return step(L.catching_async(action, on_error=on_error), compensate, name=name)


__all__ = ("step", "from_async")
