"""
Saga types.

A step pairs a lazy write with the write that undoes it. Only steps that
succeeded get undone, newest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Receives what the step produced and reverses it."""


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None
    name: str = "step"


@dataclass(frozen=True, slots=True)
class Compensation:
    """Undo recorded for a step that already succeeded."""

    step_name: str
    value: object
    undo: Compensator[object]

    async def apply(self) -> None:
        await self.undo(self.value)


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """
    First failure of a sequence and how the rollback went.

    ``step_failed`` is 1-based. When a compensator raised, the rollback is
    incomplete and the store may still hold part of the writes.
    """

    error: E
    step_failed: int
    step_name: str
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "Compensator",
    "SagaStep",
    "Compensation",
    "SagaResult",
    "SagaError",
)
