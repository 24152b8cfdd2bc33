"""
Running steps with rollback.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from kungfu import Result, Ok, Error

from orderflow.saga._types import Compensation, SagaStep, SagaResult, SagaError

log = structlog.get_logger(__name__)


async def _rollback(done: list[Compensation]) -> tuple[int, int]:
    """Apply recorded undos newest first; a failing undo does not stop the rest."""
    applied = failed = 0
    for compensation in reversed(done):
        try:
            await compensation.apply()
        except Exception:
            failed += 1
            log.exception("saga_compensator_failed", step=compensation.step_name)
        else:
            applied += 1
    return applied, failed


async def run_sequence[E](
    steps: Sequence[SagaStep[object, E]],
) -> Result[SagaResult[tuple[object, ...]], SagaError[E]]:
    """
    Run steps in order and stop at the first error.

    Everything that succeeded before the failing step is compensated in
    reverse; the step that failed is not, since it wrote nothing.

    Example:
        match await S.run_sequence([reserve, insert, clear_cart]):
            case Ok(r):
                reserved, order, _ = r.value
            case Error(e):
                log.warning("placement_unwound", step=e.step_name)
    """
    done: list[Compensation] = []
    values: list[object] = []

    for index, s in enumerate(steps, start=1):
        match await s.action:
            case Ok(value):
                values.append(value)
                if s.compensate is not None:
                    done.append(Compensation(s.name, value, s.compensate))
            case Error(e):
                log.info("saga_step_failed", step=s.name, index=index, recorded=len(done))
                applied, failed = await _rollback(done)
                if done:
                    log.warning("saga_rolled_back", step=s.name, applied=applied, failed=failed)
                return Error(SagaError(
                    error=e,
                    step_failed=index,
                    step_name=s.name,
                    compensators_run=applied,
                    compensators_failed=failed,
                ))

    return Ok(SagaResult(
        value=tuple(values),
        steps_executed=len(values),
        compensators_recorded=len(done),
    ))


async def run[T, E](saga: SagaStep[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """A single step; there is nothing before it to undo."""
    match await run_sequence([saga]):  # type: ignore[list-item]
        case Ok(r):
            return Ok(SagaResult(r.value[0], r.steps_executed, r.compensators_recorded))  # type: ignore[arg-type]
        case Error(e):
            return Error(e)


__all__ = ("run", "run_sequence")
