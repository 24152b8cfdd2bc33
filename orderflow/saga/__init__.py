"""
Saga — multi-step writes with compensation.

    from orderflow import saga as S

    result = await S.run_sequence([
        S.from_async(reserve, on_error=fail, compensate=release, name="reserve"),
        S.from_async(insert, on_error=fail, compensate=delete, name="insert_order"),
    ])
"""

from __future__ import annotations

from orderflow.saga._types import (
    Compensator,
    SagaStep,
    Compensation,
    SagaResult,
    SagaError,
)
from orderflow.saga._step import step, from_async
from orderflow.saga._run import run, run_sequence

__all__ = (
    "Compensator",
    "SagaStep",
    "Compensation",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run",
    "run_sequence",
)
