"""
Lift — turn plain results and blocking provider calls into lazy results.

Provider clients use ``from_blocking`` so a slow HTTP call never stalls the
event loop; fakes in tests use ``from_result``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from kungfu import LazyCoroResult, Result
from combinators.lift import catching_async


def from_result[T, E](result: Result[T, E]) -> LazyCoroResult[T, E]:
    """An already known outcome, as a lazy result."""
    async def _run() -> Result[T, E]:
        return result
    return LazyCoroResult(_run)


def from_blocking[T, E](
    fn: Callable[[], T],
    on_error: Callable[[Exception], E],
    *,
    timeout: float | None = None,
) -> LazyCoroResult[T, E]:
    """
    Run a blocking call in a worker thread.

    Exceptions (timeouts included) become E via on_error.

    Example:
        resp = await from_blocking(
            lambda: session.get(url, timeout=5),
            on_error=lambda e: ProviderError(str(e)),
            timeout=5,
        )
    """
    async def _call() -> T:
        work = asyncio.to_thread(fn)
        if timeout is None:
            return await work
        return await asyncio.wait_for(work, timeout=timeout)

    return catching_async(_call, on_error=on_error)


__all__ = (
    "catching_async",
    "from_result",
    "from_blocking",
)
