"""
Graph — resolve one nodnod node together with everything it depends on.

    from orderflow import graph as G

    @G.node
    class DeliveryFeeNode:
        def __init__(self, data: FeeBreakdown) -> None:
            self.data = data

        @classmethod
        async def __compose__(cls, request: RequestNode, address: DeliveryAddressNode) -> "DeliveryFeeNode":
            ...

    plan = await G.resolve(PlacementPlanNode, inputs)

Dependencies are discovered from each node's ``__compose__`` signature.
Plain values are injected under their own type. A node that raises aborts
the run; the exception reaches the caller unchanged.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Coroutine
from typing import Any, cast

import structlog
from nodnod import Scope, Value, EventLoopAgent, Node
from nodnod import scalar_node as node

log = structlog.get_logger(__name__)

type AgentRun = Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]]


async def resolve[T](target: type[T], *inputs: object) -> T:
    """Build an agent for ``target``, inject ``inputs`` and return the resolved node."""
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], target)})
    run_agent = cast(AgentRun, getattr(agent, "run"))
    started = time.perf_counter()

    scope = Scope(detail=target.__name__)
    async with scope:
        for value in inputs:
            scope.push(Value(type(value), value))
        await run_agent(scope, {})
        found = scope.get(target)

    if found is None:
        raise LookupError(f"{target.__name__} was not produced")
    log.debug(
        "graph_resolved",
        node=target.__name__,
        elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return cast(T, found.value)


__all__ = ("node", "resolve")
