"""
Order events — emitted after commit, consumed by notifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

import structlog

from orderflow.orders._types import Order

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class OrderPlaced:
    event_id: str
    order_id: str
    account_id: str
    item_count: int
    grand_total: Decimal
    primary_product: str | None
    occurred_at: datetime

    @classmethod
    def from_order(cls, order: Order, occurred_at: datetime) -> OrderPlaced:
        return cls(
            event_id=f"order:{order.id}:created",
            order_id=order.id,
            account_id=order.account_id,
            item_count=order.item_count,
            grand_total=order.grand_total,
            primary_product=order.items[0].name if order.items else None,
            occurred_at=occurred_at,
        )


class OrderEventPublisher(Protocol):
    async def publish(self, event: OrderPlaced) -> None: ...


class LoggingPublisher:
    """Default publisher: writes the event to the log and nothing else."""

    async def publish(self, event: OrderPlaced) -> None:
        log.info(
            "order_placed_event",
            event_id=event.event_id,
            account_id=event.account_id,
            item_count=event.item_count,
            grand_total=str(event.grand_total),
        )


__all__ = ("OrderPlaced", "OrderEventPublisher", "LoggingPublisher")
