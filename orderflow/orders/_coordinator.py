"""
Order placement — VALIDATE → PRICE → RESERVE_STOCK → PERSIST → COMMIT | ABORT.

    coordinator = OrderTransactionCoordinator(store, districts, coordinates, fees)

    match await coordinator.create_order_from_cart("acc-1", "cod", idempotency_key="abc"):
        case Ok(outcome):
            print(outcome.order.id, outcome.created)
        case Error(e):
            print(e.code, e.message)

Validation and pricing run as a nodnod graph (see ``_nodes``). Reservation and
persistence run as a saga inside one unit of work: a transactional unit rolls
back as a whole, a non-transactional one is unwound by the saga's
compensators.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from kungfu import Result, Ok, Error

from orderflow import graph as G
from orderflow import saga as S
from orderflow.districts import DistrictResolver
from orderflow.errors import (
    DuplicateOrder,
    InsufficientStock,
    PlacementError,
    PlacementReason,
    TransactionsUnsupported,
)
from orderflow.fees import FeeEngine
from orderflow.geo import CoordinateResolver
from orderflow.orders._events import LoggingPublisher, OrderEventPublisher, OrderPlaced
from orderflow.orders._nodes import (
    PlacementInputs,
    PlacementRequest,
    PlacementPlan,
    PlacementPlanNode,
    PlacementServices,
)
from orderflow.orders._types import Order, PaymentMethod, PlacementOutcome
from orderflow.orders._validation import parse_payment

if TYPE_CHECKING:
    from orderflow.store import Store, UnitOfWork

log = structlog.get_logger(__name__)

type Flight = asyncio.Future[Order | None]


def new_order_id() -> str:
    return f"ORD-{uuid.uuid4().hex[:16].upper()}"


def _passthrough(e: Exception) -> Exception:
    return e


# ═══════════════════════════════════════════════════════════════════════════════
# Coordinator
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTransactionCoordinator:
    """
    Turns an account's cart into exactly one order.

    Retries with the same idempotency key converge on one order: an existing
    order short-circuits, concurrent attempts in this process wait for the
    first one, and a unique-key violation from another process is answered
    with the order that won.
    """

    def __init__(
        self,
        store: Store,
        districts: DistrictResolver,
        coordinates: CoordinateResolver,
        fees: FeeEngine,
        publisher: OrderEventPublisher | None = None,
        *,
        id_factory: Callable[[], str] = new_order_id,
    ) -> None:
        self._store = store
        self._services = PlacementServices(districts, coordinates, fees)
        self._publisher = publisher if publisher is not None else LoggingPublisher()
        self._id_factory = id_factory
        self._transactions = True
        self._inflight: dict[tuple[str, str], Flight] = {}
        self._deliveries: set[asyncio.Task[None]] = set()

    @property
    def store(self) -> Store:
        return self._store

    # ─── Entry point ─────────────────────────────────────────────────────────

    async def create_order_from_cart(
        self,
        account_id: str,
        payment_method: PaymentMethod | str,
        idempotency_key: str | None = None,
        *,
        upi_vpa: str | None = None,
        is_express: bool = False,
        now: datetime | None = None,
    ) -> Result[PlacementOutcome, PlacementError]:
        try:
            method = parse_payment(payment_method, upi_vpa)
        except PlacementError as e:
            return Error(e)

        key = idempotency_key.strip() if idempotency_key else None
        request = PlacementRequest(
            account_id=account_id,
            payment_method=method,
            idempotency_key=key or None,
            upi_vpa=upi_vpa.strip() if upi_vpa else None,
            is_express=is_express,
            now=now,
        )

        if request.idempotency_key is None:
            return await self._place(request)
        return await self._place_once(request, request.idempotency_key)

    # ─── Idempotency ─────────────────────────────────────────────────────────

    async def _find_existing(self, account_id: str, key: str) -> Order | None:
        async with self._store.unit_of_work(transactional=False) as uow:
            return await uow.find_order_by_key(account_id, key)

    async def _place_once(
        self,
        request: PlacementRequest,
        key: str,
    ) -> Result[PlacementOutcome, PlacementError]:
        flight_key = (request.account_id, key)

        while True:
            existing = await self._find_existing(request.account_id, key)
            if existing is not None:
                log.info("placement_replayed", account_id=request.account_id, order_id=existing.id)
                return Ok(PlacementOutcome(existing, created=False))

            flight = self._inflight.get(flight_key)
            if flight is None:
                break
            winner = await asyncio.shield(flight)
            if winner is not None:
                log.info("placement_joined", account_id=request.account_id, order_id=winner.id)
                return Ok(PlacementOutcome(winner, created=False))
            # The leader failed; look again and possibly lead the next attempt

        flight = asyncio.get_running_loop().create_future()
        self._inflight[flight_key] = flight
        placed: Order | None = None
        try:
            result = await self._place(request)
            match result:
                case Ok(outcome):
                    placed = outcome.order
            return result
        finally:
            del self._inflight[flight_key]
            flight.set_result(placed)

    # ─── Attempt ─────────────────────────────────────────────────────────────

    async def _place(self, request: PlacementRequest) -> Result[PlacementOutcome, PlacementError]:
        try:
            order = await self._attempt_with_fallback(request)
        except DuplicateOrder as e:
            existing = await self._find_existing(e.account_id, e.idempotency_key)
            if existing is None:
                log.error("duplicate_order_vanished", account_id=e.account_id)
                return Error(PlacementError(
                    PlacementReason.PERSISTENCE_FAILED,
                    "Could not save the order. Please try again.",
                ))
            log.info("placement_converged", account_id=e.account_id, order_id=existing.id)
            return Ok(PlacementOutcome(existing, created=False))
        except PlacementError as e:
            if request.idempotency_key is not None:
                existing = await self._find_existing(request.account_id, request.idempotency_key)
                if existing is not None:
                    return Ok(PlacementOutcome(existing, created=False))
            log.info(
                "placement_rejected",
                account_id=request.account_id,
                reason=e.code,
                product_id=e.product_id,
            )
            return Error(e)

        log.info(
            "order_placed",
            account_id=order.account_id,
            order_id=order.id,
            grand_total=str(order.grand_total),
            payment_method=order.payment_method.value,
        )
        self._emit(order)
        return Ok(PlacementOutcome(order, created=True))

    async def _attempt_with_fallback(self, request: PlacementRequest) -> Order:
        if self._transactions:
            try:
                return await self._attempt(request, transactional=True)
            except TransactionsUnsupported:
                self._transactions = False
                log.warning(
                    "deployment_capability",
                    capability="transactions",
                    available=False,
                    fallback="compensating_saga",
                )
        return await self._attempt(request, transactional=False)

    async def _attempt(self, request: PlacementRequest, *, transactional: bool) -> Order:
        async with self._store.unit_of_work(transactional=transactional) as uow:
            inputs = PlacementInputs(request, self._id_factory(), uow, self._services)
            plan = await G.resolve(PlacementPlanNode, inputs)
            return await self._commit(uow, plan.data)

    # ─── RESERVE_STOCK → PERSIST ─────────────────────────────────────────────

    async def _commit(self, uow: UnitOfWork, plan: PlacementPlan) -> Order:
        order = plan.order
        # A transactional unit is undone by the store; compensators would run twice
        undo = not uow.transactional
        steps: list[S.SagaStep[object, Exception]] = []

        if order.payment_method is PaymentMethod.COD:
            for item in order.items:
                steps.append(S.from_async(
                    lambda pid=item.product_id, qty=item.quantity: self._reserve(uow, pid, qty),
                    on_error=_passthrough,
                    compensate=(
                        (lambda _, pid=item.product_id, qty=item.quantity: uow.release_stock(pid, qty))
                        if undo else None
                    ),
                    name=f"reserve_stock:{item.product_id}",
                ))

        steps.append(S.from_async(
            lambda: uow.insert_order(order),
            on_error=_passthrough,
            compensate=(lambda placed: uow.delete_order(placed.id)) if undo else None,
            name="insert_order",
        ))

        if order.payment_method is PaymentMethod.COD:
            steps.append(S.from_async(
                lambda: uow.save_cart(plan.cart.cleared()),
                on_error=_passthrough,
                name="clear_cart",
            ))

        match await S.run_sequence(steps):
            case Ok(_):
                return order
            case Error(failure):
                log.warning(
                    "placement_unwound",
                    order_id=order.id,
                    step=failure.step_name,
                    compensators_run=failure.compensators_run,
                    rollback_complete=failure.rollback_complete,
                    transactional=uow.transactional,
                )
                error = self._commit_error(failure.error, order)
                if error is failure.error:
                    raise error
                raise error from failure.error

    @staticmethod
    async def _reserve(uow: UnitOfWork, product_id: str, quantity: int) -> tuple[str, int]:
        if not await uow.try_reserve_stock(product_id, quantity):
            raise InsufficientStock(product_id, quantity)
        return product_id, quantity

    @staticmethod
    def _commit_error(error: Exception, order: Order) -> Exception:
        match error:
            case InsufficientStock(product_id=product_id):
                name = next((i.name for i in order.items if i.product_id == product_id), product_id)
                return PlacementError(
                    PlacementReason.INSUFFICIENT_STOCK,
                    f"Insufficient stock for {name}",
                    product_id=product_id,
                )
            case DuplicateOrder() | PlacementError():
                return error
            case _:
                log.error("order_persist_failed", order_id=order.id, error=repr(error))
                return PlacementError(
                    PlacementReason.PERSISTENCE_FAILED,
                    "Could not save the order. Please try again.",
                )

    # ─── Events ──────────────────────────────────────────────────────────────

    def _emit(self, order: Order) -> None:
        event = OrderPlaced.from_order(order, datetime.now(timezone.utc))
        task = asyncio.create_task(self._deliver(event))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(self, event: OrderPlaced) -> None:
        try:
            await self._publisher.publish(event)
        except Exception:
            log.exception("order_event_failed", event_id=event.event_id)

    async def drain(self) -> None:
        """Wait for pending event deliveries."""
        while self._deliveries:
            await asyncio.gather(*self._deliveries)


__all__ = ("OrderTransactionCoordinator", "new_order_id")
