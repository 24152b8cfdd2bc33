"""
In-process store for tests and single-node demos.

Stock decrements are conditional and serialised under one asyncio.Lock.
Transactional units keep an undo log replayed in reverse on failure;
there is no read isolation between concurrent units.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import replace

import structlog

from orderflow.districts import PostalRecord
from orderflow.domain import Account, Address, Cart, Product
from orderflow.errors import DuplicateOrder, TransactionsUnsupported
from orderflow.orders._types import Order

log = structlog.get_logger(__name__)

type Undo = Callable[[], Awaitable[None]]


class MemoryStore:
    """
    Example:
        store = MemoryStore(supports_transactions=False)
        store.add_product(Product("p1", "Rice 5kg", Decimal("420"), stock=3))

        async with store.unit_of_work(transactional=False) as uow:
            ok = await uow.try_reserve_stock("p1", 2)
    """

    def __init__(
        self,
        *,
        supports_transactions: bool = True,
        postal_codes: Iterable[PostalRecord] = (),
    ) -> None:
        self._supports_transactions = supports_transactions
        self._lock = asyncio.Lock()
        self.accounts: dict[str, Account] = {}
        self.addresses: dict[str, Address] = {}
        self.carts: dict[str, Cart] = {}
        self.products: dict[str, Product] = {}
        self.orders: dict[str, Order] = {}
        self.order_keys: dict[tuple[str, str], str] = {}
        self.postal_codes: dict[str, PostalRecord] = {r.postal_code: r for r in postal_codes}

    # ─── Seeding ─────────────────────────────────────────────────────────────

    def add_account(self, account: Account) -> Account:
        self.accounts[account.id] = account
        return account

    def add_address(self, address: Address) -> Address:
        self.addresses[address.id] = address
        return address

    def add_product(self, product: Product) -> Product:
        self.products[product.id] = product
        return product

    def put_cart(self, cart: Cart) -> Cart:
        self.carts[cart.account_id] = cart
        return cart

    def add_postal_code(self, record: PostalRecord) -> None:
        self.postal_codes[record.postal_code] = record

    def stock_of(self, product_id: str) -> int:
        return self.products[product_id].stock

    # ─── Store protocol ──────────────────────────────────────────────────────

    @property
    def supports_transactions(self) -> bool:
        return self._supports_transactions

    @asynccontextmanager
    async def unit_of_work(self, transactional: bool = True) -> AsyncIterator[MemoryUnitOfWork]:
        if transactional and not self._supports_transactions:
            raise TransactionsUnsupported("memory store configured without transactions")
        uow = MemoryUnitOfWork(self, transactional)
        try:
            yield uow
        except BaseException:
            if transactional:
                await uow.rollback()
            raise

    async def find_postal_code(self, postal_code: str) -> PostalRecord | None:
        return self.postal_codes.get(postal_code)


class MemoryUnitOfWork:
    def __init__(self, store: MemoryStore, transactional: bool) -> None:
        self._store = store
        self._transactional = transactional
        self._undo: list[Undo] = []

    @property
    def transactional(self) -> bool:
        return self._transactional

    def _record(self, undo: Undo) -> None:
        if self._transactional:
            self._undo.append(undo)

    async def rollback(self) -> None:
        undo, self._undo = self._undo, []
        for action in reversed(undo):
            await action()
        log.debug("memory_uow_rolled_back", writes=len(undo))

    # ─── Accounts & addresses ────────────────────────────────────────────────

    async def get_account(self, account_id: str) -> Account | None:
        return self._store.accounts.get(account_id)

    async def list_addresses(self, account_id: str) -> list[Address]:
        return [a for a in self._store.addresses.values() if a.account_id == account_id]

    async def get_address(self, account_id: str, address_id: str) -> Address | None:
        address = self._store.addresses.get(address_id)
        if address is None or address.account_id != account_id:
            return None
        return address

    async def get_default_address(self, account_id: str) -> Address | None:
        return next(
            (a for a in self._store.addresses.values() if a.account_id == account_id and a.is_default),
            None,
        )

    async def save_address(self, address: Address) -> None:
        addresses = self._store.addresses
        previous = addresses.get(address.id)
        addresses[address.id] = address

        async def undo() -> None:
            if previous is None:
                addresses.pop(address.id, None)
            else:
                addresses[address.id] = previous

        self._record(undo)

    async def set_default_address(self, account_id: str, address_id: str) -> None:
        async with self._store._lock:
            for address in await self.list_addresses(account_id):
                wanted = address.id == address_id
                if address.is_default != wanted:
                    await self.save_address(replace(address, is_default=wanted))

    # ─── Cart & products ─────────────────────────────────────────────────────

    async def get_cart(self, account_id: str) -> Cart:
        return self._store.carts.get(account_id) or Cart(account_id=account_id)

    async def save_cart(self, cart: Cart) -> None:
        carts = self._store.carts
        previous = carts.get(cart.account_id)
        carts[cart.account_id] = cart

        async def undo() -> None:
            if previous is None:
                carts.pop(cart.account_id, None)
            else:
                carts[cart.account_id] = previous

        self._record(undo)

    async def get_product(self, product_id: str) -> Product | None:
        return self._store.products.get(product_id)

    async def _adjust_stock(self, product_id: str, delta: int) -> bool:
        async with self._store._lock:
            product = self._store.products.get(product_id)
            if product is None or product.stock + delta < 0:
                return False
            self._store.products[product_id] = replace(product, stock=product.stock + delta)
            return True

    async def try_reserve_stock(self, product_id: str, quantity: int) -> bool:
        if quantity <= 0:
            return False
        reserved = await self._adjust_stock(product_id, -quantity)
        if reserved:

            async def undo() -> None:
                await self._adjust_stock(product_id, quantity)

            self._record(undo)
        return reserved

    async def release_stock(self, product_id: str, quantity: int) -> None:
        if not await self._adjust_stock(product_id, quantity):
            raise KeyError(product_id)

        async def undo() -> None:
            await self._adjust_stock(product_id, -quantity)

        self._record(undo)

    # ─── Orders ──────────────────────────────────────────────────────────────

    async def find_order_by_key(self, account_id: str, idempotency_key: str) -> Order | None:
        order_id = self._store.order_keys.get((account_id, idempotency_key))
        return self._store.orders.get(order_id) if order_id is not None else None

    async def get_order(self, order_id: str) -> Order | None:
        return self._store.orders.get(order_id)

    async def insert_order(self, order: Order) -> Order:
        store = self._store
        key = (order.account_id, order.idempotency_key) if order.idempotency_key else None
        async with store._lock:
            if key is not None and key in store.order_keys:
                raise DuplicateOrder(order.account_id, order.idempotency_key or "")
            store.orders[order.id] = order
            if key is not None:
                store.order_keys[key] = order.id

        async def undo() -> None:
            await self.delete_order(order.id)

        self._record(undo)
        return order

    async def delete_order(self, order_id: str) -> None:
        store = self._store
        async with store._lock:
            order = store.orders.pop(order_id, None)
            if order is not None and order.idempotency_key:
                store.order_keys.pop((order.account_id, order.idempotency_key), None)


__all__ = ("MemoryStore", "MemoryUnitOfWork")
