"""
Store protocol — what placement and the address book need from persistence.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from orderflow.districts import PostalRecord
from orderflow.domain import Account, Address, Cart, Product
from orderflow.orders._types import Order


class UnitOfWork(Protocol):
    """
    One placement or address-book attempt.

    In a transactional unit every write is undone if the block raises. In a
    non-transactional unit writes land immediately; callers compensate.
    """

    @property
    def transactional(self) -> bool: ...

    # ─── Accounts & addresses ────────────────────────────────────────────────

    async def get_account(self, account_id: str) -> Account | None: ...

    async def list_addresses(self, account_id: str) -> list[Address]: ...

    async def get_address(self, account_id: str, address_id: str) -> Address | None: ...

    async def get_default_address(self, account_id: str) -> Address | None: ...

    async def save_address(self, address: Address) -> None: ...

    async def set_default_address(self, account_id: str, address_id: str) -> None:
        """Make ``address_id`` the only default for the account."""
        ...

    # ─── Cart & products ─────────────────────────────────────────────────────

    async def get_cart(self, account_id: str) -> Cart: ...

    async def save_cart(self, cart: Cart) -> None: ...

    async def get_product(self, product_id: str) -> Product | None: ...

    async def try_reserve_stock(self, product_id: str, quantity: int) -> bool:
        """Atomically decrement stock if at least ``quantity`` remains."""
        ...

    async def release_stock(self, product_id: str, quantity: int) -> None: ...

    # ─── Orders ──────────────────────────────────────────────────────────────

    async def find_order_by_key(self, account_id: str, idempotency_key: str) -> Order | None: ...

    async def get_order(self, order_id: str) -> Order | None: ...

    async def insert_order(self, order: Order) -> Order:
        """Raises DuplicateOrder when (account_id, idempotency_key) is taken."""
        ...

    async def delete_order(self, order_id: str) -> None: ...


class Store(Protocol):
    @property
    def supports_transactions(self) -> bool: ...

    def unit_of_work(self, transactional: bool = True) -> AbstractAsyncContextManager[UnitOfWork]:
        """
        Open a unit of work.

        Entering a transactional unit on a store without transaction support
        raises TransactionsUnsupported before any work is done.
        """
        ...

    async def find_postal_code(self, postal_code: str) -> PostalRecord | None: ...


__all__ = ("UnitOfWork", "Store")
