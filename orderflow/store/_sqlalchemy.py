"""
SQLAlchemy store — async sessions over any SQLAlchemy backend.

Usage:
    store = await SQLAlchemyStore.create("sqlite+aiosqlite:///:memory:")

    async with store.unit_of_work() as uow:
        reserved = await uow.try_reserve_stock("p1", 2)

Stock reservation is a single conditional UPDATE (``stock >= :qty``), so
concurrent placements are serialised by the database, not by this process.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from orderflow._types import CoordsSource
from orderflow.districts import PostalRecord
from orderflow.domain import Account, Address, Cart, CartItem, Product
from orderflow.errors import DuplicateOrder
from orderflow.orders._types import Order
from orderflow.store._tables import (
    Base,
    AccountTable,
    AddressTable,
    ProductTable,
    CartItemTable,
    OrderTable,
    PostalCodeTable,
)

log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Row ↔ domain
# ═══════════════════════════════════════════════════════════════════════════════

def _account(row: AccountTable) -> Account:
    return Account(id=row.id, name=row.name, email=row.email, phone=row.phone)


def _address(row: AddressTable) -> Address:
    return Address(
        id=row.id,
        account_id=row.account_id,
        label=row.label,
        name=row.name,
        phone=row.phone,
        line=row.line,
        city=row.city,
        state=row.state,
        postal_code=row.postal_code,
        postal_district=row.postal_district,
        admin_district=row.admin_district,
        lat=row.lat,
        lng=row.lng,
        coords_source=CoordsSource(row.coords_source),
        is_default=row.is_default,
    )


def _address_row(address: Address) -> AddressTable:
    return AddressTable(
        id=address.id,
        account_id=address.account_id,
        label=address.label,
        name=address.name,
        phone=address.phone,
        line=address.line,
        city=address.city,
        state=address.state,
        postal_code=address.postal_code,
        postal_district=address.postal_district,
        admin_district=address.admin_district,
        lat=address.lat,
        lng=address.lng,
        coords_source=address.coords_source.value,
        is_default=address.is_default,
    )


def _product(row: ProductTable) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        price=Decimal(row.price),
        stock=row.stock,
        weight_kg=Decimal(row.weight_kg),
        image=row.image,
    )


def _order_row(order: Order) -> OrderTable:
    return OrderTable(
        id=order.id,
        account_id=order.account_id,
        idempotency_key=order.idempotency_key,
        grand_total=order.grand_total,
        payment_method=order.payment_method.value,
        order_status=order.order_status.value,
        document=order.to_document(),
        created_at=order.created_at.replace(tzinfo=None),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Unit of work
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyUnitOfWork:
    """
    One session. Transactional units commit once at the end; others
    commit after every write.
    """

    def __init__(self, session: AsyncSession, transactional: bool) -> None:
        self._session = session
        self._transactional = transactional

    @property
    def transactional(self) -> bool:
        return self._transactional

    async def _written(self) -> None:
        if self._transactional:
            await self._session.flush()
            return
        try:
            await self._session.commit()
        except Exception:
            # Leave the session usable for compensating writes
            await self._session.rollback()
            raise

    # ─── Accounts & addresses ────────────────────────────────────────────────

    async def get_account(self, account_id: str) -> Account | None:
        row = await self._session.get(AccountTable, account_id)
        return _account(row) if row is not None else None

    async def list_addresses(self, account_id: str) -> list[Address]:
        result = await self._session.execute(
            select(AddressTable).where(AddressTable.account_id == account_id).order_by(AddressTable.id)
        )
        return [_address(row) for row in result.scalars()]

    async def get_address(self, account_id: str, address_id: str) -> Address | None:
        row = await self._session.get(AddressTable, address_id)
        if row is None or row.account_id != account_id:
            return None
        return _address(row)

    async def get_default_address(self, account_id: str) -> Address | None:
        result = await self._session.execute(
            select(AddressTable)
            .where(AddressTable.account_id == account_id, AddressTable.is_default.is_(True))
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _address(row) if row is not None else None

    async def save_address(self, address: Address) -> None:
        await self._session.merge(_address_row(address))
        await self._written()

    async def set_default_address(self, account_id: str, address_id: str) -> None:
        await self._session.execute(
            update(AddressTable)
            .where(AddressTable.account_id == account_id)
            .values(is_default=AddressTable.id == address_id)
            .execution_options(synchronize_session=False)
        )
        await self._written()

    # ─── Cart & products ─────────────────────────────────────────────────────

    async def get_cart(self, account_id: str) -> Cart:
        result = await self._session.execute(
            select(CartItemTable)
            .where(CartItemTable.account_id == account_id)
            .order_by(CartItemTable.position)
        )
        items = tuple(
            CartItem(
                product_id=row.product_id,
                quantity=row.quantity,
                price=Decimal(row.price),
                name=row.name,
                image=row.image,
            )
            for row in result.scalars()
        )
        return Cart(account_id=account_id, items=items)

    async def save_cart(self, cart: Cart) -> None:
        await self._session.execute(
            delete(CartItemTable).where(CartItemTable.account_id == cart.account_id)
        )
        self._session.add_all(
            CartItemTable(
                account_id=cart.account_id,
                position=position,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                name=item.name,
                image=item.image,
            )
            for position, item in enumerate(cart.items)
        )
        await self._written()

    async def get_product(self, product_id: str) -> Product | None:
        row = await self._session.get(ProductTable, product_id, populate_existing=True)
        return _product(row) if row is not None else None

    async def try_reserve_stock(self, product_id: str, quantity: int) -> bool:
        if quantity <= 0:
            return False
        result = await self._session.execute(
            update(ProductTable)
            .where(ProductTable.id == product_id, ProductTable.stock >= quantity)
            .values(stock=ProductTable.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        await self._written()
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def release_stock(self, product_id: str, quantity: int) -> None:
        result = await self._session.execute(
            update(ProductTable)
            .where(ProductTable.id == product_id)
            .values(stock=ProductTable.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        await self._written()
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise KeyError(product_id)

    # ─── Orders ──────────────────────────────────────────────────────────────

    async def find_order_by_key(self, account_id: str, idempotency_key: str) -> Order | None:
        result = await self._session.execute(
            select(OrderTable).where(
                OrderTable.account_id == account_id,
                OrderTable.idempotency_key == idempotency_key,
            )
        )
        row = result.scalar_one_or_none()
        return Order.from_document(row.document) if row is not None else None

    async def get_order(self, order_id: str) -> Order | None:
        row = await self._session.get(OrderTable, order_id)
        return Order.from_document(row.document) if row is not None else None

    async def insert_order(self, order: Order) -> Order:
        if order.idempotency_key is not None:
            existing = await self.find_order_by_key(order.account_id, order.idempotency_key)
            if existing is not None:
                raise DuplicateOrder(order.account_id, order.idempotency_key)

        self._session.add(_order_row(order))
        try:
            await self._written()
        except IntegrityError as e:
            raise DuplicateOrder(order.account_id, order.idempotency_key or "") from e
        return order

    async def delete_order(self, order_id: str) -> None:
        await self._session.execute(delete(OrderTable).where(OrderTable.id == order_id))
        await self._written()


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyStore:
    """
    Example:
        store = await SQLAlchemyStore.create("sqlite+aiosqlite:///orders.db")
        await store.add_product(Product("p1", "Rice 5kg", Decimal("420"), stock=10))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    async def create(cls, url: str = "sqlite+aiosqlite:///:memory:") -> SQLAlchemyStore:
        """Create engine and tables."""
        engine = create_async_engine(url, echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    @property
    def supports_transactions(self) -> bool:
        return True

    @asynccontextmanager
    async def unit_of_work(self, transactional: bool = True) -> AsyncIterator[SQLAlchemyUnitOfWork]:
        async with self._session_factory() as session:
            uow = SQLAlchemyUnitOfWork(session, transactional)
            try:
                yield uow
            except BaseException:
                await session.rollback()
                raise
            else:
                await session.commit()

    async def find_postal_code(self, postal_code: str) -> PostalRecord | None:
        async with self._session_factory() as session:
            row = await session.get(PostalCodeTable, postal_code)
            if row is None:
                return None
            return PostalRecord(row.postal_code, row.state, row.district, row.taluka)

    # ─── Seeding ─────────────────────────────────────────────────────────────

    async def add_account(self, account: Account) -> Account:
        async with self._session_factory() as session:
            await session.merge(AccountTable(
                id=account.id, name=account.name, email=account.email, phone=account.phone,
            ))
            await session.commit()
        return account

    async def add_address(self, address: Address) -> Address:
        async with self.unit_of_work() as uow:
            await uow.save_address(address)
        return address

    async def add_product(self, product: Product) -> Product:
        async with self._session_factory() as session:
            await session.merge(ProductTable(
                id=product.id,
                name=product.name,
                price=product.price,
                stock=product.stock,
                weight_kg=product.weight_kg,
                image=product.image,
            ))
            await session.commit()
        return product

    async def put_cart(self, cart: Cart) -> Cart:
        async with self.unit_of_work() as uow:
            await uow.save_cart(cart)
        return cart

    async def add_postal_code(self, record: PostalRecord) -> None:
        async with self._session_factory() as session:
            await session.merge(PostalCodeTable(
                postal_code=record.postal_code,
                state=record.state,
                district=record.district,
                taluka=record.taluka,
            ))
            await session.commit()

    async def stock_of(self, product_id: str) -> int:
        async with self.unit_of_work(transactional=False) as uow:
            product = await uow.get_product(product_id)
        if product is None:
            raise KeyError(product_id)
        return product.stock


__all__ = ("SQLAlchemyStore", "SQLAlchemyUnitOfWork")
