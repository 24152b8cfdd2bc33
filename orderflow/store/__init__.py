"""
Store — persistence behind placement and the address book.

    store = MemoryStore()                                  # tests, demos
    store = await SQLAlchemyStore.create(database_url)     # anything SQLAlchemy speaks
"""

from __future__ import annotations

from orderflow.store._protocol import UnitOfWork, Store
from orderflow.store._memory import MemoryStore, MemoryUnitOfWork
from orderflow.store._sqlalchemy import SQLAlchemyStore, SQLAlchemyUnitOfWork

__all__ = (
    "UnitOfWork",
    "Store",
    "MemoryStore",
    "MemoryUnitOfWork",
    "SQLAlchemyStore",
    "SQLAlchemyUnitOfWork",
)
