from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from erpbridge.adapters.sqlalchemy import create_all_tables, start_mappers
from erpbridge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBillingUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.billing import InMemoryBillingStore
from tests.helpers.odoo import OdooStub

# never let a test touch the real data directory or a real ERP
os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")
os.environ.pop("ODOO_BASE_URL", None)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection, so every session sees the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    start_mappers()
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    with Session(sqlite_engine) as session:
        yield session


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyBillingUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    yield SqlAlchemyBillingUnitOfWork
    shutdown()


@pytest.fixture
def billing_store() -> InMemoryBillingStore:
    """Fake persistence for sync tests that do not need SQL."""
    return InMemoryBillingStore()


@pytest.fixture
def odoo() -> OdooStub:
    return OdooStub()
