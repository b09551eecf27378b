from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from tests.helpers.catalog import seed_catalog
from tests.helpers.store import InMemoryStore
from tienda.adapters.sqlalchemy import (
    SqlAlchemyStoreClient,
    build_engine,
    create_all_tables,
    shutdown,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = build_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlalchemy_store(sqlite_engine: Engine) -> SqlAlchemyStoreClient:
    store = SqlAlchemyStoreClient(sqlite_engine)
    seed_catalog(store)
    return store


@pytest.fixture
def memory_store() -> InMemoryStore:
    store = InMemoryStore()
    seed_catalog(store)
    store.reset_calls()
    return store


@pytest.fixture(autouse=True)
def _reset_sqlalchemy_state() -> Iterator[None]:
    yield
    shutdown()
