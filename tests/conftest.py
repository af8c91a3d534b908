from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from casesync.adapters.sqlalchemy import start_mappers
from casesync.adapters.sqlalchemy.migrations import upgrade_head
from casesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCaseSyncUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.cases import FakeTicketStore, InMemoryCaseSyncDatabase

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyCaseSyncUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyCaseSyncUnitOfWork:
        return SqlAlchemyCaseSyncUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def database() -> InMemoryCaseSyncDatabase:
    return InMemoryCaseSyncDatabase()


@pytest.fixture
def ticket_store() -> FakeTicketStore:
    return FakeTicketStore()
