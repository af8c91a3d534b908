from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from casesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCaseSyncUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from casesync.domain.model import CaseState
from tests.helpers.cases import make_record

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyCaseSyncUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_migrates_schema() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine)

    tables = set(inspect(engine).get_table_names())
    assert {"case_state", "sync_run", "alembic_version"} <= tables


def test_repositories_require_an_open_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyCaseSyncUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_persists_case_state(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    state = CaseState.from_record(make_record(), seen_at=datetime(2025, 1, 1, tzinfo=UTC))

    with SqlAlchemyCaseSyncUnitOfWork() as uow:
        uow.repositories.case_states.upsert([state])
        uow.commit()

    with SqlAlchemyCaseSyncUnitOfWork() as uow:
        loaded = uow.repositories.case_states.get_many(["CE24-0001"])

    assert loaded["CE24-0001"].fingerprint == state.fingerprint


def test_shutdown_resets_state(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    shutdown()

    assert configured_engine() is None
    assert not is_started()
