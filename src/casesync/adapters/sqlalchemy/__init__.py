"""SQLAlchemy adapter package for casesync."""

from __future__ import annotations

from .mappings import (
    case_state_table,
    mapper_registry,
    start_mappers,
    sync_run_table,
)
from .repositories import SqlAlchemyCaseStateRepository, SqlAlchemySyncRunRepository
from .unit_of_work import SqlAlchemyCaseSyncUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyCaseStateRepository",
    "SqlAlchemyCaseSyncUnitOfWork",
    "SqlAlchemySyncRunRepository",
    "case_state_table",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
    "sync_run_table",
]
