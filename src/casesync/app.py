"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from casesync.adapters.code_enforcement_csv import read_cases_csv
from casesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCaseSyncUnitOfWork,
    is_started,
    startup,
)
from casesync.adapters.threefold import ThreefoldClient
from casesync.config import get_sync_config, get_threefold_config
from casesync.domain.case_sync import CaseSyncOrchestrator
from casesync.domain.matching import RemoteMatcher, SearchCapability
from casesync.domain.ports.unit_of_work import CaseSyncUnitOfWork
from casesync.domain.state_store import CaseStateStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from casesync.domain.case_sync import SyncSummary
    from casesync.domain.model import CaseRecord
    from casesync.domain.ports.tickets import TicketStore

UnitOfWorkFactory = Callable[[], CaseSyncUnitOfWork]

log = getLogger(__name__)

# shared by every run in this process; a 405 from search disables it for good
SEARCH_CAPABILITY = SearchCapability()


def initialise_database(*, database_uri: str | None = None) -> None:
    """Start the SQLAlchemy adapter and migrate the schema, once per process."""

    if is_started():
        return
    startup(database_uri=database_uri)


def sync_code_enforcement_cases(
    records: Sequence[CaseRecord],
    *,
    tickets: TicketStore | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    updates_enabled: bool | None = None,
    chunk_size: int | None = None,
    capability: SearchCapability | None = None,
) -> SyncSummary:
    """Reconcile a snapshot of case records using the configured adapters.

    Arguments left as ``None`` fall back to the environment configuration.
    """

    sync_config = get_sync_config()
    effective_updates = sync_config.updates_enabled if updates_enabled is None else updates_enabled
    effective_chunk_size = chunk_size or sync_config.case_state_chunk_size

    if unit_of_work_factory is None:
        initialise_database()
        unit_of_work_factory = SqlAlchemyCaseSyncUnitOfWork
    effective_tickets = tickets or ThreefoldClient(config=get_threefold_config())
    effective_capability = capability or SEARCH_CAPABILITY

    log.info(
        "Starting case sync: records=%s, updates_enabled=%s, chunk_size=%s",
        len(records),
        effective_updates,
        effective_chunk_size,
    )

    orchestrator = CaseSyncOrchestrator(
        store=CaseStateStore(unit_of_work_factory, chunk_size=effective_chunk_size),
        matcher=RemoteMatcher(effective_tickets, effective_capability),
        tickets=effective_tickets,
        updates_enabled=effective_updates,
    )
    summary = orchestrator.run(records)

    log.info(
        "Finished case sync %s: changes=%s, updated=%s, not_found=%s, errors=%s",
        summary.run_id,
        summary.changes,
        summary.updated,
        summary.not_found,
        summary.errors,
    )
    return summary


def sync_code_enforcement_csv(
    path: Path,
    *,
    tickets: TicketStore | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    updates_enabled: bool | None = None,
    chunk_size: int | None = None,
    capability: SearchCapability | None = None,
) -> SyncSummary:
    """Parse a TrakIT case extract and reconcile it."""

    records = read_cases_csv(path)
    log.info("Loaded %s case records from %s", len(records), path)
    return sync_code_enforcement_cases(
        records,
        tickets=tickets,
        unit_of_work_factory=unit_of_work_factory,
        updates_enabled=updates_enabled,
        chunk_size=chunk_size,
        capability=capability,
    )
