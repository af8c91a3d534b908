"""Durable last-known state per case, backed by a unit-of-work factory."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from math import ceil
from typing import TYPE_CHECKING, Any

from casesync.domain.batching import chunked, deduplicate_records
from casesync.domain.model import CASES_SYNC_TYPE, CaseState, SyncRun
from casesync.domain.ports.persistence import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from casesync.domain.model import CaseRecord
    from casesync.domain.ports.unit_of_work import CaseSyncUnitOfWork

log = getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class CaseStateStore:
    """Read and write case state rows and run audit records.

    Every operation opens its own unit of work. Bulk upserts commit one
    transaction per chunk: a failing chunk aborts the rest of the batch and
    propagates, while the chunks written before it stay committed.
    """

    def __init__(
        self,
        unit_of_work_factory: Callable[[], CaseSyncUnitOfWork],
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")
        self._uow_factory = unit_of_work_factory
        self._chunk_size = chunk_size
        self._clock = clock

    def load_states(self, case_ids: Iterable[str]) -> dict[str, CaseState]:
        unique_ids = set(case_ids)
        if not unique_ids:
            return {}
        with self._uow_factory() as uow:
            return uow.repositories.case_states.get_many(unique_ids)

    def upsert_batch(self, records: Sequence[CaseRecord]) -> int:
        """Persist ``records`` as the new baseline and return the number of rows written."""

        unique_records = deduplicate_records(records)
        if not unique_records:
            return 0
        if len(unique_records) != len(records):
            log.info(
                "Deduplicated %s -> %s case records (%s duplicates)",
                len(records),
                len(unique_records),
                len(records) - len(unique_records),
            )

        seen_at = self._clock()
        states = [CaseState.from_record(record, seen_at=seen_at) for record in unique_records]
        total_chunks = ceil(len(states) / self._chunk_size)
        log.info("Upserting %s case records in %s chunks", len(states), total_chunks)

        for index, chunk in enumerate(chunked(states, self._chunk_size), start=1):
            with self._uow_factory() as uow:
                uow.repositories.case_states.upsert(chunk)
                uow.commit()
            log.debug("Committed case state chunk %s/%s (%s rows)", index, total_chunks, len(chunk))

        log.info("Upserted %s case records", len(states))
        return len(states)

    def link_remote_ticket(self, case_id: str, ticket_id: int) -> None:
        with self._uow_factory() as uow:
            uow.repositories.case_states.set_remote_ticket_id(case_id, ticket_id)
            uow.commit()

    def get_linked_remote_ticket(self, case_id: str) -> int | None:
        with self._uow_factory() as uow:
            return uow.repositories.case_states.get_remote_ticket_id(case_id)

    def start_run(
        self,
        *,
        sync_type: str = CASES_SYNC_TYPE,
        details: Mapping[str, Any] | None = None,
    ) -> int:
        run = SyncRun(sync_type=sync_type, started_at=self._clock(), details=dict(details or {}))
        with self._uow_factory() as uow:
            uow.repositories.sync_runs.add(run)
            uow.commit()
        if run.id is None:
            raise PersistenceError("Sync run was stored without an id")
        return run.id

    def finish_run(
        self,
        run_id: int,
        *,
        total_records: int,
        changed_records: int,
        error_count: int,
        error_message: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> SyncRun:
        with self._uow_factory() as uow:
            run = uow.repositories.sync_runs.get(run_id)
            if run is None:
                raise PersistenceError(f"Sync run {run_id} does not exist")
            run.completed_at = self._clock()
            run.total_records = total_records
            run.changed_records = changed_records
            run.error_count = error_count
            run.error_message = error_message
            if details:
                run.details = {**run.details, **details}
            uow.commit()
        return run
