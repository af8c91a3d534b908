"""Reusable fakes and helpers for case sync tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal

from casesync.domain.model import CaseRecord, CaseState, SyncRun
from casesync.domain.ports.persistence import PersistenceError
from casesync.domain.ports.tickets import RemoteTicket

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping, Sequence


def make_record(
    case_id: str = "CE24-0001",
    *,
    opened: date | None = date(2024, 1, 15),
    closed: date | None = None,
    category: str = "CODE ENFORCEMENT",
    sub_category: str = "MULTIPLE VIOLATIONS",
    address: str = "100 Main St, Springfield, OR, 97477",
) -> CaseRecord:
    return CaseRecord(
        case_id=case_id,
        opened_date=opened,
        closed_date=closed,
        category=category,
        sub_category=sub_category,
        address=address,
        raw_fields={"CASE_NO": case_id},
    )


def make_ticket(ticket_id: int = 101, **custom_fields: object) -> RemoteTicket:
    return RemoteTicket(id=ticket_id, custom_fields=MappingProxyType(dict(custom_fields)))


class FakeTicketStore:
    """In-memory ticket store recording every call made against it."""

    def __init__(
        self,
        tickets: Iterable[RemoteTicket] = (),
        *,
        search_index: Mapping[str, int] | None = None,
        search_error: Exception | None = None,
        update_errors: Mapping[int, Exception] | None = None,
    ) -> None:
        self.tickets: dict[int, RemoteTicket] = {ticket.id: ticket for ticket in tickets}
        self.search_index: dict[str, int] = dict(search_index or {})
        self.search_error = search_error
        self.update_errors: dict[int, Exception] = dict(update_errors or {})
        self.searches: list[str] = []
        self.lookups: list[int] = []
        self.updates: list[tuple[int, dict[str, str | None]]] = []

    def search_by_identifier(
        self,
        case_id: str,
        *,
        include_closed: bool = True,
        limit: int = 1,
    ) -> list[RemoteTicket]:
        _ = include_closed
        self.searches.append(case_id)
        if self.search_error is not None:
            raise self.search_error
        ticket_id = self.search_index.get(case_id)
        if ticket_id is None or ticket_id not in self.tickets:
            return []
        return [self.tickets[ticket_id]][:limit]

    def get_by_id(self, ticket_id: int) -> RemoteTicket | None:
        self.lookups.append(ticket_id)
        return self.tickets.get(ticket_id)

    def update_fields(self, ticket_id: int, fields: Mapping[str, str | None]) -> None:
        self.updates.append((ticket_id, dict(fields)))
        error = self.update_errors.get(ticket_id)
        if error is not None:
            raise error
        ticket = self.tickets[ticket_id]
        merged = {**ticket.custom_fields, **fields}
        self.tickets[ticket_id] = replace(ticket, custom_fields=MappingProxyType(merged))

    @property
    def remote_calls(self) -> int:
        return len(self.searches) + len(self.lookups) + len(self.updates)


if TYPE_CHECKING:
    from casesync.domain.ports.tickets import TicketStore

    _check_store: TicketStore = FakeTicketStore()


@dataclass
class InMemoryCaseSyncDatabase:
    """Committed state shared by every :class:`FakeCaseSyncUnitOfWork`.

    Writes are staged per unit of work and only become visible on commit.
    """

    states: dict[str, CaseState] = field(default_factory=dict[str, CaseState])
    runs: dict[int, SyncRun] = field(default_factory=dict[int, SyncRun])
    commits: int = 0
    rollbacks: int = 0
    fail_upsert_for: set[str] = field(default_factory=set[str])
    fail_loads: bool = False
    fail_run_updates: bool = False

    def unit_of_work(self) -> FakeCaseSyncUnitOfWork:
        return FakeCaseSyncUnitOfWork(self)

    def latest_run(self) -> SyncRun:
        return self.runs[max(self.runs)]


class FakeCaseStateRepository:
    def __init__(self, database: InMemoryCaseSyncDatabase, staged: dict[str, CaseState]) -> None:
        self._database = database
        self.staged = staged

    def get_many(self, case_ids: Collection[str]) -> dict[str, CaseState]:
        if self._database.fail_loads:
            raise PersistenceError("simulated load failure")
        return {case_id: self.staged[case_id] for case_id in case_ids if case_id in self.staged}

    def upsert(self, states: Sequence[CaseState]) -> None:
        for state in states:
            if state.case_id in self._database.fail_upsert_for:
                raise PersistenceError(f"simulated upsert failure for {state.case_id}")
            existing = self.staged.get(state.case_id)
            if existing is None:
                self.staged[state.case_id] = replace(state)
                continue
            self.staged[state.case_id] = replace(
                state,
                created_at=existing.created_at,
                remote_ticket_id=existing.remote_ticket_id,
            )

    def set_remote_ticket_id(self, case_id: str, ticket_id: int) -> None:
        existing = self.staged.get(case_id)
        if existing is not None:
            self.staged[case_id] = replace(existing, remote_ticket_id=ticket_id)

    def get_remote_ticket_id(self, case_id: str) -> int | None:
        existing = self.staged.get(case_id)
        return existing.remote_ticket_id if existing is not None else None


class FakeSyncRunRepository:
    def __init__(self, database: InMemoryCaseSyncDatabase, staged: dict[int, SyncRun]) -> None:
        self._database = database
        self.staged = staged

    def add(self, run: SyncRun) -> None:
        run.id = max([*self._database.runs, *self.staged], default=0) + 1
        self.staged[run.id] = run

    def get(self, run_id: int) -> SyncRun | None:
        if self._database.fail_run_updates:
            raise PersistenceError("simulated run update failure")
        return self.staged.get(run_id)


@dataclass(slots=True)
class FakeCaseSyncRepositories:
    case_states: FakeCaseStateRepository
    sync_runs: FakeSyncRunRepository


class FakeCaseSyncUnitOfWork:
    """Unit of work staging writes against an :class:`InMemoryCaseSyncDatabase`."""

    def __init__(self, database: InMemoryCaseSyncDatabase) -> None:
        self._database = database
        self.repositories = FakeCaseSyncRepositories(
            case_states=FakeCaseStateRepository(database, dict(database.states)),
            sync_runs=FakeSyncRunRepository(
                database, {run_id: replace(run) for run_id, run in database.runs.items()}
            ),
        )

    def __enter__(self) -> FakeCaseSyncUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self._database.states = dict(self.repositories.case_states.staged)
        self._database.runs = dict(self.repositories.sync_runs.staged)
        self._database.commits += 1

    def rollback(self) -> None:
        self._database.rollbacks += 1


if TYPE_CHECKING:
    from casesync.domain.ports.unit_of_work import CaseSyncUnitOfWork

    _check_uow: CaseSyncUnitOfWork = FakeCaseSyncUnitOfWork(InMemoryCaseSyncDatabase())
