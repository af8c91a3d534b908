"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from casesync.adapters.sqlalchemy.mappings import case_state_table
from casesync.domain.batching import chunked
from casesync.domain.model import CaseState, SyncRun
from casesync.domain.ports.persistence import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator, Sequence

    from sqlalchemy.orm import Session

# columns overwritten when an existing case is observed again
UPSERT_COLUMNS: Final[tuple[str, ...]] = (
    "opened_date",
    "closed_date",
    "status",
    "category",
    "sub_category",
    "address",
    "raw_fields",
    "fingerprint",
    "last_seen_at",
)
_LOOKUP_CHUNK_SIZE: Final[int] = 500


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise driver and ORM failures as :class:`PersistenceError`."""

    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to {action}: {exc}") from exc


def _state_row(state: CaseState) -> dict[str, Any]:
    return {
        "case_id": state.case_id,
        "opened_date": state.opened_date,
        "closed_date": state.closed_date,
        "status": state.status,
        "category": state.category,
        "sub_category": state.sub_category,
        "address": state.address,
        "raw_fields": state.raw_fields,
        "fingerprint": state.fingerprint,
        "remote_ticket_id": state.remote_ticket_id,
        "last_seen_at": state.last_seen_at,
        "created_at": state.created_at,
    }


class SqlAlchemyCaseStateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_many(self, case_ids: Collection[str]) -> dict[str, CaseState]:
        states: dict[str, CaseState] = {}
        with storage_errors("load case states"):
            for chunk in chunked(sorted(case_ids), _LOOKUP_CHUNK_SIZE):
                stmt = select(CaseState).where(case_state_table.c.case_id.in_(chunk))
                for state in self.session.execute(stmt).scalars():
                    states[state.case_id] = state
        return states

    def upsert(self, states: Sequence[CaseState]) -> None:
        if not states:
            return
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            stmt = sqlite.insert(case_state_table)
            stmt = stmt.on_conflict_do_update(
                index_elements=[case_state_table.c.case_id],
                set_={name: stmt.excluded[name] for name in UPSERT_COLUMNS},
            )
        elif dialect == "postgresql":
            stmt = postgresql.insert(case_state_table)
            stmt = stmt.on_conflict_do_update(
                index_elements=[case_state_table.c.case_id],
                set_={name: stmt.excluded[name] for name in UPSERT_COLUMNS},
            )
        else:
            raise PersistenceError(f"Case state upsert is not supported on {dialect!r}")

        with storage_errors(f"upsert {len(states)} case states"):
            self.session.execute(stmt, [_state_row(state) for state in states])

    def set_remote_ticket_id(self, case_id: str, ticket_id: int) -> None:
        stmt = (
            update(case_state_table)
            .where(case_state_table.c.case_id == case_id)
            .values(remote_ticket_id=ticket_id)
        )
        with storage_errors(f"link case {case_id} to ticket #{ticket_id}"):
            self.session.execute(stmt)

    def get_remote_ticket_id(self, case_id: str) -> int | None:
        stmt = select(case_state_table.c.remote_ticket_id).where(
            case_state_table.c.case_id == case_id
        )
        with storage_errors(f"read ticket link of case {case_id}"):
            return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemySyncRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, run: SyncRun) -> None:
        with storage_errors("record sync run"):
            self.session.add(run)
            self.session.flush()

    def get(self, run_id: int) -> SyncRun | None:
        with storage_errors(f"load sync run {run_id}"):
            return self.session.get(SyncRun, run_id)


if TYPE_CHECKING:
    from casesync.domain.ports.persistence import CaseStateRepository, SyncRunRepository

    _case_state_check: CaseStateRepository = SqlAlchemyCaseStateRepository(...)  # pyright: ignore[reportArgumentType]
    _sync_run_check: SyncRunRepository = SqlAlchemySyncRunRepository(...)  # pyright: ignore[reportArgumentType]
