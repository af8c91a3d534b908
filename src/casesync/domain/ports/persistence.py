"""Ports for persisting case state and run audit records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from casesync.domain.model import CaseState, SyncRun


class PersistenceError(RuntimeError):
    """Raised by storage adapters when a read or write against the state store fails."""


@runtime_checkable
class CaseStateRepository(Protocol):
    """Persistence contract for per-case state rows."""

    def get_many(self, case_ids: Collection[str]) -> dict[str, CaseState]: ...

    def upsert(self, states: Sequence[CaseState]) -> None:
        """Insert new rows or overwrite every mutable field of existing ones.

        ``created_at`` and ``remote_ticket_id`` of existing rows are preserved.
        """
        ...

    def set_remote_ticket_id(self, case_id: str, ticket_id: int) -> None: ...

    def get_remote_ticket_id(self, case_id: str) -> int | None: ...


@runtime_checkable
class SyncRunRepository(Protocol):
    """Persistence contract for run audit records."""

    def add(self, run: SyncRun) -> None: ...

    def get(self, run_id: int) -> SyncRun | None: ...
