"""Port for the remote ticket store the cases are reconciled against."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


class TicketStoreError(RuntimeError):
    """Raised when the ticket store rejects or fails a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CapabilityUnavailableError(TicketStoreError):
    """Raised when the remote deployment does not support an operation at all."""


@dataclass(frozen=True, slots=True, kw_only=True)
class RemoteTicket:
    """Ticket as seen by the reconciliation core: an id plus its custom fields."""

    id: int
    custom_fields: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    short_id: str | None = None
    title: str | None = None
    status_name: str | None = None


@runtime_checkable
class TicketStore(Protocol):
    def search_by_identifier(
        self,
        case_id: str,
        *,
        include_closed: bool = True,
        limit: int = 1,
    ) -> list[RemoteTicket]: ...

    def get_by_id(self, ticket_id: int) -> RemoteTicket | None: ...

    def update_fields(self, ticket_id: int, fields: Mapping[str, str | None]) -> None: ...
