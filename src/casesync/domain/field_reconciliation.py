"""Minimal custom-field updates for a matched ticket."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING, Final

from casesync.domain.model import derive_status, format_date

if TYPE_CHECKING:
    from casesync.domain.model import CaseStateChange
    from casesync.domain.ports.tickets import RemoteTicket

log = getLogger(__name__)

CASE_NUMBER_FIELD: Final[str] = "cc_case_number"
OPENED_FIELD: Final[str] = "cc_case_opened"
CLOSED_FIELD: Final[str] = "case_close_date"
STATUS_FIELD: Final[str] = "last_case_status"


def normalize_field_value(value: object) -> str | None:
    """Map missing, ``None`` and blank values to ``None``; dates to ``YYYY-MM-DD``."""

    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class FieldChange:
    name: str
    current: str | None
    desired: str | None

    def describe(self) -> str:
        return f"{self.name}: {self.current or 'null'} -> {self.desired or 'null'}"


@dataclass(frozen=True, slots=True)
class UpdatePayload:
    changes: tuple[FieldChange, ...]

    @property
    def fields(self) -> dict[str, str | None]:
        return {change.name: change.desired for change in self.changes}

    def describe(self) -> str:
        return ", ".join(change.describe() for change in self.changes)


def diff_fields(change: CaseStateChange, ticket: RemoteTicket) -> UpdatePayload | None:
    """Compare the ticket's custom fields with the values the record implies.

    An empty desired opened date is never written. Closed date and status are
    written even when the desired value clears the field.
    """

    record = change.record
    desired = {
        OPENED_FIELD: format_date(record.opened_date),
        CLOSED_FIELD: format_date(record.closed_date),
        STATUS_FIELD: derive_status(record.opened_date, record.closed_date).value,
    }

    changes: list[FieldChange] = []
    for name, wanted in desired.items():
        current = normalize_field_value(ticket.custom_fields.get(name))
        if current == wanted:
            continue
        if name == OPENED_FIELD and wanted is None:
            log.debug(
                "Ticket #%s has %s=%s but case %s has no opened date; leaving it",
                ticket.id,
                name,
                current,
                change.case_id,
            )
            continue
        changes.append(FieldChange(name=name, current=current, desired=wanted))

    if not changes:
        return None
    return UpdatePayload(changes=tuple(changes))
