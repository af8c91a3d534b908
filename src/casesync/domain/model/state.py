"""Persisted per-case state and the change records derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .records import CaseStatus, derive_status, fingerprint

if TYPE_CHECKING:
    from datetime import date

    from .records import CaseRecord, ContentFingerprint


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class CaseState:
    """Last observed snapshot of a case, one row per ``case_id``.

    ``status`` and ``fingerprint`` are always recomputed from the record in
    :meth:`from_record`; they are stored only so later runs can diff cheaply.
    """

    case_id: str
    opened_date: date | None = None
    closed_date: date | None = None
    status: CaseStatus = CaseStatus.OPEN
    category: str = ""
    sub_category: str = ""
    address: str = ""
    raw_fields: dict[str, Any] = field(default_factory=dict[str, Any])
    fingerprint: str = ""
    remote_ticket_id: int | None = None
    last_seen_at: datetime = field(default_factory=_utcnow)
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_record(cls, record: CaseRecord, *, seen_at: datetime) -> CaseState:
        return cls(
            case_id=record.case_id,
            opened_date=record.opened_date,
            closed_date=record.closed_date,
            status=derive_status(record.opened_date, record.closed_date),
            category=record.category,
            sub_category=record.sub_category,
            address=record.address,
            raw_fields=dict(record.raw_fields),
            fingerprint=fingerprint(record),
            last_seen_at=seen_at,
            created_at=seen_at,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class CaseStateChange:
    """A record carrying new information compared to the stored state."""

    case_id: str
    record: CaseRecord
    new_fingerprint: ContentFingerprint
    is_new: bool
    previous_fingerprint: ContentFingerprint | None = None
    previous_opened_date: date | None = None
    previous_closed_date: date | None = None
    previous_status: CaseStatus | None = None
    remote_ticket_id: int | None = None

    @classmethod
    def new(cls, record: CaseRecord, *, new_fingerprint: ContentFingerprint) -> CaseStateChange:
        return cls(
            case_id=record.case_id,
            record=record,
            new_fingerprint=new_fingerprint,
            is_new=True,
        )

    @classmethod
    def updated(
        cls,
        record: CaseRecord,
        *,
        previous: CaseState,
        new_fingerprint: ContentFingerprint,
    ) -> CaseStateChange:
        return cls(
            case_id=record.case_id,
            record=record,
            new_fingerprint=new_fingerprint,
            is_new=False,
            previous_fingerprint=previous.fingerprint,
            previous_opened_date=previous.opened_date,
            previous_closed_date=previous.closed_date,
            previous_status=previous.status,
            remote_ticket_id=previous.remote_ticket_id,
        )

    @property
    def kind(self) -> str:
        return "NEW" if self.is_new else "UPDATED"
