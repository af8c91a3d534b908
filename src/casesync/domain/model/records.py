"""Incoming case observations and the pure functions derived from them."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date

type ContentFingerprint = str

CASE_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Z]{2}\d{2}-\d+$")
FINGERPRINT_LENGTH: Final[int] = 16


class CaseStatus(StrEnum):
    OPEN = "open"
    CLOSED = "closed"


def _frozen_fields(fields: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(fields or {}))


@dataclass(frozen=True, slots=True, kw_only=True)
class CaseRecord:
    """One parsed row of a code-enforcement snapshot.

    ``raw_fields`` keeps the source row verbatim for storage and audit; it never
    influences change detection.
    """

    case_id: str
    opened_date: date | None = None
    closed_date: date | None = None
    category: str = ""
    sub_category: str = ""
    address: str = ""
    raw_fields: Mapping[str, str] = field(default_factory=_frozen_fields)

    def __post_init__(self) -> None:
        if not isinstance(self.raw_fields, MappingProxyType):
            object.__setattr__(self, "raw_fields", _frozen_fields(self.raw_fields))

    @property
    def status(self) -> CaseStatus:
        return derive_status(self.opened_date, self.closed_date)

    @property
    def fingerprint(self) -> ContentFingerprint:
        return fingerprint(self)


def derive_status(opened: date | None, closed: date | None) -> CaseStatus:
    """Closed only when both dates are known, open otherwise."""

    if opened is not None and closed is not None:
        return CaseStatus.CLOSED
    return CaseStatus.OPEN


def format_date(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def fingerprint(record: CaseRecord) -> ContentFingerprint:
    """Stable digest over identity and both dates."""

    content = "|".join(
        (
            record.case_id,
            format_date(record.opened_date) or "",
            format_date(record.closed_date) or "",
        )
    )
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def validate_case_id(case_id: str) -> bool:
    return bool(CASE_ID_PATTERN.fullmatch(case_id))
