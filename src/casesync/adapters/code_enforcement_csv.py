"""Parse TrakIT code-enforcement case extracts into case records."""

from __future__ import annotations

import csv
import io
import re
from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING, Final

from casesync.domain.model import CaseRecord

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

log = getLogger(__name__)

CASE_NUMBER_COLUMN: Final[str] = "CASE_NO"
OPENED_COLUMN: Final[str] = "STARTED"
CLOSED_COLUMN: Final[str] = "CLOSED"
CATEGORY_COLUMN: Final[str] = "CaseType"
SUB_CATEGORY_COLUMN: Final[str] = "CaseSubType"
ADDRESS_COLUMNS: Final[tuple[str, str, str, str]] = (
    "SITE_ADDR",
    "SITE_CITY",
    "SITE_STATE",
    "SITE_ZIP",
)

_DATE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_BOM: Final[str] = "\ufeff"


class CaseCsvError(ValueError):
    """Raised when a case extract cannot be read or lacks its key column."""


def parse_trakit_date(value: str | None) -> date | None:
    """Parse ``M/D/YYYY`` with an optional trailing time part.

    Blank or malformed values, including impossible calendar dates, yield ``None``.
    """

    if value is None or not value.strip():
        return None
    date_part = value.strip().split(" ", 1)[0]
    match = _DATE_PATTERN.fullmatch(date_part)
    if match is None:
        log.debug("Ignoring unparseable date %r", value)
        return None
    month, day, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        log.debug("Ignoring invalid calendar date %r", value)
        return None


def build_address(row: Mapping[str, str]) -> str:
    street, city, state, zip_code = (row.get(column, "").strip() for column in ADDRESS_COLUMNS)
    locality = [part for part in (city, state) if part]
    if zip_code and zip_code != "0":
        locality.append(zip_code)

    parts = [street] if street else []
    if locality:
        parts.append(", ".join(locality))
    return ", ".join(parts)


def parse_cases_csv(text: str) -> list[CaseRecord]:
    """Parse the CSV body of a code-enforcement extract.

    Case numbers are passed through untouched; rejecting malformed ones is
    up to the sync run so that they show up in its counters.
    """

    sanitized = text.removeprefix(_BOM).replace("\x00", "")
    reader = csv.DictReader(io.StringIO(sanitized), restval="")
    fieldnames = [name.strip() for name in reader.fieldnames or ()]
    if CASE_NUMBER_COLUMN not in fieldnames:
        raise CaseCsvError(f"Case extract has no {CASE_NUMBER_COLUMN} column")
    reader.fieldnames = fieldnames

    records: list[CaseRecord] = []
    for raw_row in reader:
        row = {
            key: (value or "").strip()
            for key, value in raw_row.items()
            if isinstance(key, str)
        }
        if not any(row.values()):
            continue
        records.append(
            CaseRecord(
                case_id=row.get(CASE_NUMBER_COLUMN, ""),
                opened_date=parse_trakit_date(row.get(OPENED_COLUMN)),
                closed_date=parse_trakit_date(row.get(CLOSED_COLUMN)),
                category=row.get(CATEGORY_COLUMN, ""),
                sub_category=row.get(SUB_CATEGORY_COLUMN, ""),
                address=build_address(row),
                raw_fields=row,
            )
        )

    log.info("Parsed %s case records", len(records))
    return records


def read_cases_csv(path: Path) -> list[CaseRecord]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise CaseCsvError(f"Could not read case extract {path}: {exc}") from exc
    return parse_cases_csv(text)
