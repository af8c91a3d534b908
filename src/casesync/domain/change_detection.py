"""Classify an incoming batch against stored state."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from casesync.domain.batching import deduplicate_records
from casesync.domain.model import CaseStateChange, fingerprint

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from casesync.domain.model import CaseRecord, CaseState

log = getLogger(__name__)


class CaseStateLoader(Protocol):
    def load_states(self, case_ids: Iterable[str]) -> dict[str, CaseState]: ...


def detect_changes(records: Sequence[CaseRecord], store: CaseStateLoader) -> list[CaseStateChange]:
    """Return one change per case whose identity or dates differ from the stored state.

    Records with a matching fingerprint produce nothing here; edits to fields
    outside the fingerprint are picked up by the next upsert without being
    reported.
    """

    unique_records = deduplicate_records(records)
    if not unique_records:
        return []

    current = store.load_states(record.case_id for record in unique_records)

    changes: list[CaseStateChange] = []
    for record in unique_records:
        new_fingerprint = fingerprint(record)
        existing = current.get(record.case_id)
        if existing is None:
            changes.append(CaseStateChange.new(record, new_fingerprint=new_fingerprint))
        elif existing.fingerprint != new_fingerprint:
            changes.append(
                CaseStateChange.updated(
                    record,
                    previous=existing,
                    new_fingerprint=new_fingerprint,
                )
            )

    log.debug(
        "Detected %s changes among %s unique records (%s already stored)",
        len(changes),
        len(unique_records),
        len(current),
    )
    return changes
