from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from casesync.domain.change_detection import detect_changes
from casesync.domain.model import CaseState, CaseStatus
from tests.helpers.cases import make_record

if TYPE_CHECKING:
    from collections.abc import Iterable

SEEN_AT = datetime(2025, 1, 1, tzinfo=UTC)


class _Loader:
    def __init__(self, states: dict[str, CaseState]) -> None:
        self.states = states
        self.requests: list[set[str]] = []

    def load_states(self, case_ids: Iterable[str]) -> dict[str, CaseState]:
        requested = set(case_ids)
        self.requests.append(requested)
        return {key: value for key, value in self.states.items() if key in requested}


def test_unknown_case_is_reported_as_new() -> None:
    record = make_record("CE24-0001")

    changes = detect_changes([record], _Loader({}))

    assert len(changes) == 1
    change = changes[0]
    assert change.is_new
    assert change.kind == "NEW"
    assert change.previous_fingerprint is None
    assert change.new_fingerprint == record.fingerprint


def test_unchanged_case_produces_no_change() -> None:
    record = make_record("CE24-0001")
    loader = _Loader({"CE24-0001": CaseState.from_record(record, seen_at=SEEN_AT)})

    assert detect_changes([record], loader) == []


def test_edits_outside_the_fingerprint_are_not_changes() -> None:
    stored = make_record("CE24-0001", address="old address")
    loader = _Loader({"CE24-0001": CaseState.from_record(stored, seen_at=SEEN_AT)})

    assert detect_changes([make_record("CE24-0001", address="new address")], loader) == []


def test_updated_case_carries_previous_state() -> None:
    stored = CaseState.from_record(make_record("CE24-0001"), seen_at=SEEN_AT)
    stored.remote_ticket_id = 77
    incoming = make_record("CE24-0001", closed=date(2025, 2, 1))

    changes = detect_changes([incoming], _Loader({"CE24-0001": stored}))

    assert len(changes) == 1
    change = changes[0]
    assert not change.is_new
    assert change.kind == "UPDATED"
    assert change.previous_fingerprint == stored.fingerprint
    assert change.previous_opened_date == date(2024, 1, 15)
    assert change.previous_closed_date is None
    assert change.previous_status is CaseStatus.OPEN
    assert change.remote_ticket_id == 77
    assert change.record is incoming


def test_batch_is_deduplicated_and_loaded_in_one_call() -> None:
    loader = _Loader({})
    records = [
        make_record("CE24-0001"),
        make_record("CE24-0002"),
        make_record("CE24-0001", closed=date(2025, 2, 1)),
    ]

    changes = detect_changes(records, loader)

    assert [change.case_id for change in changes] == ["CE24-0001", "CE24-0002"]
    assert changes[0].record.closed_date == date(2025, 2, 1)
    assert loader.requests == [{"CE24-0001", "CE24-0002"}]


def test_empty_batch_skips_the_store() -> None:
    loader = _Loader({})

    assert detect_changes([], loader) == []
    assert loader.requests == []
