"""Batch shaping helpers shared by the state store and the change detector."""

from __future__ import annotations

from itertools import islice
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from casesync.domain.model import CaseRecord


def chunked[T](items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive groups of at most ``size`` items."""

    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


def deduplicate_records(records: Iterable[CaseRecord]) -> list[CaseRecord]:
    """Collapse a batch to one record per case id, the last occurrence winning.

    Output order follows the first appearance of each case id.
    """

    latest: dict[str, CaseRecord] = {}
    for record in records:
        latest[record.case_id] = record
    return list(latest.values())
