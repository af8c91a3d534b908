"""Audit record for one reconciliation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

CASES_SYNC_TYPE = "cases"


@dataclass(eq=False, kw_only=True)
class SyncRun:
    sync_type: str = CASES_SYNC_TYPE
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    completed_at: datetime | None = None
    total_records: int = 0
    changed_records: int = 0
    error_count: int = 0
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any])
    id: int | None = None

    @property
    def is_open(self) -> bool:
        return self.completed_at is None
