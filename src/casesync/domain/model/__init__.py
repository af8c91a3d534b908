"""Domain model for case reconciliation."""

from __future__ import annotations

from .records import (
    CASE_ID_PATTERN,
    CaseRecord,
    CaseStatus,
    ContentFingerprint,
    derive_status,
    fingerprint,
    format_date,
    validate_case_id,
)
from .state import CaseState, CaseStateChange
from .sync_run import CASES_SYNC_TYPE, SyncRun

__all__ = [
    "CASES_SYNC_TYPE",
    "CASE_ID_PATTERN",
    "CaseRecord",
    "CaseState",
    "CaseStateChange",
    "CaseStatus",
    "ContentFingerprint",
    "SyncRun",
    "derive_status",
    "fingerprint",
    "format_date",
    "validate_case_id",
]
