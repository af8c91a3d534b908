"""Drive one reconciliation run of a case snapshot against the ticket store."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from casesync.domain.batching import deduplicate_records
from casesync.domain.change_detection import detect_changes
from casesync.domain.field_reconciliation import diff_fields
from casesync.domain.model import validate_case_id
from casesync.domain.ports.persistence import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from casesync.domain.matching import RemoteMatcher
    from casesync.domain.model import CaseRecord, CaseStateChange
    from casesync.domain.ports.tickets import TicketStore
    from casesync.domain.state_store import CaseStateStore

log = getLogger(__name__)

_RULE = "=" * 60


class RunPhase(StrEnum):
    STARTED = "started"
    DETECTING = "detecting"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"


class CaseOutcome(StrEnum):
    UPDATED = "updated"
    NOT_FOUND = "not_found"
    ALREADY_CURRENT = "already_current"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(slots=True)
class SyncSummary:
    """Counters for one run.

    Every change ends up in exactly one outcome bucket; every accepted unique
    record is either a change or ``unchanged``.
    """

    run_id: int | None = None
    phase: RunPhase = RunPhase.STARTED
    dry_run: bool = False
    received: int = 0
    rejected: int = 0
    unique: int = 0
    unchanged: int = 0
    new_cases: int = 0
    changed_cases: int = 0
    outcomes: dict[CaseOutcome, int] = field(
        default_factory=lambda: dict.fromkeys(CaseOutcome, 0)
    )
    persisted: int = 0
    duration_seconds: float = 0.0
    error_message: str | None = None

    @property
    def changes(self) -> int:
        return self.new_cases + self.changed_cases

    @property
    def processed(self) -> int:
        return sum(self.outcomes.values())

    @property
    def updated(self) -> int:
        return self.outcomes[CaseOutcome.UPDATED]

    @property
    def not_found(self) -> int:
        return self.outcomes[CaseOutcome.NOT_FOUND]

    @property
    def already_current(self) -> int:
        return self.outcomes[CaseOutcome.ALREADY_CURRENT]

    @property
    def skipped(self) -> int:
        return self.outcomes[CaseOutcome.SKIPPED]

    @property
    def errors(self) -> int:
        return self.outcomes[CaseOutcome.ERROR]

    def record(self, outcome: CaseOutcome) -> None:
        self.outcomes[outcome] += 1

    def as_details(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "dry_run": self.dry_run,
            "received": self.received,
            "rejected": self.rejected,
            "unique": self.unique,
            "unchanged": self.unchanged,
            "new_cases": self.new_cases,
            "changed_cases": self.changed_cases,
            "processed": self.processed,
            **{outcome.value: count for outcome, count in self.outcomes.items()},
            "persisted": self.persisted,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass(slots=True)
class CaseSyncOrchestrator:
    """Run change detection, ticket reconciliation and state persistence.

    Phases: ``STARTED -> DETECTING -> [RECONCILING] -> PERSISTING -> COMPLETE``.
    A :class:`PersistenceError` anywhere moves the run to ``FAILED`` and is
    re-raised after the run record is finalized. Ticket store failures for a
    single case are counted and the loop moves on.
    """

    store: CaseStateStore
    matcher: RemoteMatcher
    tickets: TicketStore
    updates_enabled: bool = True
    timer: Callable[[], float] = time.monotonic

    def run(self, records: Sequence[CaseRecord]) -> SyncSummary:
        summary = SyncSummary(received=len(records), dry_run=not self.updates_enabled)
        summary.run_id = self.store.start_run(details={"dry_run": summary.dry_run})
        started = self.timer()

        log.info(_RULE)
        log.info("Starting case sync %s for %s records", summary.run_id, len(records))
        log.info(_RULE)

        try:
            accepted = self._accept_valid(records, summary)
            unique_records = deduplicate_records(accepted)
            summary.unique = len(unique_records)

            self._enter(summary, RunPhase.DETECTING)
            changes = detect_changes(unique_records, self.store)
            summary.new_cases = sum(1 for change in changes if change.is_new)
            summary.changed_cases = len(changes) - summary.new_cases
            summary.unchanged = summary.unique - len(changes)
            log.info(
                "Found %s changes out of %s records (new: %s, updated: %s)",
                len(changes),
                summary.unique,
                summary.new_cases,
                summary.changed_cases,
            )

            # links found for new cases wait until their rows exist
            deferred_links: dict[str, int] = {}
            if changes:
                self._enter(summary, RunPhase.RECONCILING)
                self._reconcile_all(changes, summary, deferred_links)
            else:
                log.info("No changes detected, skipping ticket updates")

            self._enter(summary, RunPhase.PERSISTING)
            summary.persisted = self.store.upsert_batch(unique_records)
            for case_id, ticket_id in deferred_links.items():
                self.store.link_remote_ticket(case_id, ticket_id)
        except Exception as exc:
            summary.duration_seconds = self.timer() - started
            summary.error_message = str(exc) or type(exc).__name__
            self._enter(summary, RunPhase.FAILED)
            log.exception("Fatal error during case sync %s", summary.run_id)
            self._finish_failed(summary)
            raise

        summary.duration_seconds = self.timer() - started
        self._enter(summary, RunPhase.COMPLETE)
        self._finish(summary)
        self._log_summary(summary)
        return summary

    def _accept_valid(
        self, records: Sequence[CaseRecord], summary: SyncSummary
    ) -> list[CaseRecord]:
        accepted: list[CaseRecord] = []
        for record in records:
            if validate_case_id(record.case_id):
                accepted.append(record)
                continue
            log.info("Skipping invalid case number: %r", record.case_id)
            summary.rejected += 1
        if summary.rejected:
            log.info("Rejected %s records with invalid case numbers", summary.rejected)
        return accepted

    def _reconcile_all(
        self,
        changes: Sequence[CaseStateChange],
        summary: SyncSummary,
        deferred_links: dict[str, int],
    ) -> None:
        total = len(changes)
        for index, change in enumerate(changes, start=1):
            progress = f"[{round(index / total * 100)}%]"
            summary.record(self._reconcile(change, deferred_links, progress=progress))

    def _reconcile(
        self,
        change: CaseStateChange,
        deferred_links: dict[str, int],
        *,
        progress: str,
    ) -> CaseOutcome:
        if not self.updates_enabled:
            log.info("%s DRY RUN: would process %s case %s", progress, change.kind, change.case_id)
            return CaseOutcome.SKIPPED

        try:
            match = self.matcher.resolve(change)
            ticket = match.ticket
            if ticket is None:
                log.info(
                    "%s No ticket found for %s case %s (%s)",
                    progress,
                    change.kind,
                    change.case_id,
                    match.outcome,
                )
                return CaseOutcome.NOT_FOUND

            payload = diff_fields(change, ticket)
            if payload is None:
                log.info(
                    "%s No diff for %s case %s (ticket #%s), already up to date",
                    progress,
                    change.kind,
                    change.case_id,
                    ticket.id,
                )
                self._link(change, ticket.id, deferred_links)
                return CaseOutcome.ALREADY_CURRENT

            log.info(
                "%s Updating %s case %s (ticket #%s): %s",
                progress,
                change.kind,
                change.case_id,
                ticket.id,
                payload.describe(),
            )
            self.tickets.update_fields(ticket.id, payload.fields)
            self._link(change, ticket.id, deferred_links)
        except PersistenceError:
            raise
        except Exception:
            log.exception("Error processing case %s", change.case_id)
            return CaseOutcome.ERROR
        return CaseOutcome.UPDATED

    def _link(
        self, change: CaseStateChange, ticket_id: int, deferred_links: dict[str, int]
    ) -> None:
        if change.is_new:
            deferred_links[change.case_id] = ticket_id
            return
        if change.remote_ticket_id != ticket_id:
            self.store.link_remote_ticket(change.case_id, ticket_id)

    def _enter(self, summary: SyncSummary, phase: RunPhase) -> None:
        log.debug("Case sync %s: %s -> %s", summary.run_id, summary.phase, phase)
        summary.phase = phase

    def _finish(self, summary: SyncSummary, *, fatal: bool = False) -> None:
        """Close the run row; ``changed_records`` counts tickets actually updated."""

        if summary.run_id is None:
            return
        self.store.finish_run(
            summary.run_id,
            total_records=summary.received,
            changed_records=0 if fatal else summary.updated,
            error_count=1 if fatal else summary.errors,
            error_message=summary.error_message,
            details=summary.as_details(),
        )

    def _finish_failed(self, summary: SyncSummary) -> None:
        try:
            self._finish(summary, fatal=True)
        except PersistenceError:
            log.exception("Could not record failure of case sync %s", summary.run_id)

    def _log_summary(self, summary: SyncSummary) -> None:
        log.info("-" * 60)
        log.info("Case sync %s complete in %.1fs", summary.run_id, summary.duration_seconds)
        if summary.dry_run:
            log.info("  - Dry run: ticket updates disabled (%s skipped)", summary.skipped)
        log.info("  - Processed: %s changes", summary.processed)
        log.info("  - Updated tickets: %s", summary.updated)
        log.info("  - No ticket found: %s", summary.not_found)
        log.info("  - Already up to date: %s", summary.already_current)
        log.info("  - Errors: %s", summary.errors)
        log.info("  - Rejected records: %s", summary.rejected)
        log.info(_RULE)
