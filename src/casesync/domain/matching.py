"""Resolve a case to its remote ticket: cached link first, search second."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from casesync.domain.ports.tickets import CapabilityUnavailableError

if TYPE_CHECKING:
    from casesync.domain.model import CaseStateChange
    from casesync.domain.ports.tickets import RemoteTicket, TicketStore

log = getLogger(__name__)


class SearchCapability:
    """Process-wide record of whether the ticket store supports search.

    Created once by the composition root and shared by every matcher. Once
    disabled it stays disabled for the lifetime of the object.
    """

    def __init__(self, *, available: bool = True) -> None:
        self._available = available
        self._reason: str | None = None if available else "disabled at construction"

    @property
    def available(self) -> bool:
        return self._available

    @property
    def reason(self) -> str | None:
        return self._reason

    def disable(self, reason: str) -> None:
        if not self._available:
            return
        self._available = False
        self._reason = reason
        log.warning("Ticket search not available (%s), disabling search for this process", reason)


class MatchOutcome(StrEnum):
    FOUND_VIA_CACHE = "found_via_cache"
    FOUND_VIA_SEARCH = "found_via_search"
    NOT_FOUND = "not_found"
    SEARCH_DISABLED = "search_disabled"


@dataclass(frozen=True, slots=True)
class MatchResult:
    outcome: MatchOutcome
    ticket: RemoteTicket | None = None
    stale_ticket_id: int | None = None

    @property
    def found(self) -> bool:
        return self.ticket is not None


class RemoteMatcher:
    """Two-step ticket resolution.

    1. A cached ticket id is fetched directly. A missing ticket marks the link
       stale and falls through to step 2.
    2. The ticket store is searched by case id, closed tickets included, one
       result at most. A store that reports search as unsupported disables the
       shared :class:`SearchCapability`; later calls return ``SEARCH_DISABLED``
       without touching the store.

    Any other ticket store error propagates to the caller.
    """

    def __init__(self, tickets: TicketStore, capability: SearchCapability) -> None:
        self._tickets = tickets
        self._capability = capability

    def resolve(self, change: CaseStateChange) -> MatchResult:
        stale_ticket_id: int | None = None
        if change.remote_ticket_id is not None:
            ticket = self._tickets.get_by_id(change.remote_ticket_id)
            if ticket is not None:
                return MatchResult(MatchOutcome.FOUND_VIA_CACHE, ticket)
            log.info(
                "Cached ticket #%s for case %s not found, searching by case number",
                change.remote_ticket_id,
                change.case_id,
            )
            stale_ticket_id = change.remote_ticket_id
        return self._search(change.case_id, stale_ticket_id=stale_ticket_id)

    def _search(self, case_id: str, *, stale_ticket_id: int | None) -> MatchResult:
        if not self._capability.available:
            return MatchResult(MatchOutcome.SEARCH_DISABLED, stale_ticket_id=stale_ticket_id)

        try:
            tickets = self._tickets.search_by_identifier(case_id, include_closed=True, limit=1)
        except CapabilityUnavailableError as exc:
            self._capability.disable(str(exc))
            return MatchResult(MatchOutcome.SEARCH_DISABLED, stale_ticket_id=stale_ticket_id)

        if not tickets:
            return MatchResult(MatchOutcome.NOT_FOUND, stale_ticket_id=stale_ticket_id)
        return MatchResult(MatchOutcome.FOUND_VIA_SEARCH, tickets[0], stale_ticket_id)
