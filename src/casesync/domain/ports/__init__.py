"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import CaseStateRepository, PersistenceError, SyncRunRepository
from .tickets import CapabilityUnavailableError, RemoteTicket, TicketStore, TicketStoreError
from .unit_of_work import (
    CaseSyncRepositories,
    CaseSyncUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CapabilityUnavailableError",
    "CaseStateRepository",
    "CaseSyncRepositories",
    "CaseSyncUnitOfWork",
    "PersistenceError",
    "RemoteTicket",
    "RepositoryCollection",
    "SyncRunRepository",
    "TicketStore",
    "TicketStoreError",
    "UnitOfWork",
]
