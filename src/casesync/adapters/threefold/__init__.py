"""Threefold ticket store adapter."""

from __future__ import annotations

from .client import ThreefoldClient
from .schema import TicketPayload, TicketResponse, TicketSearchResponse

__all__ = [
    "ThreefoldClient",
    "TicketPayload",
    "TicketResponse",
    "TicketSearchResponse",
]
