"""Translate Threefold payloads into ticket store port types."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from casesync.domain.ports.tickets import RemoteTicket

if TYPE_CHECKING:
    from .schema import TicketPayload, TicketSearchResponse


def translate_ticket(payload: TicketPayload) -> RemoteTicket:
    return RemoteTicket(
        id=payload.id,
        custom_fields=MappingProxyType(dict(payload.custom_fields or {})),
        short_id=payload.short_id,
        title=payload.ticket_title,
        status_name=payload.status_name,
    )


def translate_search(response: TicketSearchResponse) -> list[RemoteTicket]:
    if response.data is None:
        return []
    return [translate_ticket(ticket) for ticket in response.data.tickets]
