from __future__ import annotations

from casesync.adapters.threefold.schema import TicketPayload, TicketSearchResponse
from casesync.adapters.threefold.translator import translate_search, translate_ticket


def test_translate_ticket_keeps_custom_fields_read_only() -> None:
    payload = TicketPayload.model_validate(
        {
            "id": 7,
            "short_id": "T-7",
            "ticket_title": "Abandoned vehicle",
            "status_name": "Closed",
            "custom_fields": {"cc_case_number": "CE24-0001", "case_close_date": None},
            "watchers": [],
        }
    )

    ticket = translate_ticket(payload)

    assert ticket.id == 7
    assert ticket.title == "Abandoned vehicle"
    assert ticket.status_name == "Closed"
    assert ticket.custom_fields == {"cc_case_number": "CE24-0001", "case_close_date": None}
    assert payload.model_extra == {"watchers": []}


def test_translate_ticket_without_custom_fields() -> None:
    ticket = translate_ticket(TicketPayload.model_validate({"id": 1, "custom_fields": None}))

    assert dict(ticket.custom_fields) == {}


def test_translate_search_preserves_order() -> None:
    response = TicketSearchResponse.model_validate(
        {"success": True, "data": {"tickets": [{"id": 3}, {"id": 1}]}}
    )

    assert [ticket.id for ticket in translate_search(response)] == [3, 1]
