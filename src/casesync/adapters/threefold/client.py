"""HTTP client for the Threefold external ticket API."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from http import HTTPStatus
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from casesync.adapters.http_resilience import ResilientClient, build_limiter
from casesync.domain.field_reconciliation import CASE_NUMBER_FIELD
from casesync.domain.ports.tickets import CapabilityUnavailableError, TicketStoreError

from .schema import TicketResponse, TicketSearchResponse
from .translator import translate_search, translate_ticket

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

    from casesync.config.http_resilience import ResilienceConfig
    from casesync.config.threefold import ThreefoldConfig
    from casesync.domain.ports.tickets import RemoteTicket

log = getLogger(__name__)

SEARCH_PATH: Final[str] = "/api/external/tickets/search"
TICKET_PATH: Final[str] = "/api/external/tickets/{ticket_id}"
CUSTOM_FIELDS_PATH: Final[str] = "/api/external/tickets/{ticket_id}/custom-fields"
_ERROR_BODY_LIMIT = 500
# a field update may already be applied when the response is lost
NON_IDEMPOTENT_METHODS: Final[frozenset[str]] = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class ThreefoldClient:
    """Synchronous facade over the Threefold ticket endpoints.

    Each call runs its own short-lived :class:`ResilientClient`; all of them
    share one rate limiter so the minimum interval between requests holds
    across the whole process. Search and reads retry per the configured policy;
    field updates are sent exactly once.
    """

    def __init__(
        self,
        *,
        config: ThreefoldConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._write_resilience = _without_write_retries(config.resilience)
        self._limiter = build_limiter(config.resilience.ratelimit)
        self._transport = transport

    def search_by_identifier(
        self,
        case_id: str,
        *,
        include_closed: bool = True,
        limit: int = 1,
    ) -> list[RemoteTicket]:
        return asyncio.run(
            self._search_async(case_id=case_id, include_closed=include_closed, limit=limit)
        )

    def get_by_id(self, ticket_id: int) -> RemoteTicket | None:
        return asyncio.run(self._get_async(ticket_id=ticket_id))

    def update_fields(self, ticket_id: int, fields: Mapping[str, str | None]) -> None:
        asyncio.run(self._update_async(ticket_id=ticket_id, fields=fields))

    def _client(self, resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(resilience, limiter=self._limiter, transport=self._transport)

    async def _search_async(
        self,
        *,
        case_id: str,
        include_closed: bool,
        limit: int,
    ) -> list[RemoteTicket]:
        body = {
            "custom_fields": {CASE_NUMBER_FIELD: case_id},
            "limit": limit,
            "offset": 0,
            "include_closed": include_closed,
        }
        async with self._client(self._resilience) as client:
            response = await client.post(SEARCH_PATH, json=body)

        if response.status_code == HTTPStatus.METHOD_NOT_ALLOWED:
            raise CapabilityUnavailableError(
                f"Ticket search not supported: {response.status_code}",
                status_code=response.status_code,
            )
        _raise_for_status(response, action="search tickets")
        search = _parse(response, TicketSearchResponse)
        if not search.success:
            raise TicketStoreError("Ticket search reported failure")
        return translate_search(search)

    async def _get_async(self, *, ticket_id: int) -> RemoteTicket | None:
        async with self._client(self._resilience) as client:
            response = await client.get(TICKET_PATH.format(ticket_id=ticket_id))

        if response.status_code == HTTPStatus.NOT_FOUND:
            return None
        _raise_for_status(response, action="get ticket")
        return translate_ticket(_parse(response, TicketResponse).data)

    async def _update_async(self, *, ticket_id: int, fields: Mapping[str, str | None]) -> None:
        async with self._client(self._write_resilience) as client:
            response = await client.post(
                CUSTOM_FIELDS_PATH.format(ticket_id=ticket_id),
                json={"custom_fields": dict(fields)},
            )

        _raise_for_status(response, action="update ticket custom fields")
        log.info("Updated custom fields for ticket #%s", ticket_id)


def _without_write_retries(resilience: ResilienceConfig) -> ResilienceConfig:
    retry = resilience.retry
    return replace(
        resilience,
        retry=replace(retry, allowed_methods=retry.allowed_methods - NON_IDEMPOTENT_METHODS),
    )


def _raise_for_status(response: httpx.Response, *, action: str) -> None:
    if response.is_success:
        return
    detail = response.text[:_ERROR_BODY_LIMIT]
    raise TicketStoreError(
        f"Failed to {action}: {response.status_code} {detail}",
        status_code=response.status_code,
    )


def _parse[TModel: TicketResponse | TicketSearchResponse](
    response: httpx.Response, model: type[TModel]
) -> TModel:
    try:
        return model.model_validate_json(response.content)
    except ValidationError as exc:
        raise TicketStoreError(
            f"Unexpected Threefold {model.__name__} payload",
            status_code=response.status_code,
        ) from exc


if TYPE_CHECKING:
    from casesync.domain.ports.tickets import TicketStore

    _store_check: TicketStore = ThreefoldClient(config=...)  # pyright: ignore[reportArgumentType]
