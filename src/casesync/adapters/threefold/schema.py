"""Threefold external ticket API response schemas."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


class ThreefoldBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Threefold %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class TicketPayload(ThreefoldBaseModel):
    id: int
    short_id: str | None = None
    ticket_title: str | None = None
    ticket_description: str | None = None
    ticket_address: str | None = None
    priority: str | None = None
    status_id: int | None = None
    status_name: str | None = None
    ticket_type_id: int | None = None
    ticket_type_name: str | None = None
    custom_fields: dict[str, object] | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Pagination(ThreefoldBaseModel):
    limit: int | None = None
    offset: int | None = None
    total: int | None = None
    has_more: bool = False


class TicketSearchData(ThreefoldBaseModel):
    tickets: list[TicketPayload] = Field(default_factory=list[TicketPayload])
    pagination: Pagination | None = None


class TicketSearchResponse(ThreefoldBaseModel):
    success: bool = True
    data: TicketSearchData | None = None


class TicketResponse(ThreefoldBaseModel):
    success: bool = True
    data: TicketPayload
