"""SQLAlchemy mapping metadata for the case sync state store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from casesync.domain.model import CaseState, CaseStatus, SyncRun
from casesync.domain.model.records import FINGERPRINT_LENGTH

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

case_state_table = Table(
    "case_state",
    mapper_registry.metadata,
    Column("case_id", String, primary_key=True),
    Column("opened_date", Date, nullable=True),
    Column("closed_date", Date, nullable=True),
    Column("status", Enum(CaseStatus, native_enum=False), nullable=False),
    Column("category", String, nullable=False, default=""),
    Column("sub_category", String, nullable=False, default=""),
    Column("address", String, nullable=False, default=""),
    Column("raw_fields", JSON, nullable=False),
    Column("fingerprint", String(FINGERPRINT_LENGTH), nullable=False),
    Column("remote_ticket_id", Integer, nullable=True, index=True),
    Column("last_seen_at", UTCDateTime(), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

sync_run_table = Table(
    "sync_run",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sync_type", String, nullable=False),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("completed_at", UTCDateTime(), nullable=True),
    Column("total_records", Integer, nullable=False, default=0),
    Column("changed_records", Integer, nullable=False, default=0),
    Column("error_count", Integer, nullable=False, default=0),
    Column("error_message", Text, nullable=True),
    Column("details", JSON, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(CaseState, case_state_table)
    mapper_registry.map_imperatively(SyncRun, sync_run_table)

    orm.configure_mappers()
    return mapper_registry
