"""Synchronization defaults for the case sync."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_int

DEFAULT_CASE_STATE_CHUNK_SIZE = 1000


@dataclass(frozen=True, slots=True)
class SyncConfig:
    # False means dry run: changes are detected and state is stored, tickets untouched
    updates_enabled: bool = True
    case_state_chunk_size: int = DEFAULT_CASE_STATE_CHUNK_SIZE


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        updates_enabled=env_flag("CASE_UPDATES_ENABLED", default=True),
        case_state_chunk_size=env_int(
            "CASE_STATE_CHUNK_SIZE", default=DEFAULT_CASE_STATE_CHUNK_SIZE
        ),
    )
