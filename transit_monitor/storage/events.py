"""
Storage events reported by the record store.

Persistence degradations and load outcomes are never raised to callers;
they are published as events so a front end can tell the user that only
part of the data was saved or restored.
"""

from typing import Any

from pydantic import BaseModel, Field

DATA_STORAGE_COMPRESSED = "data-storage-compressed"
DATA_STORAGE_STATS_ONLY = "data-storage-stats-only"
DATA_STORAGE_EMERGENCY = "data-storage-emergency"
DATA_STORAGE_FAILED = "data-storage-failed"
DATA_STORAGE_CORRUPT = "data-storage-corrupt"
DATA_STORAGE_CONFLICT = "data-storage-conflict"
DATA_LOADED_COMPACT = "data-loaded-compact"
DATA_LOADED_STATS_ONLY = "data-loaded-stats-only"
DATA_LOADED_EMERGENCY = "data-loaded-emergency"


class StorageEvent(BaseModel):
    """
    Attributes:
        name: Event name (one of the DATA_* constants)
        detail: Event-specific counts and messages
    """

    name: str
    detail: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True
