"""
Record store and its key-value persistence.
"""

from .backends import FileKeyValueStorage, KeyValueStorage, MemoryKeyValueStorage
from .errors import SnapshotFormatError, StorageError, StorageQuotaExceededError
from .events import StorageEvent
from .record_store import DEFAULT_STORAGE_KEY, RecordStore
from .snapshots import compute_stats, parse_snapshot, serialize_snapshot

__all__ = [
    "RecordStore",
    "DEFAULT_STORAGE_KEY",
    "KeyValueStorage",
    "FileKeyValueStorage",
    "MemoryKeyValueStorage",
    "StorageEvent",
    "StorageError",
    "StorageQuotaExceededError",
    "SnapshotFormatError",
    "compute_stats",
    "parse_snapshot",
    "serialize_snapshot",
]
