"""
Storage exceptions.

RecordStore absorbs all of these; they are raised by the key-value
backends and the snapshot codec.
"""


class StorageError(Exception):
    """A key-value storage operation failed."""


class StorageQuotaExceededError(StorageError):
    """A write would take the storage past its byte quota."""

    def __init__(self, key: str, required: int, quota: int):
        self.key = key
        self.required = required
        self.quota = quota
        super().__init__(f"Quota exceeded writing '{key}': {required} bytes needed, quota is {quota}")


class SnapshotFormatError(StorageError):
    """A persisted value is not valid JSON or not a known snapshot shape."""
