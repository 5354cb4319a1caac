"""
Record store: the single writable collection of imported records.

The collection is loaded lazily from key-value storage, persisted as a
snapshot after every mutation, and pushed to subscribers once persisted.
Public methods never raise: persistence problems are logged, counted and
published as storage events.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from transit_monitor.core.models import (
    AnomalyStats,
    CompactSnapshot,
    EmergencySnapshot,
    FullSnapshot,
    ImportedRecord,
    StatsOnlySnapshot,
    StorageSnapshot,
    ValidationResult,
)
from transit_monitor.core.rules import RuleEngine, default_rules
from transit_monitor.observability.logger import get_logger
from transit_monitor.observability.metrics import (
    duplicate_records_total,
    snapshot_writes_total,
    storage_failures_total,
    store_records,
)

from . import events
from .backends import KeyValueStorage
from .errors import SnapshotFormatError, StorageError
from .events import StorageEvent
from .snapshots import compute_stats, parse_snapshot, read_revision, serialize_snapshot, serialized_size

logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "gray_transit_imported_data"
DEFAULT_BUDGET_BYTES = 5 * 1024 * 1024
DEFAULT_COMPACT_THRESHOLD = 10_000
DEFAULT_SAMPLE_SIZE = 100

CSV_DELIMITER = ";"

Subscriber = Callable[[list[ImportedRecord]], None]
EventListener = Callable[[StorageEvent], None]


def _format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return f'"{value}"' if CSV_DELIMITER in value else value
    return str(value)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_iso(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return _to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


class RecordStore:
    """
    Observable, persisted collection of ImportedRecord.

    Mutations (replace, append, clear) run under a re-entrant lock: the
    collection changes, a snapshot is written, then subscribers are called
    in registration order with a copy of the collection.

    Every snapshot carries a revision. If the persisted revision moved on
    since this store last loaded or wrote it, the write still goes ahead
    (last write wins) and a ``data-storage-conflict`` event is published.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = DEFAULT_STORAGE_KEY,
        budget_bytes: int = DEFAULT_BUDGET_BYTES,
        compact_threshold: int = DEFAULT_COMPACT_THRESHOLD,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        rule_engine: RuleEngine | None = None,
    ):
        """
        Args:
            storage: Backend holding the serialized snapshot
            key: Storage key of the snapshot
            budget_bytes: Largest snapshot written before degrading
            compact_threshold: Record count above which a compact snapshot is tried
            sample_size: Records kept in a compact snapshot
            rule_engine: Rules used by validate_record (built-in defaults if None)

        Raises:
            ValueError: If budget_bytes is not positive or a count is negative
        """
        if budget_bytes <= 0:
            raise ValueError(f"budget_bytes must be positive, got {budget_bytes}")
        if compact_threshold < 0 or sample_size < 0:
            raise ValueError(
                f"compact_threshold and sample_size must be non-negative, got {compact_threshold} and {sample_size}"
            )

        self.storage = storage
        self.key = key
        self.budget_bytes = budget_bytes
        self.compact_threshold = compact_threshold
        self.sample_size = sample_size
        self.rule_engine = rule_engine or RuleEngine(default_rules())

        self._lock = threading.RLock()
        self._records: list[ImportedRecord] | None = None
        self._revision = 0
        self._subscribers: list[tuple[object, Subscriber]] = []
        self._listeners: list[tuple[object, EventListener]] = []

    # =======================
    # SUBSCRIPTIONS
    # =======================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register ``callback`` for the collection after every mutation.

        The same callable may be registered more than once; each
        registration is called. Returns a function removing this
        registration only.
        """
        return self._register(self._subscribers, callback)

    def on_event(self, callback: EventListener) -> Callable[[], None]:
        """Register a storage event listener; returns its unsubscribe function."""
        return self._register(self._listeners, callback)

    def _register(self, registry: list, callback: Callable) -> Callable[[], None]:
        token = object()
        with self._lock:
            registry.append((token, callback))

        def unsubscribe() -> None:
            with self._lock:
                registry[:] = [entry for entry in registry if entry[0] is not token]

        return unsubscribe

    def _notify(self) -> None:
        snapshot = list(self._records or [])
        for _, callback in list(self._subscribers):
            try:
                callback(list(snapshot))
            except Exception:
                logger.error("Subscriber failed", exc_info=True)

    def _emit(self, name: str, **detail: Any) -> None:
        event = StorageEvent(name=name, detail=detail)
        for _, listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.error("Storage event listener failed", exc_info=True, extra={"event": name})

    # =======================
    # READS
    # =======================

    def _loaded(self) -> list[ImportedRecord]:
        with self._lock:
            if self._records is None:
                self._records = self._load()
                store_records.set(len(self._records))
            return self._records

    def get_all(self) -> list[ImportedRecord]:
        return list(self._loaded())

    def get_count(self) -> int:
        return len(self._loaded())

    def get_anomaly_stats(self) -> AnomalyStats:
        return compute_stats(self._loaded())

    def find_records(self, **criteria: Any) -> list[ImportedRecord]:
        """Records whose flat fields equal every given criterion; None criteria are ignored."""
        active = {key: value for key, value in criteria.items() if value is not None}
        return [
            record for record in self._loaded()
            if all(record.get(key) == value for key, value in active.items())
        ]

    def get_records_by_anomaly_type(self, anomaly_type: str) -> list[ImportedRecord]:
        return [record for record in self._loaded() if anomaly_type in record.anomaly_types]

    def get_records_by_date_range(self, start: datetime, end: datetime) -> list[ImportedRecord]:
        """Records whose transmission_date lies within [start, end]."""
        start, end = _to_naive_utc(start), _to_naive_utc(end)
        matches = []
        for record in self._loaded():
            moment = _parse_iso(record.transmission_date)
            if moment is not None and start <= moment <= end:
                matches.append(record)
        return matches

    def validate_record(self, record: ImportedRecord | dict[str, Any]) -> ValidationResult:
        return self.rule_engine.validate_record(record)

    def export_to_csv(self) -> str:
        """
        Render the collection as ``;``-delimited CSV.

        The header is the union of flat keys across all records, in order of
        first appearance, so ad hoc columns survive. Returns "" when empty.
        """
        records = self._loaded()
        if not records:
            return ""

        rows = [record.to_flat_dict() for record in records]
        headers: dict[str, None] = {}
        for row in rows:
            for key in row:
                headers.setdefault(key, None)

        lines = [CSV_DELIMITER.join(headers)]
        for row in rows:
            lines.append(CSV_DELIMITER.join(_format_csv_value(row.get(header)) for header in headers))
        return "\n".join(lines)

    def get_last_import_info(self) -> dict[str, Any] | None:
        """Count, timestamp and kind of the persisted snapshot, or None."""
        try:
            raw = self.storage.get_item(self.key)
            if raw is None:
                return None
            snapshot = parse_snapshot(raw)
        except StorageError as e:
            logger.warning("Last import info unavailable", extra={"error_message": str(e)})
            return None
        return {"count": snapshot.record_count, "timestamp": snapshot.timestamp, "type": snapshot.kind}

    def get_storage_info(self) -> dict[str, Any]:
        """
        Persisted size against the budget.

        Returns:
            size (bytes), max_size, usage (percent, 2 decimals),
            can_store_full (whether the current collection fits whole) and
            data_type (snapshot kind or "none")
        """
        size = 0
        data_type = "none"
        try:
            raw = self.storage.get_item(self.key)
            if raw is not None:
                size = serialized_size(raw)
                data_type = parse_snapshot(raw).kind
        except StorageError as e:
            logger.warning("Storage info incomplete", extra={"error_message": str(e)})

        full = FullSnapshot(data=[record.to_flat_dict() for record in self._loaded()])
        return {
            "size": size,
            "max_size": self.budget_bytes,
            "usage": round(size / self.budget_bytes * 100, 2),
            "can_store_full": serialized_size(serialize_snapshot(full)) <= self.budget_bytes,
            "data_type": data_type,
        }

    # =======================
    # MUTATIONS
    # =======================

    def replace(self, records: Iterable[ImportedRecord]) -> None:
        """
        Install ``records`` as the whole collection.

        The new collection stays in memory even if it could not be persisted.
        """
        with self._lock:
            self._loaded()
            self._records = list(records)
            self._commit("replace")

    def append(self, records: Iterable[ImportedRecord]) -> int:
        """
        Add records whose id is not present yet.

        Incoming records with an id already in the collection, or repeated
        later in the same batch, are dropped without error.

        Returns:
            Number of records added
        """
        with self._lock:
            current = self._loaded()
            seen = {record.id for record in current}
            added = []
            dropped = 0
            for record in records:
                if record.id in seen:
                    dropped += 1
                    continue
                seen.add(record.id)
                added.append(record)
            self._records = current + added
            if dropped:
                duplicate_records_total.labels(stage="store").inc(dropped)
            self._commit("append", added=len(added), dropped=dropped)
            return len(added)

    def clear(self) -> None:
        with self._lock:
            self._loaded()
            self._records = []
            self._commit("clear")

    def _commit(self, operation: str, **extra: Any) -> None:
        kind = self._persist()
        store_records.set(len(self._records))
        logger.info(
            "Record store updated",
            extra={"operation": operation, "record_count": len(self._records), "snapshot_kind": kind, **extra},
        )
        self._notify()

    # =======================
    # PERSISTENCE
    # =======================

    def _next_revision(self) -> int:
        try:
            persisted = read_revision(self.storage.get_item(self.key))
        except Exception:
            persisted = None
        if persisted is not None and persisted != self._revision:
            logger.warning(
                "Persisted snapshot changed since last load; overwriting",
                extra={"expected_revision": self._revision, "found_revision": persisted},
            )
            self._emit(events.DATA_STORAGE_CONFLICT, expected_revision=self._revision, found_revision=persisted)
        return max(self._revision, persisted or 0) + 1

    def _write(self, snapshot: StorageSnapshot, text: str | None = None) -> None:
        self.storage.set_item(self.key, text if text is not None else serialize_snapshot(snapshot))
        self._revision = snapshot.revision
        snapshot_writes_total.labels(kind=snapshot.kind).inc()

    def _persist(self) -> str:
        """
        Write the best snapshot that fits the budget.

        full -> compact (only above the compact threshold) -> stats-only;
        a failed write falls back to an emergency snapshot, and if that
        fails too the key is removed.

        Returns:
            Kind of snapshot written, or "none" if nothing could be stored
        """
        records = self._records or []
        revision = self._next_revision()
        stats = compute_stats(records)

        try:
            full = FullSnapshot(data=[record.to_flat_dict() for record in records], revision=revision)
            text = serialize_snapshot(full)
            if serialized_size(text) <= self.budget_bytes:
                self._write(full, text)
                return full.kind

            if len(records) > self.compact_threshold:
                compact = CompactSnapshot(
                    stats=stats,
                    sample_data=[record.to_flat_dict() for record in records[: self.sample_size]],
                    total_count=len(records),
                    revision=revision,
                )
                text = serialize_snapshot(compact)
                if serialized_size(text) <= self.budget_bytes:
                    self._write(compact, text)
                    logger.warning(
                        "Stored compact snapshot",
                        extra={"total_records": len(records), "saved_samples": len(compact.sample_data)},
                    )
                    self._emit(
                        events.DATA_STORAGE_COMPRESSED,
                        total_records=len(records),
                        saved_samples=len(compact.sample_data),
                    )
                    return compact.kind

            stats_only = StatsOnlySnapshot(stats=stats, total_count=len(records), revision=revision)
            self._write(stats_only)
            logger.warning("Stored stats-only snapshot", extra={"total_records": len(records)})
            self._emit(events.DATA_STORAGE_STATS_ONLY, total_records=len(records))
            return stats_only.kind

        except Exception as e:
            logger.error("Snapshot write failed", exc_info=True)
            return self._persist_emergency(stats, len(records), revision, str(e) or type(e).__name__)

    def _persist_emergency(self, stats: AnomalyStats, total: int, revision: int, error: str) -> str:
        emergency = EmergencySnapshot(stats=stats, total_count=total, error=error, revision=revision)
        try:
            self._write(emergency)
        except Exception:
            logger.error("Emergency snapshot write failed; removing persisted data", exc_info=True)
            storage_failures_total.labels(operation="write").inc()
            self._remove_persisted()
            self._emit(events.DATA_STORAGE_FAILED, total_records=total, error=error)
            return "none"

        logger.warning("Stored emergency snapshot", extra={"total_records": total, "error_message": error})
        self._emit(events.DATA_STORAGE_EMERGENCY, total_records=total, error=error)
        return emergency.kind

    def _remove_persisted(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except Exception:
            logger.error("Could not remove persisted snapshot", exc_info=True)
        self._revision = 0

    def _records_from(self, payloads: list[dict[str, Any]]) -> list[ImportedRecord]:
        records = []
        for index, payload in enumerate(payloads):
            try:
                records.append(ImportedRecord.from_flat_dict(payload))
            except (ValidationError, TypeError, AttributeError):
                logger.warning("Skipping unreadable stored record", extra={"index": index})
        return records

    def _load(self) -> list[ImportedRecord]:
        try:
            raw = self.storage.get_item(self.key)
        except Exception:
            logger.error("Could not read persisted snapshot", exc_info=True)
            storage_failures_total.labels(operation="load").inc()
            return []
        if raw is None:
            return []

        try:
            snapshot = parse_snapshot(raw)
        except SnapshotFormatError as e:
            logger.warning("Discarding unreadable snapshot", extra={"error_message": str(e)})
            storage_failures_total.labels(operation="load").inc()
            self._remove_persisted()
            self._emit(events.DATA_STORAGE_CORRUPT, error=str(e))
            return []

        self._revision = snapshot.revision

        if isinstance(snapshot, EmergencySnapshot):
            logger.warning("Loaded emergency snapshot; only stats are available",
                           extra={"total_records": snapshot.total_count})
            self._emit(events.DATA_LOADED_EMERGENCY, total_records=snapshot.total_count, error=snapshot.error)
            return []

        if isinstance(snapshot, StatsOnlySnapshot):
            logger.warning("Loaded stats-only snapshot; records are unavailable",
                           extra={"total_records": snapshot.total_count})
            self._emit(events.DATA_LOADED_STATS_ONLY, total_records=snapshot.total_count)
            return []

        if isinstance(snapshot, CompactSnapshot):
            records = self._records_from(snapshot.sample_data)
            logger.warning(
                "Loaded compact snapshot",
                extra={"total_records": snapshot.total_count, "loaded_samples": len(records)},
            )
            self._emit(events.DATA_LOADED_COMPACT, total_records=snapshot.total_count, loaded_samples=len(records))
            return records

        records = self._records_from(snapshot.data)
        logger.info("Loaded full snapshot", extra={"record_count": len(records)})
        return records
