"""
Snapshot codec: building, serializing and recognizing persisted snapshots.
"""

import json
from typing import Any, Iterable

from pydantic import ValidationError

from transit_monitor.core.models import (
    AnomalyStats,
    CompactSnapshot,
    EmergencySnapshot,
    FullSnapshot,
    ImportedRecord,
    StatsOnlySnapshot,
    StorageSnapshot,
)

from .errors import SnapshotFormatError


def compute_stats(records: Iterable[ImportedRecord]) -> AnomalyStats:
    """Tally records by anomaly probability in one pass."""
    counts = {"high": 0, "elevated": 0, "medium": 0, "low": 0}
    total = 0
    for record in records:
        total += 1
        counts[record.anomaly_probability] += 1
    return AnomalyStats(total=total, **counts)


def serialize_snapshot(snapshot: StorageSnapshot) -> str:
    return json.dumps(snapshot.to_payload(), ensure_ascii=False)


def serialized_size(text: str) -> int:
    """Size of a serialized snapshot in UTF-8 bytes."""
    return len(text.encode("utf-8"))


def parse_snapshot(raw: str | dict[str, Any]) -> StorageSnapshot:
    """
    Recognize a persisted snapshot by its flags.

    ``isEmergency``, ``isStatsOnly`` and ``isCompact`` select the degraded
    shapes in that order; otherwise a ``data`` list means a full snapshot.

    Raises:
        SnapshotFormatError: On invalid JSON or an unrecognized shape
    """
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SnapshotFormatError(f"Snapshot is not valid JSON: {e}") from e
    else:
        payload = raw

    if not isinstance(payload, dict):
        raise SnapshotFormatError(f"Snapshot must be a JSON object, got {type(payload).__name__}")

    if payload.get("isEmergency"):
        model: type[StorageSnapshot] = EmergencySnapshot
    elif payload.get("isStatsOnly"):
        model = StatsOnlySnapshot
    elif payload.get("isCompact"):
        model = CompactSnapshot
    elif isinstance(payload.get("data"), list):
        model = FullSnapshot
    else:
        raise SnapshotFormatError("Unrecognized snapshot shape")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid {model.kind} snapshot: {e}") from e


def read_revision(raw: str | None) -> int | None:
    """Revision stamped on a persisted value, or None if it has none."""
    if raw is None:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    revision = payload.get("revision")
    return revision if isinstance(revision, int) and not isinstance(revision, bool) else None
