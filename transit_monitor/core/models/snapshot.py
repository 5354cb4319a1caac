"""
Storage snapshot models: the persisted shapes of the record collection.

On disk the four shapes are told apart by boolean flags (``isCompact``,
``isStatsOnly``, ``isEmergency``); a payload without any of them is a full
snapshot carrying ``data``.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

SNAPSHOT_VERSION = "1.0"

SnapshotKind = Literal["full", "compact", "stats-only", "emergency"]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AnomalyStats(BaseModel):
    """Record counts by anomaly probability."""

    total: int = Field(0, ge=0)
    high: int = Field(0, ge=0)
    elevated: int = Field(0, ge=0)
    medium: int = Field(0, ge=0)
    low: int = Field(0, ge=0)


class StorageSnapshot(BaseModel, ABC):
    """
    Common envelope of every persisted snapshot.

    Attributes:
        version: Snapshot format version
        timestamp: When the snapshot was built (ISO-8601)
        revision: Monotonic write counter used to detect foreign writes
    """

    model_config = ConfigDict(populate_by_name=True)

    kind: ClassVar[SnapshotKind]

    version: str = SNAPSHOT_VERSION
    timestamp: str = Field(default_factory=_utc_now_iso)
    revision: int = Field(0, ge=0)

    @property
    @abstractmethod
    def record_count(self) -> int:
        """Number of records the snapshot stands for."""

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready on-disk mapping (camelCase keys)."""
        return self.model_dump(by_alias=True, mode="json")


class FullSnapshot(StorageSnapshot):
    """The complete record collection."""

    kind: ClassVar[SnapshotKind] = "full"

    data: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.data)


class CompactSnapshot(StorageSnapshot):
    """Stats plus the first records of a collection too large to keep whole."""

    kind: ClassVar[SnapshotKind] = "compact"

    is_compact: Literal[True] = Field(True, alias="isCompact")
    stats: AnomalyStats
    sample_data: list[dict[str, Any]] = Field(default_factory=list, alias="sampleData")
    total_count: int = Field(..., ge=0, alias="totalCount")

    @property
    def record_count(self) -> int:
        return self.total_count


class StatsOnlySnapshot(StorageSnapshot):
    """Aggregate counts only; no records survive."""

    kind: ClassVar[SnapshotKind] = "stats-only"

    is_stats_only: Literal[True] = Field(True, alias="isStatsOnly")
    stats: AnomalyStats
    total_count: int = Field(..., ge=0, alias="totalCount")

    @property
    def record_count(self) -> int:
        return self.total_count


class EmergencySnapshot(StorageSnapshot):
    """Stats written after a storage write failed, with the failure message."""

    kind: ClassVar[SnapshotKind] = "emergency"

    is_emergency: Literal[True] = Field(True, alias="isEmergency")
    stats: AnomalyStats
    total_count: int = Field(..., ge=0, alias="totalCount")
    error: str = "Unknown error"

    @property
    def record_count(self) -> int:
        return self.total_count
