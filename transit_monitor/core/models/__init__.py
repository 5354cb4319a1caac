"""
Core data models for the transit anomaly import pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .filters import (
    AnomalyFilter,
    CargoFilter,
    DateFilter,
    FilterState,
    GeographyFilter,
    ProbabilityFilter,
    QueryResult,
    QuickFilters,
    RiskFilter,
    SortState,
)
from .import_report import ImportReport
from .imported_record import (
    ANOMALY_PROBABILITIES,
    ANOMALY_TYPES,
    DATE_FIELDS,
    NUMERIC_FIELDS,
    PROBABILITY_LABELS,
    RISK_LEVELS,
    ImportedRecord,
)
from .parse_result import CSVParseResult
from .snapshot import (
    AnomalyStats,
    CompactSnapshot,
    EmergencySnapshot,
    FullSnapshot,
    StatsOnlySnapshot,
    StorageSnapshot,
)
from .validation_result import ValidationResult

__all__ = [
    "ImportedRecord",
    "CSVParseResult",
    "ImportReport",
    "ValidationResult",
    "AnomalyStats",
    "StorageSnapshot",
    "FullSnapshot",
    "CompactSnapshot",
    "StatsOnlySnapshot",
    "EmergencySnapshot",
    "FilterState",
    "ProbabilityFilter",
    "RiskFilter",
    "AnomalyFilter",
    "QuickFilters",
    "DateFilter",
    "GeographyFilter",
    "CargoFilter",
    "SortState",
    "QueryResult",
    "ANOMALY_PROBABILITIES",
    "ANOMALY_TYPES",
    "RISK_LEVELS",
    "PROBABILITY_LABELS",
    "NUMERIC_FIELDS",
    "DATE_FIELDS",
]
