"""
ImportedRecord model representing one transit operation line after import.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

AnomalyProbability = Literal["high", "elevated", "medium", "low"]
AnomalyType = Literal["weight", "time", "route", "duplicate"]
RiskLevel = Literal["minimal", "low", "medium", "high", "critical"]

ANOMALY_PROBABILITIES: tuple[str, ...] = ("high", "elevated", "medium", "low")
ANOMALY_TYPES: tuple[str, ...] = ("weight", "time", "route", "duplicate")
RISK_LEVELS: tuple[str, ...] = ("minimal", "low", "medium", "high", "critical")

PROBABILITY_LABELS = {
    "high": "Высокая вероятность",
    "elevated": "Повышенная вероятность",
    "medium": "Средняя вероятность",
    "low": "Низкая вероятность",
}

NUMERIC_FIELDS = frozenset({
    "total_weight",
    "wagon_amount",
    "wagon_weight",
    "distance",
    "collected_at_departure",
    "collected_at_arrival",
})

DATE_FIELDS = frozenset({
    "transmission_date",
    "departure_date",
    "arrival_date",
    "issue_date",
})

DERIVED_FIELDS = frozenset({
    "id",
    "import_date",
    "source_line",
    "anomaly_probability",
    "anomaly_types",
})


class ImportedRecord(BaseModel):
    """
    One transit operation line (immutable).

    Known columns of the railway operations export are typed fields; any
    other column is kept in ``extra_fields`` in source order so arbitrary
    schemas survive export and re-import.

    Attributes:
        id: Identifier-safe key derived at parse time
        import_date: Ingestion timestamp (ISO-8601)
        source_line: 1-based line number in the source file
        anomaly_probability: Coarse suspicion category
        anomaly_types: Anomaly kinds attached to the record
        extra_fields: Unrecognized columns, in order of appearance
    """

    id: str = Field(..., min_length=1)

    message_code: str | None = None
    checkpoint: str | None = None
    transmission_date: str | None = None
    order_number: str | None = None
    destination_station_code: str | None = None
    destination_station_name: str | None = None
    total_weight: float | None = None
    month: str | None = None
    document: str | None = None
    payer_code: str | None = None
    payer_name: str | None = None
    sender_code: str | None = None
    sender_name: str | None = None
    departure_code: str | None = None
    departure_station_code: str | None = None
    departure_station_name: str | None = None
    destination_code: str | None = None
    cargo_code: str | None = None
    cargo_name: str | None = None
    departure_date: str | None = None
    arrival_date: str | None = None
    issue_date: str | None = None
    collected_at_departure: float | None = None
    collected_at_arrival: float | None = None
    destination_country_code: str | None = None
    destination_country_name: str | None = None
    departure_country_code: str | None = None
    departure_country_name: str | None = None
    communication_type: str | None = None
    mixed_transport_flag: str | None = None
    wagon_container_number: str | None = None
    wagon_amount: float | None = None
    wagon_weight: float | None = None
    readdressing_flag: str | None = None
    special_note: str | None = None
    calculation_place: str | None = None
    calculation_form: str | None = None
    distance: float | None = None
    coord_96: str | None = None
    shipment_category: str | None = None
    tech_pd: str | None = None
    shipper: str | None = None
    consignee: str | None = None

    import_date: str | None = None
    source_line: int | None = None
    anomaly_probability: AnomalyProbability
    anomaly_types: tuple[AnomalyType, ...] = ()

    extra_fields: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "N1_20240115T100000_A1_1",
                "message_code": "A1",
                "order_number": "N1",
                "transmission_date": "2024-01-15T10:00:00",
                "total_weight": 12.5,
                "wagon_container_number": "52345678",
                "import_date": "2024-01-20T08:00:00+00:00",
                "source_line": 2,
                "anomaly_probability": "medium",
                "anomaly_types": [],
                "extra_fields": {"Примечание": "проверено"},
            }
        }

    @field_validator("anomaly_types", mode="before")
    @classmethod
    def dedupe_anomaly_types(cls, v):
        """Keep the first occurrence of each anomaly type."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",") if part.strip()]
        seen: list[str] = []
        for item in v:
            if item not in seen:
                seen.append(item)
        return tuple(seen)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomaly_types)

    @property
    def risk_level(self) -> RiskLevel:
        """Risk level by number of attached anomaly types."""
        count = len(self.anomaly_types)
        if count > 3:
            return "critical"
        if count > 2:
            return "high"
        if count > 1:
            return "medium"
        if count > 0:
            return "low"
        return "minimal"

    @property
    def probability_label(self) -> str:
        return PROBABILITY_LABELS[self.anomaly_probability]

    def get(self, key: str, default: Any = None) -> Any:
        """Look a value up by flat key: typed field first, then extra_fields."""
        if key != "extra_fields" and key in type(self).model_fields:
            value = getattr(self, key)
            return default if value is None else value
        return self.extra_fields.get(key, default)

    def to_flat_dict(self) -> dict[str, Any]:
        """
        Return the record as one flat mapping.

        Set typed fields come first in declaration order, followed by
        extra_fields in their original order. Unset (None) fields are left
        out. This is the persisted and exported shape.
        """
        flat: dict[str, Any] = {}
        for name in type(self).model_fields:
            if name == "extra_fields":
                continue
            value = getattr(self, name)
            if value is None:
                continue
            flat[name] = list(value) if name == "anomaly_types" else value
        for key, value in self.extra_fields.items():
            flat.setdefault(key, value)
        return flat

    @classmethod
    def from_flat_dict(cls, data: dict[str, Any]) -> "ImportedRecord":
        """
        Build a record from a flat mapping produced by to_flat_dict().

        Keys that are not typed fields go to extra_fields.

        Raises:
            pydantic.ValidationError: If required fields are missing or invalid
        """
        known: dict[str, Any] = {}
        extra: dict[str, Any] = dict(data.get("extra_fields") or {})
        for key, value in data.items():
            if key == "extra_fields":
                continue
            if key in cls.model_fields:
                known[key] = value
            else:
                extra[key] = value
        return cls(**known, extra_fields=extra)
