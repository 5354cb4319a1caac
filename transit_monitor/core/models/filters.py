"""
Declarative filter, sort and page descriptors consumed by the query engine.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .imported_record import ImportedRecord

SortDirection = Literal["asc", "desc"]
DatePreset = Literal["today", "week", "month", "quarter", "year", "custom"]


class _ToggleGroup(BaseModel):
    """A group of boolean toggles; the group is inactive when none is set."""

    def selected(self) -> list[str]:
        return [name for name in type(self).model_fields if getattr(self, name)]

    @property
    def is_active(self) -> bool:
        return bool(self.selected())


class ProbabilityFilter(_ToggleGroup):
    high: bool = False
    elevated: bool = False
    medium: bool = False
    low: bool = False


class RiskFilter(_ToggleGroup):
    minimal: bool = False
    low: bool = False
    medium: bool = False
    high: bool = False
    critical: bool = False


class AnomalyFilter(_ToggleGroup):
    """Anomaly type toggles; ``no_anomalies`` overrides the others."""

    weight: bool = False
    time: bool = False
    route: bool = False
    duplicate: bool = False
    no_anomalies: bool = False


class QuickFilters(_ToggleGroup):
    only_anomalies: bool = False
    high_probability_only: bool = False
    recent_only: bool = False


class DateFilter(BaseModel):
    """
    Period filter applied to ``transmission_date``.

    Attributes:
        preset: Rolling window ending now, or "custom" for explicit bounds
        custom_start: First day included (custom preset only)
        custom_end: Last day included (custom preset only)
    """

    preset: DatePreset | None = None
    custom_start: date | None = None
    custom_end: date | None = None

    @property
    def is_active(self) -> bool:
        if self.preset == "custom":
            return self.custom_start is not None or self.custom_end is not None
        return self.preset is not None


class GeographyFilter(BaseModel):
    """
    Country and station filter (exact, case-insensitive matches).

    Attributes:
        departure_countries: Matched against departure country name or code
        destination_countries: Matched against destination country name or code
        stations: Matched against departure or destination station name
    """

    departure_countries: list[str] = Field(default_factory=list)
    destination_countries: list[str] = Field(default_factory=list)
    stations: list[str] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return bool(self.departure_countries or self.destination_countries or self.stations)


class CargoFilter(BaseModel):
    """
    Cargo filter.

    Attributes:
        weight_min: Lowest total_weight included
        weight_max: Highest total_weight included
        cargo_types: Cargo names or codes (any match passes)
    """

    weight_min: float | None = None
    weight_max: float | None = None
    cargo_types: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_bounds(self):
        if (
            self.weight_min is not None
            and self.weight_max is not None
            and self.weight_min > self.weight_max
        ):
            raise ValueError("weight_min cannot exceed weight_max")
        return self

    @property
    def is_active(self) -> bool:
        return self.weight_min is not None or self.weight_max is not None or bool(self.cargo_types)


class FilterState(BaseModel):
    """
    Every filter group at once. Groups combine with AND, values inside a
    group combine with OR, an empty group filters nothing.
    """

    probability_filter: ProbabilityFilter = Field(default_factory=ProbabilityFilter)
    risk_filter: RiskFilter = Field(default_factory=RiskFilter)
    anomaly_filter: AnomalyFilter = Field(default_factory=AnomalyFilter)
    quick_filters: QuickFilters = Field(default_factory=QuickFilters)
    date_filter: DateFilter = Field(default_factory=DateFilter)
    geography_filter: GeographyFilter = Field(default_factory=GeographyFilter)
    cargo_filter: CargoFilter = Field(default_factory=CargoFilter)

    class Config:
        json_schema_extra = {
            "example": {
                "probability_filter": {"high": True, "elevated": True},
                "anomaly_filter": {"weight": True},
                "quick_filters": {"recent_only": True},
                "cargo_filter": {"weight_min": 10.0, "cargo_types": ["Уголь"]},
            }
        }

    def active_filter_count(self) -> int:
        """Number of toggles and non-empty supplementary groups in use."""
        count = sum(
            len(group.selected())
            for group in (self.probability_filter, self.risk_filter, self.anomaly_filter, self.quick_filters)
        )
        count += sum(
            1 for group in (self.date_filter, self.geography_filter, self.cargo_filter) if group.is_active
        )
        return count


class SortState(BaseModel):
    """
    Active sort column and direction (immutable).

    At most one column is sorted at a time; ``column`` is None when unsorted.
    """

    column: str | None = None
    direction: SortDirection | None = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_pairing(self):
        if (self.column is None) != (self.direction is None):
            raise ValueError("column and direction must be set together")
        return self

    @property
    def is_active(self) -> bool:
        return self.column is not None

    def handle_sort(self, column: str) -> "SortState":
        """
        Return the state after the user selects ``column``.

        The same column cycles asc -> desc -> unsorted; a different column
        starts over at asc.
        """
        if self.column != column or self.direction is None:
            return SortState(column=column, direction="asc")
        if self.direction == "asc":
            return SortState(column=column, direction="desc")
        return SortState()


class QueryResult(BaseModel):
    """
    One page of filtered, sorted records.

    Attributes:
        items: Records on the requested page
        total_count: Matches before pagination
        page: 1-based page index
        page_size: Requested page size
        total_pages: Pages needed for total_count (at least 1)
    """

    items: list[ImportedRecord] = Field(default_factory=list)
    total_count: int = Field(0, ge=0)
    page: int = Field(1, ge=1)
    page_size: int = Field(100, ge=1)
    total_pages: int = Field(1, ge=1)
