"""
Filter, sort and page engine over a list of records.

Everything here is a pure function of its arguments: inputs are never
mutated and identical inputs give identical results.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

from transit_monitor.core.models import (
    DATE_FIELDS,
    NUMERIC_FIELDS,
    FilterState,
    ImportedRecord,
    QueryResult,
    SortState,
)
from transit_monitor.core.models.filters import CargoFilter, DateFilter, GeographyFilter

SEARCH_FIELDS: tuple[str, ...] = (
    "wagon_container_number",
    "cargo_name",
    "order_number",
    "message_code",
    "departure_station_name",
    "destination_station_name",
    "checkpoint",
    "shipper",
    "consignee",
)

PROBABILITY_RANK = {"high": 4, "elevated": 3, "medium": 2, "low": 1}
RISK_RANK = {"minimal": 0, "low": 1, "medium": 2, "high": 3, "critical": 4}

RECENT_DAYS = 7
DEFAULT_PAGE_SIZE = 100

Predicate = Callable[[ImportedRecord], bool]


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def parse_timestamp(value: Any) -> datetime | None:
    """ISO-8601 string to a naive UTC datetime; None if absent or unparseable."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return _naive_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    except ValueError:
        return None


def normalize_text(value: Any) -> str:
    """Case-insensitive comparison key for Russian text: casefold, ё as е."""
    return str(value).casefold().replace("ё", "е")


# =======================
# FILTERS
# =======================

def _date_window(date_filter: DateFilter, now: datetime) -> tuple[datetime | None, datetime | None]:
    if date_filter.preset == "custom":
        start = datetime.combine(date_filter.custom_start, datetime.min.time()) if date_filter.custom_start else None
        end = datetime.combine(date_filter.custom_end, datetime.max.time()) if date_filter.custom_end else None
        return start, end

    today = datetime.combine(now.date(), datetime.min.time())
    if date_filter.preset == "today":
        return today, None
    if date_filter.preset == "week":
        return now - timedelta(days=7), None
    if date_filter.preset == "month":
        return now - timedelta(days=30), None
    if date_filter.preset == "quarter":
        return now - timedelta(days=90), None
    if date_filter.preset == "year":
        return now - timedelta(days=365), None
    return None, None


def _date_predicate(date_filter: DateFilter, now: datetime) -> Predicate:
    start, end = _date_window(date_filter, now)

    def matches(record: ImportedRecord) -> bool:
        moment = parse_timestamp(record.transmission_date)
        if moment is None:
            return False
        if start is not None and moment < start:
            return False
        return end is None or moment <= end

    return matches


def _in_selection(values: Sequence[Any], selection: set[str]) -> bool:
    return any(value is not None and normalize_text(value) in selection for value in values)


def _geography_predicate(geo: GeographyFilter) -> Predicate:
    departure = {normalize_text(v) for v in geo.departure_countries}
    destination = {normalize_text(v) for v in geo.destination_countries}
    stations = {normalize_text(v) for v in geo.stations}

    def matches(record: ImportedRecord) -> bool:
        if departure and not _in_selection(
            (record.departure_country_name, record.departure_country_code), departure
        ):
            return False
        if destination and not _in_selection(
            (record.destination_country_name, record.destination_country_code), destination
        ):
            return False
        if stations and not _in_selection(
            (record.departure_station_name, record.destination_station_name), stations
        ):
            return False
        return True

    return matches


def _cargo_predicate(cargo: CargoFilter) -> Predicate:
    cargo_types = {normalize_text(v) for v in cargo.cargo_types}

    def matches(record: ImportedRecord) -> bool:
        if cargo.weight_min is not None or cargo.weight_max is not None:
            weight = record.total_weight
            if weight is None:
                return False
            if cargo.weight_min is not None and weight < cargo.weight_min:
                return False
            if cargo.weight_max is not None and weight > cargo.weight_max:
                return False
        if cargo_types and not _in_selection((record.cargo_name, record.cargo_code), cargo_types):
            return False
        return True

    return matches


def _search_predicate(search: str) -> Predicate | None:
    needle = normalize_text(search.strip())
    if not needle:
        return None

    def matches(record: ImportedRecord) -> bool:
        for field_name in SEARCH_FIELDS:
            value = getattr(record, field_name)
            if value is not None and needle in normalize_text(value):
                return True
        return False

    return matches


def _is_recent(record: ImportedRecord, threshold: datetime) -> bool:
    moment = parse_timestamp(record.arrival_date) or parse_timestamp(record.transmission_date)
    return moment is not None and moment > threshold


def build_predicates(filters: FilterState, search: str, now: datetime) -> list[Predicate]:
    """Predicates for every active filter group; a record must pass all of them."""
    predicates: list[Predicate] = []

    probabilities = set(filters.probability_filter.selected())
    if probabilities:
        predicates.append(lambda r: r.anomaly_probability in probabilities)

    risks = set(filters.risk_filter.selected())
    if risks:
        predicates.append(lambda r: r.risk_level in risks)

    anomaly = filters.anomaly_filter
    if anomaly.no_anomalies:
        predicates.append(lambda r: not r.anomaly_types)
    else:
        anomaly_types = set(anomaly.selected())
        if anomaly_types:
            predicates.append(lambda r: bool(anomaly_types.intersection(r.anomaly_types)))

    quick = filters.quick_filters
    if quick.only_anomalies:
        predicates.append(lambda r: r.has_anomalies)
    if quick.high_probability_only:
        predicates.append(lambda r: r.anomaly_probability == "high")
    if quick.recent_only:
        threshold = now - timedelta(days=RECENT_DAYS)
        predicates.append(lambda r: _is_recent(r, threshold))

    if filters.date_filter.is_active:
        predicates.append(_date_predicate(filters.date_filter, now))
    if filters.geography_filter.is_active:
        predicates.append(_geography_predicate(filters.geography_filter))
    if filters.cargo_filter.is_active:
        predicates.append(_cargo_predicate(filters.cargo_filter))

    search_predicate = _search_predicate(search or "")
    if search_predicate is not None:
        predicates.append(search_predicate)

    return predicates


def filter_records(
    records: Sequence[ImportedRecord],
    filters: FilterState | None = None,
    search: str = "",
    *,
    now: datetime | None = None,
) -> list[ImportedRecord]:
    now = _naive_utc(now or datetime.now(timezone.utc))
    predicates = build_predicates(filters or FilterState(), search, now)
    return [record for record in records if all(predicate(record) for predicate in predicates)]


# =======================
# SORTING
# =======================

def sort_key(record: ImportedRecord, column: str) -> tuple[int, Any] | None:
    """
    Comparison key for one column, or None when the value is missing.

    Numeric columns compare as numbers, date columns by timestamp,
    anomaly_probability by severity, risk_level by rank and everything else
    as normalized text. Values of mixed kinds fall back to text.
    """
    if column == "anomaly_probability":
        return (0, PROBABILITY_RANK[record.anomaly_probability])
    if column == "risk_level":
        return (0, RISK_RANK[record.risk_level])
    if column == "anomaly_types":
        return (0, len(record.anomaly_types))

    value = record.get(column)
    if value is None or value == "":
        return None

    if column in NUMERIC_FIELDS or (isinstance(value, (int, float)) and not isinstance(value, bool)):
        try:
            return (0, float(value))
        except (TypeError, ValueError):
            return (1, normalize_text(value))
    if column in DATE_FIELDS or column == "import_date":
        moment = parse_timestamp(value)
        if moment is not None:
            return (0, moment.replace(tzinfo=timezone.utc).timestamp())
        return (1, normalize_text(value))
    return (1, normalize_text(value))


def sort_records(records: Sequence[ImportedRecord], sort: SortState | None) -> list[ImportedRecord]:
    """
    Stable sort by the active column; missing values always sort last.
    """
    if sort is None or not sort.is_active:
        return list(records)

    keyed = [(sort_key(record, sort.column), record) for record in records]
    present = [item for item in keyed if item[0] is not None]
    missing = [record for key, record in keyed if key is None]

    present.sort(key=lambda item: item[0], reverse=sort.direction == "desc")
    return [record for _, record in present] + missing


# =======================
# QUERY
# =======================

def paginate(records: Sequence[ImportedRecord], page: int, page_size: int) -> list[ImportedRecord]:
    """Slice for a 1-based page."""
    start = (page - 1) * page_size
    return list(records[start:start + page_size])


def query_records(
    records: Sequence[ImportedRecord],
    filters: FilterState | None = None,
    sort: SortState | None = None,
    search: str = "",
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    *,
    now: datetime | None = None,
) -> QueryResult:
    """
    Filter, sort and page records.

    Args:
        records: Input records (not modified)
        filters: Filter groups (none active by default)
        sort: Sort column and direction (unsorted by default)
        search: Case-insensitive substring searched in SEARCH_FIELDS
        page: 1-based page index
        page_size: Records per page
        now: Reference time for recent/date filters (current UTC time by default)

    Returns:
        QueryResult with the page and the pre-pagination match count

    Raises:
        ValueError: If page or page_size is below 1
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    matched = sort_records(filter_records(records, filters, search, now=now), sort)
    total = len(matched)
    return QueryResult(
        items=paginate(matched, page, page_size),
        total_count=total,
        page=page,
        page_size=page_size,
        total_pages=max(1, math.ceil(total / page_size)),
    )


def available_values(records: Sequence[ImportedRecord], field_name: str) -> list[str]:
    """Distinct non-empty values of a field, sorted as normalized text (for filter choices)."""
    values = set()
    for record in records:
        value = record.get(field_name)
        if value not in (None, ""):
            values.add(str(value))
    return sorted(values, key=normalize_text)
