"""
Unit tests for the filter, sort and page engine.
"""

from datetime import date, datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from transit_monitor.core.models import FilterState, ImportedRecord, SortState
from transit_monitor.query import available_values, filter_records, query_records, sort_records

NOW = datetime(2024, 1, 25, 12, 0)


@pytest.fixture
def records(make_record):
    return [
        make_record(
            "R1",
            order_number="N1001",
            cargo_name="Уголь каменный",
            total_weight=12.5,
            transmission_date="2024-01-15T10:00:00",
            arrival_date="2024-01-24T08:00:00",
            departure_country_name="Казахстан",
            destination_country_name="Китай",
            departure_station_name="Достык",
            anomaly_probability="high",
            anomaly_types=["weight", "route"],
        ),
        make_record(
            "R2",
            order_number="N1002",
            cargo_name="пшеница",
            total_weight=64.0,
            transmission_date="2024-01-16T11:30:00",
            departure_country_name="Казахстан",
            destination_country_name="Россия",
            shipper="ТОО Семёнов и К",
            anomaly_probability="low",
        ),
        make_record(
            "R3",
            order_number="N1003",
            cargo_name="Руды железные",
            transmission_date="2024-01-22T09:15:00",
            departure_country_name="Узбекистан",
            destination_country_name="Китай",
            anomaly_probability="medium",
            anomaly_types=["time"],
        ),
        make_record(
            "R4",
            order_number="N1004",
            cargo_name="Ёмкости",
            total_weight=3.0,
            transmission_date="2023-11-02T00:00:00",
            anomaly_probability="elevated",
            anomaly_types=["duplicate", "weight", "time"],
        ),
    ]


def ids(items):
    return [record.id for record in items]


@pytest.mark.unit
class TestFiltering:
    """Tests for filter groups and search"""

    def test_no_filters_returns_everything(self, records):
        assert ids(filter_records(records, now=NOW)) == ["R1", "R2", "R3", "R4"]

    def test_values_within_group_are_disjunctive(self, records):
        filters = FilterState(probability_filter={"high": True, "low": True})
        assert ids(filter_records(records, filters, now=NOW)) == ["R1", "R2"]

    def test_groups_are_conjunctive(self, records):
        filters = FilterState(
            probability_filter={"high": True, "low": True},
            anomaly_filter={"weight": True},
        )
        assert ids(filter_records(records, filters, now=NOW)) == ["R1"]

    def test_risk_filter(self, records):
        filters = FilterState(risk_filter={"medium": True, "high": True})
        assert ids(filter_records(records, filters, now=NOW)) == ["R1", "R4"]

    def test_no_anomalies_overrides_types(self, records):
        filters = FilterState(anomaly_filter={"no_anomalies": True, "weight": True})
        assert ids(filter_records(records, filters, now=NOW)) == ["R2"]

    def test_quick_filters(self, records):
        only_anomalies = FilterState(quick_filters={"only_anomalies": True})
        high_only = FilterState(quick_filters={"high_probability_only": True})

        assert ids(filter_records(records, only_anomalies, now=NOW)) == ["R1", "R3", "R4"]
        assert ids(filter_records(records, high_only, now=NOW)) == ["R1"]

    def test_recent_uses_arrival_then_transmission_date(self, records):
        filters = FilterState(quick_filters={"recent_only": True})
        assert ids(filter_records(records, filters, now=NOW)) == ["R1", "R3"]

    def test_search_is_case_insensitive_substring(self, records):
        assert ids(filter_records(records, search="УГОЛЬ", now=NOW)) == ["R1"]
        assert ids(filter_records(records, search="n100", now=NOW)) == ["R1", "R2", "R3", "R4"]

    def test_search_treats_yo_as_ye(self, records):
        assert ids(filter_records(records, search="семенов", now=NOW)) == ["R2"]
        assert ids(filter_records(records, search="емкости", now=NOW)) == ["R4"]

    def test_blank_search_ignored(self, records):
        assert len(filter_records(records, search="   ", now=NOW)) == 4

    def test_search_ignores_fields_outside_search_set(self, records):
        assert filter_records(records, search="Казахстан", now=NOW) == []

    def test_date_preset(self, records):
        filters = FilterState(date_filter={"preset": "week"})
        assert ids(filter_records(records, filters, now=NOW)) == ["R3"]

    def test_custom_date_range_inclusive(self, records):
        filters = FilterState(
            date_filter={"preset": "custom", "custom_start": date(2024, 1, 15), "custom_end": date(2024, 1, 16)}
        )
        assert ids(filter_records(records, filters, now=NOW)) == ["R1", "R2"]

    def test_geography(self, records):
        filters = FilterState(
            geography_filter={"departure_countries": ["казахстан"], "destination_countries": ["Китай"]}
        )
        assert ids(filter_records(records, filters, now=NOW)) == ["R1"]

    def test_station(self, records):
        filters = FilterState(geography_filter={"stations": ["Достык"]})
        assert ids(filter_records(records, filters, now=NOW)) == ["R1"]

    def test_cargo_weight_bounds(self, records):
        filters = FilterState(cargo_filter={"weight_min": 10, "weight_max": 64})
        assert ids(filter_records(records, filters, now=NOW)) == ["R1", "R2"]

    def test_cargo_types(self, records):
        filters = FilterState(cargo_filter={"cargo_types": ["Пшеница", "руды железные"]})
        assert ids(filter_records(records, filters, now=NOW)) == ["R2", "R3"]


@pytest.mark.unit
class TestSorting:
    """Tests for sort_records"""

    def test_unsorted_keeps_input_order(self, records):
        assert ids(sort_records(records, SortState())) == ["R1", "R2", "R3", "R4"]

    def test_numeric_ascending_missing_last(self, records):
        sort = SortState(column="total_weight", direction="asc")
        assert ids(sort_records(records, sort)) == ["R4", "R1", "R2", "R3"]

    def test_numeric_descending_missing_still_last(self, records):
        sort = SortState(column="total_weight", direction="desc")
        assert ids(sort_records(records, sort)) == ["R2", "R1", "R4", "R3"]

    def test_text_is_case_insensitive(self, records):
        sort = SortState(column="cargo_name", direction="asc")
        assert ids(sort_records(records, sort)) == ["R4", "R2", "R3", "R1"]

    def test_date_column(self, records):
        sort = SortState(column="transmission_date", direction="desc")
        assert ids(sort_records(records, sort)) == ["R3", "R2", "R1", "R4"]

    def test_probability_by_severity(self, records):
        sort = SortState(column="anomaly_probability", direction="desc")
        assert ids(sort_records(records, sort)) == ["R1", "R4", "R3", "R2"]

    def test_risk_level(self, records):
        sort = SortState(column="risk_level", direction="asc")
        assert ids(sort_records(records, sort)) == ["R2", "R3", "R1", "R4"]

    def test_stable_for_equal_keys(self, make_record):
        items = [make_record(f"R{i}", cargo_name="Пшеница") for i in range(5)]
        sort = SortState(column="cargo_name", direction="asc")
        assert ids(sort_records(items, sort)) == ids(items)

    def test_extra_field_column(self, make_record):
        items = [
            make_record("A", extra_fields={"Пломба": "b"}),
            make_record("B"),
            make_record("C", extra_fields={"Пломба": "a"}),
        ]
        sort = SortState(column="Пломба", direction="asc")
        assert ids(sort_records(items, sort)) == ["C", "A", "B"]


@pytest.mark.unit
class TestQueryRecords:
    """Tests for query_records"""

    def test_pagination(self, records):
        result = query_records(records, page=2, page_size=3, now=NOW)

        assert ids(result.items) == ["R4"]
        assert result.total_count == 4
        assert result.total_pages == 2

    def test_page_past_end_is_empty(self, records):
        result = query_records(records, page=5, page_size=3, now=NOW)
        assert result.items == []
        assert result.total_count == 4

    def test_empty_input_has_one_page(self):
        result = query_records([], now=NOW)
        assert result.total_pages == 1
        assert result.total_count == 0

    def test_total_count_is_before_pagination(self, records):
        filters = FilterState(quick_filters={"only_anomalies": True})
        sort = SortState(column="total_weight", direction="desc")

        result = query_records(records, filters, sort, page=1, page_size=2, now=NOW)

        assert ids(result.items) == ["R1", "R4"]
        assert result.total_count == 3

    @pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_paging(self, records, page, page_size):
        with pytest.raises(ValueError):
            query_records(records, page=page, page_size=page_size)

    def test_input_not_mutated(self, records):
        before = list(records)
        query_records(records, sort=SortState(column="total_weight", direction="desc"), now=NOW)
        assert records == before

    @given(st.lists(st.sampled_from(["high", "elevated", "medium", "low"]), max_size=30))
    def test_property_deterministic(self, probabilities):
        """Property test: identical inputs give identical results"""
        items = [
            ImportedRecord(id=f"R{i}", order_number=f"N{i}", anomaly_probability=p)
            for i, p in enumerate(probabilities)
        ]
        sort = SortState(column="anomaly_probability", direction="asc")

        first = query_records(items, sort=sort, page_size=7, now=NOW)
        second = query_records(items, sort=sort, page_size=7, now=NOW)

        assert first == second
        assert first.total_count == len(items)


@pytest.mark.unit
def test_available_values(records):
    assert available_values(records, "destination_country_name") == ["Китай", "Россия"]
    assert available_values(records, "cargo_name") == ["Ёмкости", "пшеница", "Руды железные", "Уголь каменный"]
