"""
Unit tests for the record store: mutations, notifications, persistence
degradation and loading.
"""

import json
from datetime import datetime

import pytest

from transit_monitor.core.models.imported_record import DERIVED_FIELDS
from transit_monitor.ingest import FixedAnomalyClassifier, parse_csv
from transit_monitor.storage import MemoryKeyValueStorage, RecordStore, StorageError, events

KEY = "gray_transit_imported_data"


class FailingStorage(MemoryKeyValueStorage):
    """Storage whose writes always fail"""

    def __init__(self, error=None):
        super().__init__()
        self.error = error or StorageError("disk unavailable")
        self.removed = []

    def set_item(self, key, value):
        raise self.error

    def remove_item(self, key):
        self.removed.append(key)
        super().remove_item(key)


class EventRecorder:
    def __init__(self, store):
        self.events = []
        store.on_event(self.events.append)

    @property
    def names(self):
        return [event.name for event in self.events]


def records_for(make_record, count, **fields):
    return [make_record(f"R{index}", **fields) for index in range(count)]


@pytest.mark.unit
class TestMutations:
    """Tests for replace, append and clear"""

    def test_replace_installs_collection(self, record_store, make_record):
        record_store.replace(records_for(make_record, 3))
        assert [r.id for r in record_store.get_all()] == ["R0", "R1", "R2"]

        record_store.replace([make_record("X")])
        assert [r.id for r in record_store.get_all()] == ["X"]

    def test_get_all_returns_copy(self, record_store, make_record):
        record_store.replace(records_for(make_record, 2))

        snapshot = record_store.get_all()
        snapshot.clear()

        assert record_store.get_count() == 2

    def test_append_adds_new_ids(self, record_store, make_record):
        record_store.replace([make_record("A")])

        added = record_store.append([make_record("B"), make_record("C")])

        assert added == 2
        assert [r.id for r in record_store.get_all()] == ["A", "B", "C"]

    def test_append_keeps_existing_record_for_duplicate_id(self, record_store, make_record):
        record_store.replace([make_record("X", cargo_name="Пшеница")])

        added = record_store.append([make_record("X", cargo_name="Уголь каменный", total_weight=99.0)])

        assert added == 0
        stored = record_store.get_all()
        assert len(stored) == 1
        assert stored[0].cargo_name == "Пшеница"
        assert stored[0].total_weight is None

    def test_append_drops_repeats_within_batch(self, record_store, make_record):
        added = record_store.append([make_record("A"), make_record("A", cargo_name="other")])

        assert added == 1
        assert record_store.get_all()[0].cargo_name is None

    def test_append_empty_is_idempotent_and_notifies(self, record_store, make_record):
        record_store.replace(records_for(make_record, 2))
        before = record_store.get_all()
        calls = []
        record_store.subscribe(calls.append)

        record_store.append([])

        assert record_store.get_all() == before
        assert len(calls) == 1
        assert calls[0] == before

    def test_clear(self, record_store, make_record):
        record_store.replace(records_for(make_record, 2))
        record_store.clear()

        assert record_store.get_all() == []
        assert json.loads(record_store.storage.get_item(KEY))["data"] == []

    def test_accepts_generators(self, record_store, make_record):
        record_store.replace(make_record(f"G{i}") for i in range(3))
        assert record_store.get_count() == 3


@pytest.mark.unit
class TestSubscriptions:
    """Tests for subscribe and on_event"""

    def test_subscribers_called_in_registration_order(self, record_store, make_record):
        calls = []
        record_store.subscribe(lambda records: calls.append(("first", len(records))))
        record_store.subscribe(lambda records: calls.append(("second", len(records))))

        record_store.replace(records_for(make_record, 2))

        assert calls == [("first", 2), ("second", 2)]

    def test_same_callback_registered_twice_called_twice(self, record_store):
        calls = []
        record_store.subscribe(calls.append)
        record_store.subscribe(calls.append)

        record_store.clear()

        assert len(calls) == 2

    def test_unsubscribe_removes_only_that_registration(self, record_store):
        calls = []
        unsubscribe_first = record_store.subscribe(calls.append)
        record_store.subscribe(calls.append)

        unsubscribe_first()
        unsubscribe_first()
        record_store.clear()

        assert len(calls) == 1

    def test_failing_subscriber_does_not_stop_others(self, record_store):
        calls = []

        def broken(records):
            raise RuntimeError("view crashed")

        record_store.subscribe(broken)
        record_store.subscribe(calls.append)

        record_store.clear()

        assert len(calls) == 1

    def test_subscriber_receives_copy(self, record_store, make_record):
        record_store.subscribe(lambda records: records.clear())
        record_store.replace(records_for(make_record, 2))
        assert record_store.get_count() == 2


@pytest.mark.unit
class TestPersistence:
    """Tests for snapshot selection on write"""

    def test_full_snapshot_written(self, record_store, make_record):
        record_store.replace(records_for(make_record, 2, total_weight=12.5))

        payload = json.loads(record_store.storage.get_item(KEY))

        assert payload["version"] == "1.0"
        assert payload["revision"] == 1
        assert [item["id"] for item in payload["data"]] == ["R0", "R1"]
        assert payload["data"][0]["total_weight"] == 12.5

    def test_revision_increments(self, record_store, make_record):
        record_store.replace([make_record("A")])
        record_store.append([make_record("B")])

        assert json.loads(record_store.storage.get_item(KEY))["revision"] == 2

    def test_stats_only_below_compact_threshold(self, memory_storage, make_record):
        store = RecordStore(memory_storage, budget_bytes=300)
        recorder = EventRecorder(store)

        store.replace(records_for(make_record, 5, anomaly_probability="high"))

        payload = json.loads(memory_storage.get_item(KEY))
        assert payload["isStatsOnly"] is True
        assert payload["totalCount"] == 5
        assert payload["stats"]["high"] == 5
        assert recorder.names == [events.DATA_STORAGE_STATS_ONLY]
        assert store.get_count() == 5

    def test_compact_falls_back_to_stats_only_when_too_large(self, memory_storage, make_record):
        store = RecordStore(memory_storage, budget_bytes=600, compact_threshold=2, sample_size=100)

        store.replace(records_for(make_record, 20))

        payload = json.loads(memory_storage.get_item(KEY))
        assert payload.get("isStatsOnly") is True

    @pytest.mark.slow
    def test_compact_snapshot_for_large_collection(self, memory_storage, make_record):
        store = RecordStore(memory_storage, budget_bytes=500_000)
        recorder = EventRecorder(store)
        records = records_for(make_record, 15_000, cargo_name="Уголь каменный", total_weight=64.0)

        store.replace(records)

        payload = json.loads(memory_storage.get_item(KEY))
        assert payload["isCompact"] is True
        assert payload["totalCount"] == 15_000
        assert len(payload["sampleData"]) == 100
        assert recorder.names == [events.DATA_STORAGE_COMPRESSED]
        assert recorder.events[0].detail == {"total_records": 15_000, "saved_samples": 100}

        reloaded = RecordStore(memory_storage, budget_bytes=500_000)
        assert len(reloaded.get_all()) == 100
        assert reloaded.get_last_import_info()["count"] == 15_000

    def test_quota_exceeded_writes_emergency_snapshot(self, make_record):
        storage = MemoryKeyValueStorage(quota_bytes=600)
        store = RecordStore(storage)
        recorder = EventRecorder(store)

        store.replace(records_for(make_record, 20))

        payload = json.loads(storage.get_item(KEY))
        assert payload["isEmergency"] is True
        assert payload["totalCount"] == 20
        assert "Quota exceeded" in payload["error"]
        assert recorder.names == [events.DATA_STORAGE_EMERGENCY]

    def test_replace_keeps_memory_when_every_write_fails(self, make_record):
        storage = FailingStorage()
        store = RecordStore(storage)
        recorder = EventRecorder(store)
        calls = []
        store.subscribe(calls.append)

        store.replace(records_for(make_record, 3))

        assert store.get_count() == 3
        assert storage.removed == [KEY]
        assert recorder.names == [events.DATA_STORAGE_FAILED]
        assert recorder.events[0].detail["error"] == "disk unavailable"
        assert len(calls) == 1

    def test_unexpected_backend_error_does_not_escape(self, make_record):
        class CrashingStorage(FailingStorage):
            def get_item(self, key):
                raise RuntimeError("backend crashed")

            def remove_item(self, key):
                raise RuntimeError("backend crashed")

        store = RecordStore(CrashingStorage(RuntimeError("backend crashed")))
        recorder = EventRecorder(store)

        store.replace(records_for(make_record, 2))
        assert store.append(records_for(make_record, 3)) == 1
        store.clear()

        assert store.get_count() == 0
        assert recorder.names == [events.DATA_STORAGE_FAILED] * 3
        assert recorder.events[0].detail["error"] == "backend crashed"

    def test_failing_listener_does_not_break_mutation(self, memory_storage, make_record):
        store = RecordStore(memory_storage, budget_bytes=300)

        def broken(event):
            raise RuntimeError("toast failed")

        store.on_event(broken)
        store.replace(records_for(make_record, 5))

        assert store.get_count() == 5

    def test_conflicting_writer_detected(self, memory_storage, make_record):
        first = RecordStore(memory_storage)
        second = RecordStore(memory_storage)
        assert second.get_count() == 0
        recorder = EventRecorder(second)

        first.replace([make_record("A")])
        second.append([make_record("B")])

        assert recorder.names == [events.DATA_STORAGE_CONFLICT]
        assert recorder.events[0].detail == {"expected_revision": 0, "found_revision": 1}
        payload = json.loads(memory_storage.get_item(KEY))
        assert [item["id"] for item in payload["data"]] == ["B"]
        assert payload["revision"] == 2


@pytest.mark.unit
class TestLoading:
    """Tests for lazy loading of persisted snapshots"""

    def test_reload_full_snapshot(self, memory_storage, make_record):
        RecordStore(memory_storage).replace(
            [make_record("A", anomaly_types=["weight"], extra_fields={"Пломба": "123"})]
        )

        record = RecordStore(memory_storage).get_all()[0]

        assert record.id == "A"
        assert record.anomaly_types == ("weight",)
        assert record.extra_fields == {"Пломба": "123"}

    def test_missing_key_loads_empty(self, record_store):
        assert record_store.get_all() == []

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"foo": 1}', '{"isCompact": true}'])
    def test_unreadable_snapshot_discarded(self, memory_storage, raw):
        memory_storage.set_item(KEY, raw)
        store = RecordStore(memory_storage)
        recorder = EventRecorder(store)

        assert store.get_all() == []
        assert recorder.names == [events.DATA_STORAGE_CORRUPT]
        assert memory_storage.get_item(KEY) is None

    def test_stats_only_loads_empty(self, memory_storage):
        memory_storage.set_item(
            KEY, json.dumps({"isStatsOnly": True, "stats": {"total": 7, "low": 7}, "totalCount": 7})
        )
        store = RecordStore(memory_storage)
        recorder = EventRecorder(store)

        assert store.get_all() == []
        assert recorder.names == [events.DATA_LOADED_STATS_ONLY]
        assert store.get_last_import_info()["count"] == 7

    def test_emergency_loads_empty(self, memory_storage):
        memory_storage.set_item(
            KEY, json.dumps({"isEmergency": True, "stats": {"total": 2}, "totalCount": 2, "error": "quota"})
        )
        store = RecordStore(memory_storage)
        recorder = EventRecorder(store)

        assert store.get_all() == []
        assert recorder.events[0].name == events.DATA_LOADED_EMERGENCY
        assert recorder.events[0].detail["error"] == "quota"

    def test_unreadable_records_skipped(self, memory_storage):
        memory_storage.set_item(
            KEY,
            json.dumps({"data": [
                {"id": "A", "anomaly_probability": "low"},
                {"id": "B", "anomaly_probability": "unknown"},
                {"order_number": "N3", "anomaly_probability": "low"},
            ]}),
        )

        assert [r.id for r in RecordStore(memory_storage).get_all()] == ["A"]


@pytest.mark.unit
class TestQueries:
    """Tests for read-only queries"""

    def test_anomaly_stats(self, record_store, make_record):
        record_store.replace([
            make_record("A", anomaly_probability="high"),
            make_record("B", anomaly_probability="high"),
            make_record("C", anomaly_probability="medium"),
        ])

        stats = record_store.get_anomaly_stats()

        assert (stats.total, stats.high, stats.elevated, stats.medium, stats.low) == (3, 2, 0, 1, 0)

    def test_find_records(self, record_store, make_record):
        record_store.replace([
            make_record("A", cargo_name="Пшеница", extra_fields={"Пломба": "1"}),
            make_record("B", cargo_name="Уголь каменный"),
        ])

        assert [r.id for r in record_store.find_records(cargo_name="Пшеница")] == ["A"]
        assert [r.id for r in record_store.find_records(Пломба="1")] == ["A"]
        assert len(record_store.find_records(cargo_name=None)) == 2

    def test_records_by_anomaly_type(self, record_store, make_record):
        record_store.replace([
            make_record("A", anomaly_types=["weight", "time"]),
            make_record("B", anomaly_types=["route"]),
        ])

        assert [r.id for r in record_store.get_records_by_anomaly_type("time")] == ["A"]

    def test_records_by_date_range_inclusive(self, record_store, make_record):
        record_store.replace([
            make_record("A", transmission_date="2024-01-15T10:00:00"),
            make_record("B", transmission_date="2024-01-20T00:00:00"),
            make_record("C", transmission_date="вчера"),
            make_record("D"),
        ])

        found = record_store.get_records_by_date_range(datetime(2024, 1, 15, 10), datetime(2024, 1, 18))

        assert [r.id for r in found] == ["A"]

    def test_validate_record_uses_rules(self, record_store, make_record):
        result = record_store.validate_record(make_record(transmission_date="15.01.2024"))

        assert result.passed is False
        assert result.failed_rules == ["transmission_date_date_format"]

    def test_last_import_info(self, record_store, make_record):
        assert record_store.get_last_import_info() is None

        record_store.replace(records_for(make_record, 2))
        info = record_store.get_last_import_info()

        assert info["count"] == 2
        assert info["type"] == "full"
        assert info["timestamp"]

    def test_storage_info(self, memory_storage, make_record):
        store = RecordStore(memory_storage, budget_bytes=10_000)
        store.replace(records_for(make_record, 2))

        info = store.get_storage_info()

        assert info["size"] == len(memory_storage.get_item(KEY).encode("utf-8"))
        assert info["max_size"] == 10_000
        assert info["usage"] == round(info["size"] / 10_000 * 100, 2)
        assert info["can_store_full"] is True
        assert info["data_type"] == "full"

    def test_storage_info_when_empty(self, record_store):
        info = record_store.get_storage_info()
        assert info["size"] == 0
        assert info["data_type"] == "none"

    @pytest.mark.parametrize(
        "limits",
        [
            {"budget_bytes": 0},
            {"budget_bytes": -1},
            {"compact_threshold": -1},
            {"sample_size": -5},
        ],
    )
    def test_invalid_limits_rejected(self, memory_storage, limits):
        with pytest.raises(ValueError):
            RecordStore(memory_storage, **limits)


@pytest.mark.unit
class TestExport:
    """Tests for export_to_csv"""

    def test_empty_collection(self, record_store):
        assert record_store.export_to_csv() == ""

    def test_header_is_union_in_first_appearance_order(self, record_store, make_record):
        record_store.replace([
            make_record("A", total_weight=12.0),
            make_record("B", cargo_name="Пшеница", extra_fields={"Пломба": "7"}),
        ])

        lines = record_store.export_to_csv().split("\n")

        assert lines[0] == "id;message_code;order_number;total_weight;anomaly_probability;anomaly_types;cargo_name;Пломба"
        assert lines[1] == "A;A1;N1;12;low;;;"
        assert lines[2] == "B;A1;N1;;low;;Пшеница;7"

    def test_values_with_delimiter_quoted(self, record_store, make_record):
        record_store.replace([make_record("A", cargo_name="Уголь; каменный", anomaly_types=["weight", "time"])])

        row = record_store.export_to_csv().split("\n")[1]

        assert row == 'A;A1;N1;"Уголь; каменный";low;weight,time'

    def test_round_trip_through_parser(self, record_store, sample_csv_text):
        classifier = FixedAnomalyClassifier("medium")
        original = parse_csv(sample_csv_text, classifier=classifier).data
        record_store.replace(original)

        reparsed = parse_csv(record_store.export_to_csv(), classifier=classifier)

        assert reparsed.errors == []

        def values(record):
            return {k: v for k, v in record.to_flat_dict().items() if k not in DERIVED_FIELDS}

        assert [values(r) for r in reparsed.data] == [values(r) for r in original]
