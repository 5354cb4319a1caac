"""
Pytest configuration and fixtures for transit-monitor tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from pathlib import Path

import pytest

from transit_monitor.core.models import ImportedRecord
from transit_monitor.ingest import FixedAnomalyClassifier
from transit_monitor.storage import MemoryKeyValueStorage, RecordStore


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't touch the filesystem or network"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests across ingest, storage and files"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that drive the CLI"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# RECORD FIXTURES
# =======================

@pytest.fixture
def make_record():
    """
    Factory for ImportedRecord with sensible defaults

    Returns:
        Callable taking the record id and any field overrides
    """
    def _make(record_id: str = "N1_20240115T100000_A1_1", **fields) -> ImportedRecord:
        fields.setdefault("order_number", "N1")
        fields.setdefault("message_code", "A1")
        fields.setdefault("anomaly_probability", "low")
        return ImportedRecord(id=record_id, **fields)

    return _make


@pytest.fixture
def fixed_classifier() -> FixedAnomalyClassifier:
    """Classifier giving every row probability "low" and no anomaly types"""
    return FixedAnomalyClassifier("low")


@pytest.fixture
def sample_csv_text() -> str:
    """Small well-formed export with the three recommended headers"""
    return (
        "Код сооб;Номер наряда;Дата передачи;Общ.вес;Наименование груза\n"
        "A1;N1;15.01.2024 10:00:00;12,5;Уголь каменный\n"
        "A2;N2;16.01.2024 11:30:00;64;Пшеница\n"
        "A3;N3;17.01.2024 09:15:00;1 250,75;Руды железные\n"
    )


# =======================
# STORAGE FIXTURES
# =======================

@pytest.fixture
def memory_storage() -> MemoryKeyValueStorage:
    return MemoryKeyValueStorage()


@pytest.fixture
def record_store(memory_storage) -> RecordStore:
    """
    Record store over in-memory storage

    Args:
        memory_storage: Storage fixture

    Returns:
        Empty RecordStore with default budget and thresholds
    """
    return RecordStore(memory_storage)


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> str:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory
    """
    return os.path.join(os.path.dirname(__file__), "fixtures")


@pytest.fixture
def operations_csv(test_data_dir) -> Path:
    """Railway operations export with five valid rows and two rejected ones"""
    return Path(test_data_dir) / "operations.csv"


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_env_vars():
    """
    Set test environment variables

    This fixture loads config/test.env and sets environment variables
    """
    from dotenv import load_dotenv

    env_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)),
        "config",
        "test.env"
    )

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every TRANSIT_MONITOR_* variable for the duration of a test"""
    for name in list(os.environ):
        if name.startswith("TRANSIT_MONITOR_"):
            monkeypatch.delenv(name)


@pytest.fixture
def settings_file(tmp_path) -> Path:
    """
    Settings YAML pointing storage at a temporary directory

    Returns:
        Path to the written settings file
    """
    path = tmp_path / "settings.yaml"
    path.write_text(
        "transit_monitor:\n"
        f"  storage_dir: {tmp_path / 'store'}\n"
        f"  rules_path: {tmp_path / 'no_rules.yaml'}\n"
        "  classifier: fixed\n"
        "  fixed_probability: medium\n"
        "  log_level: WARNING\n"
        "  log_format: text\n",
        encoding="utf-8",
    )
    return path
