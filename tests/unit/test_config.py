"""
Unit tests for settings loading.
"""

from pathlib import Path

import pytest

from transit_monitor.config import ConfigError, Settings, load_settings

REPO_SETTINGS = Path(__file__).resolve().parents[2] / "config" / "settings.yaml"


@pytest.mark.unit
@pytest.mark.usefixtures("clean_env")
class TestLoadSettings:
    """Tests for load_settings"""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        settings = load_settings()

        assert settings == Settings()
        assert settings.storage_key == "gray_transit_imported_data"
        assert settings.storage_budget_bytes == 5 * 1024 * 1024
        assert settings.compact_threshold == 10_000
        assert settings.compact_sample_size == 100

    def test_shipped_settings_file(self):
        settings = load_settings(REPO_SETTINGS)

        assert settings.classifier == "random"
        assert settings.rules_path == Path("config/record_rules.yaml")

    def test_yaml_values(self, settings_file, tmp_path):
        settings = load_settings(settings_file)

        assert settings.storage_dir == tmp_path / "store"
        assert settings.classifier == "fixed"
        assert settings.fixed_probability == "medium"

    def test_flat_yaml_accepted(self, tmp_path):
        path = tmp_path / "flat.yaml"
        path.write_text("compact_threshold: 50\n", encoding="utf-8")

        assert load_settings(path).compact_threshold == 50

    def test_environment_overrides_file(self, settings_file, monkeypatch):
        monkeypatch.setenv("TRANSIT_MONITOR_CLASSIFIER", "random")
        monkeypatch.setenv("TRANSIT_MONITOR_CLASSIFIER_SEED", "42")

        settings = load_settings(settings_file)

        assert settings.classifier == "random"
        assert settings.classifier_seed == 42

    def test_keyword_overrides_win(self, settings_file, monkeypatch, tmp_path):
        monkeypatch.setenv("TRANSIT_MONITOR_STORAGE_DIR", str(tmp_path / "env"))

        settings = load_settings(settings_file, storage_dir=tmp_path / "cli", storage_key=None)

        assert settings.storage_dir == tmp_path / "cli"
        assert settings.storage_key == "gray_transit_imported_data"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(tmp_path / "absent.yaml")
        assert "not found" in str(exc_info.value)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("transit_monitor:\n  classifier: neural\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_settings(path)
        assert "classifier" in str(exc_info.value)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_settings(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("transit_monitor: [\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_settings(path)
        assert "Invalid YAML" in str(exc_info.value)


@pytest.mark.unit
def test_test_env_selects_fixed_classifier(test_env_vars):
    """config/test.env selects the deterministic classifier"""
    assert load_settings(REPO_SETTINGS).classifier == "fixed"
