"""
Application settings.

Settings come from an optional YAML file (``config/settings.yaml`` by
default) and are overridden by ``TRANSIT_MONITOR_*`` environment variables.
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

DEFAULT_SETTINGS_PATH = Path("config/settings.yaml")

ENV_PREFIX = "TRANSIT_MONITOR_"


class ConfigError(ValueError):
    """Raised when settings cannot be loaded or fail validation."""


class Settings(BaseModel):
    """
    Runtime configuration.

    Attributes:
        storage_dir: Directory backing the file key-value storage
        storage_key: Key under which the record snapshot is persisted
        storage_budget_bytes: Largest snapshot written before degrading
        compact_threshold: Record count above which a compact snapshot is tried
        compact_sample_size: Records kept in a compact snapshot
        classifier: Anomaly classifier: "random" or "fixed"
        classifier_seed: Seed for the random classifier (None = unseeded)
        fixed_probability: Category used by the fixed classifier
        rules_path: YAML file with record validation rules
        api_base_url: Base URL of the analytics backend
        api_timeout_seconds: Per-request timeout for the backend facade
        log_level: Log level for the package logger
        log_format: "json" or "text"
    """

    storage_dir: Path = Path(".transit_monitor")
    storage_key: str = Field("gray_transit_imported_data", min_length=1)
    storage_budget_bytes: int = Field(5 * 1024 * 1024, gt=0)
    compact_threshold: int = Field(10_000, ge=0)
    compact_sample_size: int = Field(100, ge=0)
    classifier: Literal["random", "fixed"] = "random"
    classifier_seed: int | None = None
    fixed_probability: Literal["high", "elevated", "medium", "low"] = "low"
    rules_path: Path = Path("config/record_rules.yaml")
    api_base_url: str = "http://localhost:8000/api"
    api_timeout_seconds: float = Field(10.0, gt=0)
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field_name in Settings.model_fields:
        value = os.getenv(ENV_PREFIX + field_name.upper())
        if value is not None and value != "":
            overrides[field_name] = value
    return overrides


def load_settings(path: str | Path | None = None, **overrides: Any) -> Settings:
    """
    Load settings from YAML, environment and explicit overrides.

    Precedence (lowest to highest): defaults, YAML file, environment,
    keyword overrides.

    Args:
        path: YAML settings file; a missing default file is not an error,
            a missing explicit file is
        **overrides: Field values that win over every other source

    Returns:
        Validated Settings

    Raises:
        ConfigError: If the file is unreadable or values fail validation
    """
    values: dict[str, Any] = {}

    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    if settings_path.exists():
        try:
            with open(settings_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {settings_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Settings file {settings_path} must contain a mapping")
        values.update(loaded.get("transit_monitor", loaded))
    elif path is not None:
        raise ConfigError(f"Settings file not found: {settings_path}")

    values.update(_env_overrides())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
