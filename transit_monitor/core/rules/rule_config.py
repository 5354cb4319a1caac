"""
Rule configuration management.

Loads record rules from YAML files and provides a builder for rule sets
assembled in code, including the built-in default set.
"""

from pathlib import Path
from typing import Any

import yaml


class RuleConfigLoader:
    """
    Loads record rules from a YAML configuration file.

    Expected YAML format:
    ```yaml
    rules:
      id:
        - type: required_field
      identity:
        - type: any_of_required
          params:
            fields: [order_number, message_code]
      total_weight:
        - type: type_check
          params:
            expected_type: float
        - type: range
          severity: warning
          params:
            min: 0
    ```
    """

    SEVERITIES = ("error", "warning")

    def __init__(self, config_path: str | Path):
        """
        Args:
            config_path: Path to the YAML configuration file

        Raises:
            FileNotFoundError: If the file does not exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Rule configuration file not found: {config_path}")

    def load_rules(self) -> list[dict[str, Any]]:
        """
        Load and parse rules from the YAML file.

        Returns:
            List of rule dictionaries suitable for RuleEngine

        Raises:
            ValueError: If YAML is invalid or a rule is malformed
        """
        try:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config, dict) or "rules" not in config:
            raise ValueError("Configuration file must contain 'rules' section")

        field_rules = config["rules"] or {}
        if not isinstance(field_rules, dict):
            raise ValueError("'rules' section must map field names to rule lists")

        rules = []
        for field_name, field_rule_list in field_rules.items():
            if not isinstance(field_rule_list, list):
                raise ValueError(f"Rules for field '{field_name}' must be a list")
            for idx, rule_def in enumerate(field_rule_list):
                rules.append(self._parse_rule(field_name, rule_def, idx))
        return rules

    def _parse_rule(self, field_name: str, rule_def: dict[str, Any], idx: int) -> dict[str, Any]:
        if not isinstance(rule_def, dict) or "type" not in rule_def:
            raise ValueError(f"Rule for field '{field_name}' is missing 'type'")

        rule_type = rule_def["type"]
        rule_name = rule_def.get("name", f"{field_name}_{rule_type}_{idx}")
        parameters = rule_def.get("params", rule_def.get("parameters", {})) or {}

        severity = rule_def.get("severity", "error")
        if severity not in self.SEVERITIES:
            raise ValueError(f"Invalid severity '{severity}' for rule '{rule_name}'. Must be 'error' or 'warning'")

        return {
            "rule_name": rule_name,
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "severity": severity,
            "enabled": rule_def.get("enabled", True),
        }


class RuleConfigBuilder:
    """
    Programmatically build rule configurations (tests, built-in defaults).
    """

    def __init__(self):
        self.rules: list[dict[str, Any]] = []

    def _add(
        self,
        rule_name: str,
        rule_type: str,
        field_name: str,
        parameters: dict[str, Any],
        severity: str = "error",
    ) -> "RuleConfigBuilder":
        self.rules.append({
            "rule_name": rule_name,
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "severity": severity,
            "enabled": True,
        })
        return self

    def add_required_field(self, field_name: str, allow_empty_string: bool = False) -> "RuleConfigBuilder":
        return self._add(
            f"{field_name}_required", "required_field", field_name,
            {"allow_empty_string": allow_empty_string},
        )

    def add_any_of_required(self, name: str, fields: list[str]) -> "RuleConfigBuilder":
        return self._add(f"{name}_any_of", "any_of_required", name, {"fields": list(fields)})

    def add_type_check(self, field_name: str, expected_type: str, coerce: bool = True) -> "RuleConfigBuilder":
        return self._add(
            f"{field_name}_type_check", "type_check", field_name,
            {"expected_type": expected_type, "coerce": coerce},
        )

    def add_date_format(self, field_name: str, severity: str = "error") -> "RuleConfigBuilder":
        return self._add(f"{field_name}_date_format", "date_format", field_name, {}, severity)

    def add_range(
        self,
        field_name: str,
        min_value: float | None = None,
        max_value: float | None = None,
        severity: str = "error",
    ) -> "RuleConfigBuilder":
        params = {}
        if min_value is not None:
            params["min"] = min_value
        if max_value is not None:
            params["max"] = max_value
        return self._add(f"{field_name}_range", "range", field_name, params, severity)

    def add_regex(self, field_name: str, pattern: str, severity: str = "error") -> "RuleConfigBuilder":
        return self._add(f"{field_name}_regex", "regex", field_name, {"pattern": pattern}, severity)

    def build(self) -> list[dict[str, Any]]:
        return list(self.rules)


def default_rules() -> list[dict[str, Any]]:
    """Built-in rule set used when no rules file is configured."""
    builder = (
        RuleConfigBuilder()
        .add_required_field("id")
        .add_any_of_required("identity", ["order_number", "message_code"])
    )
    for field_name in ("transmission_date", "departure_date", "arrival_date", "issue_date"):
        builder.add_date_format(field_name)
    for field_name in ("total_weight", "wagon_amount", "wagon_weight", "distance"):
        builder.add_type_check(field_name, "float")
        builder.add_range(field_name, min_value=0, severity="warning")
    return builder.build()


def load_rules(path: str | Path | None) -> list[dict[str, Any]]:
    """
    Load rules from ``path`` if it exists, else return the default set.

    Raises:
        ValueError: If the file exists but is malformed
    """
    if path is not None and Path(path).exists():
        return RuleConfigLoader(path).load_rules()
    return default_rules()
