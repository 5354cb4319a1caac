"""
Rule engine applying record rules to imported records.
"""

from typing import Any

from transit_monitor.core.models import ImportedRecord, ValidationResult
from transit_monitor.core.validators import (
    AnyOfRequiredValidator,
    BaseValidator,
    DateFormatValidator,
    RangeValidator,
    RegexValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)


class RuleEngine:
    """
    Applies configured rules to records in order, collecting every failure.

    Records are validated in their flat form, so rules can target typed
    fields and extra columns alike.
    """

    VALIDATOR_REGISTRY: dict[str, type[BaseValidator]] = {
        "required_field": RequiredFieldValidator,
        "any_of_required": AnyOfRequiredValidator,
        "type_check": TypeValidator,
        "date_format": DateFormatValidator,
        "range": RangeValidator,
        "regex": RegexValidator,
    }

    def __init__(self, rules: list[dict[str, Any]]):
        """
        Args:
            rules: Rule configurations, each containing rule_name, rule_type,
                field_name, and optionally parameters, severity
                ("error" or "warning") and enabled

        Raises:
            ValueError: On an unknown rule type or invalid parameters
        """
        self.rules = rules
        self.validators: list[tuple[str, str, BaseValidator]] = []
        self._build_validators()

    def _build_validators(self) -> None:
        for rule in self.rules:
            if not rule.get("enabled", True):
                continue

            rule_name = rule["rule_name"]
            rule_type = rule["rule_type"]

            validator_class = self.VALIDATOR_REGISTRY.get(rule_type)
            if not validator_class:
                raise ValueError(f"Unknown rule type: {rule_type}")

            try:
                validator = validator_class(rule["field_name"], rule.get("parameters", {}))
            except ValueError as e:
                raise ValueError(f"Failed to create validator for rule '{rule_name}': {e}") from e
            self.validators.append((rule_name, rule.get("severity", "error"), validator))

    def validate_payload(self, record_id: str, payload: dict[str, Any]) -> ValidationResult:
        """Validate a flat record mapping."""
        passed_rules = []
        failed_rules = []
        warnings = []
        messages = []

        for rule_name, severity, validator in self.validators:
            value = payload.get(validator.field_name)
            try:
                validator.validate(value, payload)
                passed_rules.append(rule_name)
            except ValidationError as e:
                messages.append(str(e))
                if severity == "error":
                    failed_rules.append(rule_name)
                else:
                    warnings.append(rule_name)

        return ValidationResult(
            record_id=record_id,
            passed=not failed_rules,
            passed_rules=passed_rules,
            failed_rules=failed_rules,
            warnings=warnings,
            messages=messages,
        )

    def validate_record(self, record: ImportedRecord | dict[str, Any]) -> ValidationResult:
        """
        Validate one record against all rules.

        Args:
            record: An ImportedRecord or its flat mapping

        Returns:
            ValidationResult with per-rule outcomes
        """
        payload = record.to_flat_dict() if isinstance(record, ImportedRecord) else dict(record)
        return self.validate_payload(str(payload.get("id") or ""), payload)

    def validate_batch(self, records: list[ImportedRecord]) -> list[ValidationResult]:
        return [self.validate_record(record) for record in records]

    def get_rule_summary(self) -> dict[str, Any]:
        """Rule counts by type and by severity."""
        by_type: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        for _, severity, validator in self.validators:
            by_type[validator.rule_type] = by_type.get(validator.rule_type, 0) + 1
            by_severity[severity] = by_severity.get(severity, 0) + 1
        return {
            "total_rules": len(self.validators),
            "rules_by_type": by_type,
            "rules_by_severity": by_severity,
        }
