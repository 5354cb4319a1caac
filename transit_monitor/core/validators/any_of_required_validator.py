"""
AnyOfRequiredValidator - at least one of several identifying fields must be filled.
"""

from typing import Any

from .base_validator import BaseValidator


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


class AnyOfRequiredValidator(BaseValidator):
    """
    Validates that at least one field from ``fields`` has a non-empty value.

    ``field_name`` labels the rule in results; the fields actually checked
    come from the ``fields`` parameter. This is the row-identity check used
    by the CSV parser (order number or message code).

    Parameters:
    - fields: List of field names, at least one of which must be set
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        fields = self.parameters.get("fields")
        if not fields:
            raise ValueError("AnyOfRequiredValidator requires 'fields' parameter")
        if isinstance(fields, str):
            fields = [part.strip() for part in fields.split("|") if part.strip()]
        self.fields: list[str] = list(fields)

    def is_satisfied(self, record: dict[str, Any]) -> bool:
        return any(_is_filled(record.get(name)) for name in self.fields)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if not self.is_satisfied(record):
            raise self.fail(f"At least one of {', '.join(self.fields)} must be set")

    @property
    def rule_type(self) -> str:
        return "any_of_required"
