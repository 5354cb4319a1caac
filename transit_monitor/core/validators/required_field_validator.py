"""
RequiredFieldValidator - ensures a field is present and not null/empty.
"""

from typing import Any

from .base_validator import BaseValidator


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required field is present and not null/empty.

    Fails if the field is missing, None, or a blank string (unless the
    ``allow_empty_string`` parameter is set).
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.allow_empty_string = self.parameters.get("allow_empty_string", False)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if self.field_name not in record:
            raise self.fail("Field is missing from record")
        if value is None:
            raise self.fail("Field value is null")
        if not self.allow_empty_string and isinstance(value, str) and value.strip() == "":
            raise self.fail("Field value is empty string")

    @property
    def rule_type(self) -> str:
        return "required_field"
