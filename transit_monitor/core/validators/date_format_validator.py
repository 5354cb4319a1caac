"""
DateFormatValidator - checks that date fields hold normalized ISO-8601 values.
"""

from datetime import datetime
from typing import Any

from .base_validator import BaseValidator


class DateFormatValidator(BaseValidator):
    """
    Validates that a date field holds an ISO-8601 date or datetime string.

    The parser keeps unparseable dates as raw text instead of rejecting the
    row; this rule is how such values are surfaced afterwards.

    Parameters:
    - allow_empty: Treat an empty string as valid (default True)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.allow_empty = self.parameters.get("allow_empty", True)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if value is None:
            return
        if not isinstance(value, str):
            raise self.fail(f"Expected ISO date string, got {type(value).__name__}")
        if value.strip() == "":
            if self.allow_empty:
                return
            raise self.fail("Date value is empty")
        try:
            datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise self.fail(f"Value '{value}' is not an ISO-8601 date") from e

    @property
    def rule_type(self) -> str:
        return "date_format"
