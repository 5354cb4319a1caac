"""
RegexValidator - validates field values against a regular expression pattern.
"""

import re
from re import Pattern
from typing import Any

from .base_validator import BaseValidator


class RegexValidator(BaseValidator):
    """
    Validates that a field value matches a regular expression.

    Parameters:
    - pattern: Regular expression (string or compiled Pattern)
    - flags: Optional regex flags (e.g. re.IGNORECASE)
    - full_match: Require the whole value to match (default False)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        pattern = self.parameters.get("pattern")
        if not pattern:
            raise ValueError("RegexValidator requires 'pattern' parameter")

        flags = self.parameters.get("flags", 0)
        self.full_match = self.parameters.get("full_match", False)

        if isinstance(pattern, Pattern):
            self.pattern: Pattern = pattern
        elif isinstance(pattern, str):
            try:
                self.pattern = re.compile(pattern, flags)
            except re.error as e:
                raise ValueError(f"Invalid regex pattern: {e}") from e
        else:
            raise ValueError(f"Pattern must be string or compiled Pattern, got {type(pattern)}")

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if value is None:
            return

        value_str = value if isinstance(value, str) else str(value)
        matcher = self.pattern.fullmatch if self.full_match else self.pattern.match
        if not matcher(value_str):
            raise self.fail(f"Value '{value_str}' does not match pattern '{self.pattern.pattern}'")

    @property
    def rule_type(self) -> str:
        return "regex"
