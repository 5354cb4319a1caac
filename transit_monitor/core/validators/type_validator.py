"""
TypeValidator - validates field types, optionally accepting coercible strings.
"""

from typing import Any

from .base_validator import BaseValidator


class TypeValidator(BaseValidator):
    """
    Validates that a field matches the expected type.

    With ``coerce`` (the default) a string that converts cleanly is accepted,
    so "12.5" passes a float rule. Decimal commas ("12,5") are accepted for
    numeric types because source files use them.

    Supported types: int/integer, float/decimal/double, str/string, bool/boolean
    """

    TYPE_MAPPING = {
        "integer": int,
        "int": int,
        "decimal": float,
        "float": float,
        "double": float,
        "string": str,
        "str": str,
        "boolean": bool,
        "bool": bool,
    }

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        expected_type = self.parameters.get("expected_type")
        if not expected_type:
            raise ValueError("TypeValidator requires 'expected_type' parameter")

        if isinstance(expected_type, str):
            self.expected_type = self.TYPE_MAPPING.get(expected_type.lower())
            if not self.expected_type:
                raise ValueError(f"Unsupported type: {expected_type}")
        else:
            self.expected_type = expected_type

        self.coerce = self.parameters.get("coerce", True)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if value is None:
            return

        # bool is an int subclass; never let True pass a numeric rule
        if isinstance(value, bool) and self.expected_type is not bool:
            raise self.fail(f"Expected {self.expected_type.__name__}, got bool")

        if isinstance(value, self.expected_type):
            return
        if self.expected_type is float and isinstance(value, int):
            return

        if not self.coerce:
            raise self.fail(f"Expected {self.expected_type.__name__}, got {type(value).__name__}")

        try:
            self._coerce_type(value)
        except (ValueError, TypeError) as e:
            raise self.fail(
                f"Cannot coerce {type(value).__name__} to {self.expected_type.__name__}: {e}"
            ) from e

    def _coerce_type(self, value: Any) -> Any:
        if self.expected_type is bool:
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in ("true", "1", "yes", "да"):
                    return True
                if lowered in ("false", "0", "no", "нет"):
                    return False
                raise ValueError(f"Cannot parse '{value}' as boolean")
            return bool(value)

        if self.expected_type in (int, float) and isinstance(value, str):
            value = value.strip().replace(" ", "").replace(",", ".", 1)
        return self.expected_type(value)

    @property
    def rule_type(self) -> str:
        return "type_check"
