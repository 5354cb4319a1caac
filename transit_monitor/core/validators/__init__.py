"""
Record rule implementations.

Provides validators for required fields, identity fields, types, ISO dates,
ranges and regex patterns.
"""

from .any_of_required_validator import AnyOfRequiredValidator
from .base_validator import BaseValidator, ValidationError
from .date_format_validator import DateFormatValidator
from .range_validator import RangeValidator
from .regex_validator import RegexValidator
from .required_field_validator import RequiredFieldValidator
from .type_validator import TypeValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "AnyOfRequiredValidator",
    "TypeValidator",
    "DateFormatValidator",
    "RangeValidator",
    "RegexValidator",
]
