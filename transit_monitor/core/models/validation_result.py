"""
ValidationResult model representing the outcome of checking a record against the rule set.
"""

from pydantic import BaseModel, Field, field_validator


class ValidationResult(BaseModel):
    """
    Outcome of validating one record (ephemeral, never persisted).

    Attributes:
        record_id: Which record was validated
        passed: Overall validation status
        passed_rules: Rules that succeeded
        failed_rules: Rules that failed with severity "error"
        warnings: Rules that failed with severity "warning"
        messages: Human-readable failure messages, in rule order
    """

    record_id: str
    passed: bool
    passed_rules: list[str] = Field(default_factory=list)
    failed_rules: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)

    @field_validator('failed_rules')
    @classmethod
    def check_passed_consistency(cls, v, info):
        """Validate that passed=True implies failed_rules is empty."""
        if info.data.get('passed') and len(v) > 0:
            raise ValueError("passed=True but failed_rules is not empty")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "record_id": "N1_20240115T100000_A1_1",
                "passed": False,
                "passed_rules": ["id_required", "identity_any_of"],
                "failed_rules": ["total_weight_range"],
                "warnings": [],
                "messages": ["[range] total_weight: Value -3.0 is less than minimum 0"],
            }
        }
