"""
CSVParseResult model representing the outcome of parsing one CSV text.
"""

from pydantic import BaseModel, Field, model_validator

from .imported_record import ImportedRecord


class CSVParseResult(BaseModel):
    """
    Outcome of parsing a CSV text (errors are returned as data, not raised).

    Attributes:
        data: Accepted records, in source order
        errors: Row-level errors and informational large-input notices
        total_rows: Data rows seen (accepted + rejected)
        valid_rows: Data rows accepted
        warnings: Non-blocking notices (e.g. missing recommended headers)
    """

    data: list[ImportedRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    total_rows: int = Field(0, ge=0)
    valid_rows: int = Field(0, ge=0)
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_counts(self):
        """Validate that valid_rows matches data and never exceeds total_rows."""
        if self.valid_rows != len(self.data):
            raise ValueError(
                f"valid_rows ({self.valid_rows}) must equal the number of records ({len(self.data)})"
            )
        if self.valid_rows > self.total_rows:
            raise ValueError("valid_rows cannot exceed total_rows")
        return self

    @property
    def invalid_rows(self) -> int:
        return self.total_rows - self.valid_rows
