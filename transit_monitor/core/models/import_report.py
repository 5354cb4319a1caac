"""
ImportReport model summarizing one completed import.
"""

from typing import Literal

from pydantic import BaseModel, Field

ImportMode = Literal["append", "replace"]


class ImportReport(BaseModel):
    """
    Counts reported to the user after an import completes.

    Attributes:
        mode: "append" or "replace"
        source: File name or "<text>" for in-memory input
        total_rows: Data rows seen by the parser
        valid_rows: Rows the parser accepted
        imported: Records actually added to the store
        duplicates: Records dropped as duplicates, in the batch or of ids already stored
        errors: Row-level errors and notices (first entries only when large)
        error_count: Total number of error entries
        warnings: Non-blocking notices
        store_count: Records held by the store after the import
    """

    mode: ImportMode
    source: str = "<text>"
    total_rows: int = Field(0, ge=0)
    valid_rows: int = Field(0, ge=0)
    imported: int = Field(0, ge=0)
    duplicates: int = Field(0, ge=0)
    errors: list[str] = Field(default_factory=list)
    error_count: int = Field(0, ge=0)
    warnings: list[str] = Field(default_factory=list)
    store_count: int = Field(0, ge=0)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "mode": "append",
                "source": "operations.csv",
                "total_rows": 120,
                "valid_rows": 117,
                "imported": 116,
                "duplicates": 1,
                "errors": ["Строка 5: неверное количество колонок (ожидается 43, получено 41)"],
                "error_count": 3,
                "warnings": [],
                "store_count": 516,
            }
        }

    def summary(self) -> str:
        """One-line summary of the counts."""
        return (
            f"Импортировано {self.imported} из {self.total_rows} строк "
            f"(корректных: {self.valid_rows}, дубликатов: {self.duplicates}, ошибок: {self.error_count})"
        )
