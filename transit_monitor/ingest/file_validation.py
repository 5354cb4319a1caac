"""
Pre-parse checks on an uploaded file: type and size.
"""

import mimetypes
from pathlib import Path

from pydantic import BaseModel, Field

ALLOWED_CONTENT_TYPES = frozenset({
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})
ALLOWED_EXTENSIONS = frozenset({"csv", "xls", "xlsx"})

MAX_FILE_SIZE = 500 * 1024 * 1024
MIN_FILE_SIZE = 100

TYPE_ERROR = "Поддерживаются только CSV и Excel файлы"
SIZE_LIMIT_ERROR = "Размер файла не должен превышать 500MB"
TOO_SMALL_ERROR = "Файл слишком мал или поврежден"


class UploadedFile(BaseModel):
    """
    File metadata as seen at upload time.

    Attributes:
        name: File name including extension
        size: Size in bytes
        content_type: MIME type reported for the file ("" if unknown)
    """

    name: str
    size: int = Field(..., ge=0)
    content_type: str = ""

    class Config:
        frozen = True

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadedFile":
        """
        Describe a file on disk, guessing its MIME type from the name.

        Raises:
            FileNotFoundError: If the path does not exist
        """
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, size=path.stat().st_size, content_type=content_type or "")


def validate_csv_file(file: UploadedFile | str | Path) -> list[str]:
    """
    Check an upload before it is read.

    The type passes when either the MIME type or the extension is allowed.

    Args:
        file: File metadata, or a path to describe

    Returns:
        User-facing error messages; empty when the file is acceptable
    """
    if not isinstance(file, UploadedFile):
        file = UploadedFile.from_path(file)

    errors = []
    if file.content_type not in ALLOWED_CONTENT_TYPES and file.extension not in ALLOWED_EXTENSIONS:
        errors.append(TYPE_ERROR)
    if file.size > MAX_FILE_SIZE:
        errors.append(SIZE_LIMIT_ERROR)
    if file.size < MIN_FILE_SIZE:
        errors.append(TOO_SMALL_ERROR)
    return errors
