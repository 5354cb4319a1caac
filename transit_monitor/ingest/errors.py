"""
Exceptions raised by the import flow.

The parser and file validator report problems as data; these exceptions
are only for an import attempt that cannot go ahead as a whole.
"""


class ImportAbortedError(Exception):
    """Base class for an import that was stopped before touching the store."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)


class FileRejectedError(ImportAbortedError):
    """The file failed type/size validation or is not delimited text."""


class NoValidRowsError(ImportAbortedError):
    """Parsing finished but produced no acceptable rows."""

    def __init__(self, message: str, errors: list[str] | None = None, total_rows: int = 0):
        super().__init__(message, errors)
        self.total_rows = total_rows
