"""
Import flow orchestration.

Coordinates: validate file -> read text -> parse -> de-duplicate batch ->
replace/append into the record store.
"""

import asyncio
from pathlib import Path

from transit_monitor.core.models import CSVParseResult, ImportedRecord, ImportReport
from transit_monitor.observability.logger import get_logger, log_operation
from transit_monitor.observability.metrics import record_import
from transit_monitor.storage import RecordStore

from .classifier import AnomalyClassifier
from .csv_parser import parse_csv
from .errors import FileRejectedError, NoValidRowsError
from .file_validation import UploadedFile, validate_csv_file

logger = get_logger(__name__)

IMPORT_MODES = ("append", "replace")

NO_VALID_ROWS_MESSAGE = "Файл не содержит валидных данных для импорта"
BINARY_SPREADSHEET_MESSAGE = "Файлы Excel (.xls/.xlsx) необходимо сохранить как CSV с разделителем ';'"

# OLE2 compound document (.xls) and ZIP container (.xlsx)
_SPREADSHEET_SIGNATURES = (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", b"PK\x03\x04")


def is_binary_spreadsheet(content: bytes) -> bool:
    return content.startswith(_SPREADSHEET_SIGNATURES)


def decode_text(content: bytes) -> str:
    """Decode file content as UTF-8, dropping a byte order mark."""
    return content.decode("utf-8-sig", errors="replace")


def deduplicate_batch(records: list[ImportedRecord]) -> tuple[list[ImportedRecord], list[str]]:
    """
    Keep the first record for every id.

    Returns:
        Tuple of (unique records, one message per dropped duplicate)
    """
    seen: set[str] = set()
    unique = []
    messages = []
    for record in records:
        if record.id in seen:
            label = record.order_number or record.message_code or "неизвестно"
            messages.append(f"Дубликат записи: {label}")
            continue
        seen.add(record.id)
        unique.append(record)
    return unique, messages


class ImportService:
    """
    Imports CSV exports into a RecordStore.

    Flow:
    1. Validate file type and size
    2. Read the file (the only suspension point)
    3. Parse rows into records
    4. Drop in-batch duplicate ids
    5. Replace or append into the store
    """

    def __init__(self, store: RecordStore, classifier: AnomalyClassifier | None = None):
        """
        Args:
            store: Target record store
            classifier: Anomaly classifier handed to the parser
        """
        self.store = store
        self.classifier = classifier

    async def import_file(self, path: str | Path, mode: str = "append") -> ImportReport:
        """
        Import a file from disk.

        Args:
            path: CSV file to import
            mode: "append" or "replace"

        Returns:
            ImportReport with the counts of the completed import

        Raises:
            FileRejectedError: If the file fails validation or is a binary spreadsheet
            NoValidRowsError: If no row could be parsed
            ValueError: On an unknown mode
        """
        self._check_mode(mode)
        path = Path(path)

        try:
            upload = UploadedFile.from_path(path)
        except OSError as e:
            record_import(mode, "rejected")
            raise FileRejectedError(f"Cannot open {path}: {e}", [str(e)]) from e

        errors = validate_csv_file(upload)
        if errors:
            record_import(mode, "rejected")
            logger.warning("File rejected", extra={"file_name": upload.name, "errors": errors})
            raise FileRejectedError(f"File {upload.name} rejected: {'; '.join(errors)}", errors)

        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            record_import(mode, "rejected")
            raise FileRejectedError(f"Cannot read {path}: {e}", ["Ошибка чтения файла"]) from e

        if is_binary_spreadsheet(content):
            record_import(mode, "rejected")
            logger.warning("Binary spreadsheet rejected", extra={"file_name": upload.name})
            raise FileRejectedError(BINARY_SPREADSHEET_MESSAGE, [BINARY_SPREADSHEET_MESSAGE])

        return self.import_text(decode_text(content), mode, source=upload.name)

    def import_text(self, text: str, mode: str = "append", source: str = "<text>") -> ImportReport:
        """
        Import already-read CSV text.

        Raises:
            NoValidRowsError: If no row could be parsed
            ValueError: On an unknown mode
        """
        self._check_mode(mode)

        with log_operation("Importing CSV", logger=logger, source=source, mode=mode):
            result = parse_csv(text, classifier=self.classifier)
            if not result.data:
                record_import(mode, "no_valid_rows")
                raise NoValidRowsError(NO_VALID_ROWS_MESSAGE, result.errors, result.total_rows)

            records, duplicate_messages = deduplicate_batch(result.data)
            if mode == "replace":
                self.store.replace(records)
                added = len(records)
            else:
                added = self.store.append(records)

            report = self._build_report(result, added, len(records) - added, duplicate_messages, mode, source)
            record_import(mode, "completed", imported=report.imported, duplicates=len(duplicate_messages))

        logger.info(report.summary(), extra={"source": source, "mode": mode, "store_count": report.store_count})
        return report

    def _build_report(
        self,
        result: CSVParseResult,
        added: int,
        already_stored: int,
        duplicate_messages: list[str],
        mode: str,
        source: str,
    ) -> ImportReport:
        errors = result.errors + duplicate_messages
        return ImportReport(
            mode=mode,
            source=source,
            total_rows=result.total_rows,
            valid_rows=result.valid_rows,
            imported=added,
            duplicates=len(duplicate_messages) + already_stored,
            errors=errors,
            error_count=len(errors),
            warnings=result.warnings,
            store_count=self.store.get_count(),
        )

    @staticmethod
    def _check_mode(mode: str) -> None:
        if mode not in IMPORT_MODES:
            raise ValueError(f"Unknown import mode: {mode} (expected one of {', '.join(IMPORT_MODES)})")
