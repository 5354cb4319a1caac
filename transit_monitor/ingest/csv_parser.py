"""
CSV parser for railway operations exports.

Turns ``;``-delimited text into ImportedRecord objects. Problems with
individual rows are collected in the result's ``errors`` list; parsing
always runs to the end of the input.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any

from transit_monitor.core.models import DATE_FIELDS, NUMERIC_FIELDS, CSVParseResult, ImportedRecord
from transit_monitor.core.validators import AnyOfRequiredValidator
from transit_monitor.observability.logger import get_logger
from transit_monitor.observability.metrics import parse_duration_seconds, record_parse, track_duration

from .classifier import AnomalyClassifier, RandomAnomalyClassifier
from .column_mapping import (
    DATE_HEADER_MARKER,
    NUMERIC_HEADER_MARKERS,
    RECOMMENDED_HEADERS,
    map_header,
)

logger = get_logger(__name__)

DELIMITER = ";"

LARGE_INPUT_BYTES = 50 * 1024 * 1024
LARGE_INPUT_LINES = 100_000

NO_DATA_ROWS_MESSAGE = "Файл должен содержать заголовки и хотя бы одну строку данных"

_DATE_RE = re.compile(r"(\d{2})\.(\d{2})\.(\d{4})(?:\s+(\d{2}):(\d{2}):(\d{2}))?")
_NUMBER_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_ID_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_]")

_identity_rule = AnyOfRequiredValidator("identity", {"fields": ["order_number", "message_code"]})


def clean_cell(cell: str) -> str:
    """Trim a cell and drop every double quote."""
    return cell.strip().replace('"', "")


def split_lines(text: str) -> list[str]:
    """Split on newlines and drop blank lines."""
    return [line for line in text.split("\n") if line.strip()]


def split_row(line: str) -> list[str]:
    return [clean_cell(cell) for cell in line.split(DELIMITER)]


def parse_date(value: str) -> datetime | None:
    """
    Parse ``DD.MM.YYYY`` with an optional `` HH:MM:SS`` time.

    Returns:
        The datetime, or None for empty or unparseable input
    """
    if not value or not value.strip():
        return None
    match = _DATE_RE.search(value)
    if not match:
        return None
    day, month, year, hour, minute, second = match.groups()
    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour or 0), int(minute or 0), int(second or 0),
        )
    except ValueError:
        return None


def parse_number(value: str) -> float:
    """
    Parse a number written with an optional decimal comma.

    Whitespace is removed, the first comma becomes a point, and the longest
    leading numeric prefix is used ("12,5 т" -> 12.5). Empty, unparseable
    or non-finite input yields 0.
    """
    if not value or not value.strip():
        return 0.0
    cleaned = re.sub(r"\s", "", value).replace(",", ".", 1)
    match = _NUMBER_PREFIX_RE.match(cleaned)
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def generate_record_id(record: dict[str, Any], row_index: int) -> str:
    """
    Build an identifier-safe record id.

    Order number, transmission date, message code and the row index are
    joined with ``_``; every character outside ``[A-Za-z0-9_]`` is removed.
    """
    parts = [
        str(record.get("order_number") or ""),
        str(record.get("transmission_date") or ""),
        str(record.get("message_code") or ""),
        str(row_index),
    ]
    return _ID_UNSAFE_RE.sub("", "_".join(parts))


def coerce_value(header: str, field_name: str, value: str) -> Any:
    """Convert a cell by its source header, or by the field's known type."""
    if (DATE_HEADER_MARKER in header or field_name in DATE_FIELDS) and value:
        parsed = parse_date(value)
        return parsed.isoformat() if parsed else value
    if field_name in NUMERIC_FIELDS or any(marker in header for marker in NUMERIC_HEADER_MARKERS):
        return parse_number(value)
    return value


def _format_count(count: int) -> str:
    return f"{count:,}".replace(",", " ")


def _build_record(
    headers: list[str],
    fields: list[str],
    values: list[str],
    row_index: int,
    line_number: int,
    import_date: str,
    classifier: AnomalyClassifier,
) -> ImportedRecord:
    row: dict[str, Any] = {}
    for header, field_name, value in zip(headers, fields, values):
        row[field_name] = coerce_value(header, field_name, value)

    classification = classifier.classify(row)
    row.update(
        id=generate_record_id(row, row_index),
        import_date=import_date,
        source_line=line_number,
        anomaly_probability=classification.probability,
        anomaly_types=list(classification.types),
    )
    return ImportedRecord.from_flat_dict(row)


def parse_csv(
    text: str,
    *,
    classifier: AnomalyClassifier | None = None,
    now: datetime | None = None,
) -> CSVParseResult:
    """
    Parse delimited text into records.

    The first non-empty line is the header row. A data row is rejected when
    its cell count differs from the header's or when it has neither an
    order number nor a message code; every other row becomes a record.

    Args:
        text: Raw ``;``-delimited text
        classifier: Anomaly classifier (random draw by default)
        now: Timestamp stamped as ``import_date`` (current UTC time by default)

    Returns:
        CSVParseResult; never raises
    """
    classifier = classifier or RandomAnomalyClassifier()
    import_date = (now or datetime.now(timezone.utc)).isoformat()

    records: list[ImportedRecord] = []
    errors: list[str] = []
    warnings: list[str] = []
    total_rows = 0

    with track_duration(parse_duration_seconds):
        try:
            estimated_mb = len(text) * 2 / (1024 * 1024)
            if len(text) * 2 > LARGE_INPUT_BYTES:
                errors.append(
                    f"Внимание: большой объем данных (≈{estimated_mb:.1f}MB). "
                    f"Возможны ограничения сохранения."
                )

            lines = split_lines(text)
            if len(lines) < 2:
                errors.append(NO_DATA_ROWS_MESSAGE)
                lines = []

            if len(lines) > LARGE_INPUT_LINES:
                errors.append(
                    f"Внимание: файл содержит {_format_count(len(lines))} строк. "
                    f"Может потребоваться сжатие при сохранении."
                )

            headers = split_row(lines[0]) if lines else []
            fields = [map_header(header) for header in headers]

            missing = [header for header in RECOMMENDED_HEADERS if header not in headers]
            if lines and missing:
                warnings.append(f"Отсутствуют обязательные заголовки: {', '.join(missing)}")

            for row_index in range(1, len(lines)):
                line_number = row_index + 1
                total_rows += 1
                try:
                    values = split_row(lines[row_index])
                    if len(values) != len(headers):
                        errors.append(
                            f"Строка {line_number}: неверное количество колонок "
                            f"(ожидается {len(headers)}, получено {len(values)})"
                        )
                        continue

                    if not _identity_rule.is_satisfied(dict(zip(fields, values))):
                        errors.append(
                            f"Строка {line_number}: отсутствуют обязательные поля "
                            f"(Номер наряда или Код сооб)"
                        )
                        continue

                    records.append(
                        _build_record(
                            headers, fields, values, row_index, line_number, import_date, classifier
                        )
                    )
                except Exception as e:
                    errors.append(f"Строка {line_number}: ошибка парсинга - {e}")
        except Exception as e:
            logger.error("CSV parsing aborted", exc_info=True)
            errors.append(f"Общая ошибка парсинга: {e}")

    record_parse(len(records), total_rows)
    logger.info(
        "CSV parsed",
        extra={
            "total_rows": total_rows,
            "valid_rows": len(records),
            "error_count": len(errors),
            "classifier": classifier.name,
        },
    )

    return CSVParseResult(
        data=records,
        errors=errors,
        total_rows=total_rows,
        valid_rows=len(records),
        warnings=warnings,
    )


def create_preview(text: str, max_rows: int = 5) -> list[list[str]]:
    """
    Header row plus up to ``max_rows`` data rows, cells cleaned.

    Returns:
        Rows of cells, or [] if the text cannot be split
    """
    try:
        return [split_row(line) for line in split_lines(text)[: max_rows + 1]]
    except Exception:
        logger.warning("Preview failed", exc_info=True)
        return []
