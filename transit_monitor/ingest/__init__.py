"""
CSV ingestion: file checks, parsing, classification and the import flow.
"""

from .classifier import (
    AnomalyClassifier,
    Classification,
    FixedAnomalyClassifier,
    RandomAnomalyClassifier,
    build_classifier,
)
from .column_mapping import CSV_COLUMN_MAPPING
from .csv_parser import create_preview, generate_record_id, parse_csv, parse_date, parse_number
from .errors import FileRejectedError, ImportAbortedError, NoValidRowsError
from .file_validation import UploadedFile, validate_csv_file
from .importer import ImportService

__all__ = [
    "parse_csv",
    "parse_date",
    "parse_number",
    "generate_record_id",
    "create_preview",
    "validate_csv_file",
    "UploadedFile",
    "CSV_COLUMN_MAPPING",
    "AnomalyClassifier",
    "Classification",
    "RandomAnomalyClassifier",
    "FixedAnomalyClassifier",
    "build_classifier",
    "ImportService",
    "ImportAbortedError",
    "FileRejectedError",
    "NoValidRowsError",
]
