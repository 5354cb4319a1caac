"""
Filter, sort and page engine.
"""

from .engine import (
    SEARCH_FIELDS,
    available_values,
    filter_records,
    paginate,
    query_records,
    sort_records,
)

__all__ = [
    "SEARCH_FIELDS",
    "query_records",
    "filter_records",
    "sort_records",
    "paginate",
    "available_values",
]
