"""Spreadsheet ingestion."""

from .parser import (
    ColumnMap,
    MissingColumnsError,
    ParseResult,
    map_columns,
    parse_date,
    parse_number,
    parse_rows,
)
from .reader import EmptyFileError, UnsupportedFileTypeError, read_table

__all__ = [
    "ColumnMap",
    "EmptyFileError",
    "MissingColumnsError",
    "ParseResult",
    "UnsupportedFileTypeError",
    "map_columns",
    "parse_date",
    "parse_number",
    "parse_rows",
    "read_table",
]
