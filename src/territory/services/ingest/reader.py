"""Read uploaded CSV/XLSX tables into plain rows of cell values."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any

from openpyxl import load_workbook

SUPPORTED_SUFFIXES = frozenset({".csv", ".xlsx"})

logger = logging.getLogger(__name__)


class EmptyFileError(ValueError):
    """Raised when an upload holds no rows at all."""


class UnsupportedFileTypeError(ValueError):
    """Raised for uploads that are neither CSV nor XLSX."""


def _decode(content: bytes) -> str:
    for encoding in ("utf-8-sig", "cp1251"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("utf-8", errors="replace")


def _read_csv(content: bytes) -> list[list[Any]]:
    text = _decode(content)
    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    reader = csv.reader(io.StringIO(text, newline=""), dialect)
    return [list(row) for row in reader]


def _read_xlsx(content: bytes) -> list[list[Any]]:
    workbook = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    try:
        worksheet = workbook.active
        return [list(row) for row in worksheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def read_table(content: bytes, filename: str) -> list[list[Any]]:
    """Return every row of the first sheet (or the CSV body) as a list of cells.

    Completely blank rows are dropped. Raises ``EmptyFileError`` when nothing
    remains and ``UnsupportedFileTypeError`` for other extensions.
    """

    suffix = Path(filename or "").suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileTypeError("Only .csv and .xlsx files are supported.")
    if not content:
        raise EmptyFileError(f"File '{filename}' is empty.")

    rows = _read_csv(content) if suffix == ".csv" else _read_xlsx(content)
    rows = [row for row in rows if any(cell not in (None, "") and str(cell).strip() for cell in row)]
    if not rows:
        raise EmptyFileError(f"File '{filename}' contains no data rows.")
    logger.debug("Read %d rows from %s", len(rows), filename)
    return rows
