"""Map raw spreadsheet rows onto the semantic sales-row schema."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from ...models.domain import DEFAULT_BRAND, DEFAULT_MANAGER, RawRow
from .reader import EmptyFileError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("address", "manager", "volume")

# Ordered by priority: the first alias found in any header claims the column.
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "address": ("адрес тт", "фактический адрес", "адрес доставки", "адрес", "address"),
    "manager": ("рм", "региональный менеджер", "менеджер", "ответственный", "manager"),
    "volume": ("вес", "объем", "факт", "количество", "продажи", "отгрузки", "кг", "тонн", "volume", "qty"),
    "brand": ("торговая марка", "бренд", "brand"),
    "client_name": ("наименование", "название тт", "контрагент", "клиент", "client"),
    "region_hint": ("субъект", "регион", "область", "region"),
    "order_date": ("дата", "период", "месяц", "date"),
    "latitude": ("широта", "latitude", "lat"),
    "longitude": ("долгота", "longitude", "lon", "lng"),
    "potential": ("потенциал", "potential"),
    "channel": ("канал продаж", "тип тт", "сегмент", "канал", "channel"),
    "packaging": ("вид упаковки", "фасовка", "упаковка", "packaging"),
}

FIELD_LABELS: dict[str, str] = {
    "address": "Адрес",
    "manager": "Менеджер (РМ)",
    "volume": "Объём / вес",
}

# Aliases this short only match a whole header ("РМ", not "фирма").
_EXACT_ALIAS_MAX_LENGTH = 2

_TOTAL_ROW_RE = re.compile(r"^(?:итого|всего|total)\b")
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_MANAGER_STOP_WORDS = (
    "нет специализации", "без ", "для ", "корм", "специализ", "продук", "товар",
)
_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d.%m.%y", "%d/%m/%Y", "%Y.%m.%d", "%Y-%m", "%Y.%m", "%m.%Y")
_EXCEL_EPOCH = date(1899, 12, 30)
_NO_VALUE = {"", "-", "—", "n/a", "nan", "none", "null"}


class MissingColumnsError(ValueError):
    """Raised when required columns cannot be located in the header row."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        details = "; ".join(
            f"{FIELD_LABELS.get(name, name)} (expected one of: {', '.join(COLUMN_ALIASES[name])})"
            for name in self.missing
        )
        super().__init__(f"Missing required columns: {details}")


@dataclass(slots=True)
class ColumnMap:
    """Semantic field name to column index for one header row."""

    headers: list[str]
    indices: dict[str, int] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.indices

    def get(self, name: str) -> Optional[int]:
        return self.indices.get(name)

    def header_for(self, name: str) -> Optional[str]:
        index = self.indices.get(name)
        return self.headers[index] if index is not None else None

    def as_dict(self) -> dict[str, str]:
        return {name: self.headers[index] for name, index in self.indices.items()}


@dataclass(slots=True)
class ParseResult:
    rows: list[RawRow]
    column_map: ColumnMap
    header_index: int
    dropped_rows: int = 0
    skipped_total_rows: int = 0
    filtered_rows: int = 0


def _fold_header(value: Any) -> str:
    text = str(value or "").lower().replace("ё", "е").replace("\u00a0", " ")
    return re.sub(r"\s+", " ", text).strip()


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = re.sub(r"\s+", " ", str(value).replace("\u00a0", " ")).strip()
    if text.lower() in _NO_VALUE:
        return None
    return text


def parse_number(value: Any) -> Optional[float]:
    """Coerce a cell to float, accepting "1 234,5" style input."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = re.sub(r"[\s\u00a0]", "", str(value)).replace(",", ".")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_date(value: Any) -> Optional[date]:
    """Parse Excel serials, ``datetime`` objects and common text formats."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if 20000 <= value <= 80000:
            return _EXCEL_EPOCH + timedelta(days=int(value))
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > 10 and (text[10] == "T" or text[10] == " "):
        text = text[:10]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def find_header_row(table: Sequence[Sequence[Any]]) -> int:
    """Index of the first row mentioning an address column, else 0."""

    for index, row in enumerate(table):
        for cell in row:
            folded = _fold_header(cell)
            if "адрес" in folded or "address" in folded:
                return index
    return 0


def _alias_matches(alias: str, header: str) -> bool:
    if len(alias) <= _EXACT_ALIAS_MAX_LENGTH:
        return header == alias
    return alias in header


def map_columns(headers: Sequence[Any]) -> ColumnMap:
    """Locate each semantic field among ``headers``.

    Required fields are claimed first so that a broad optional alias (such
    as "регион") cannot take the column of "Региональный менеджер".
    """

    labels = [str(value or "").strip() for value in headers]
    folded = [_fold_header(value) for value in headers]
    column_map = ColumnMap(headers=labels)
    claimed: set[int] = set()

    ordered = list(REQUIRED_FIELDS) + [name for name in COLUMN_ALIASES if name not in REQUIRED_FIELDS]
    for name in ordered:
        for alias in COLUMN_ALIASES[name]:
            index = next(
                (i for i, header in enumerate(folded) if header and i not in claimed and _alias_matches(alias, header)),
                None,
            )
            if index is not None:
                column_map.indices[name] = index
                claimed.add(index)
                break

    missing = [name for name in REQUIRED_FIELDS if name not in column_map]
    if missing:
        raise MissingColumnsError(missing)
    return column_map


def _valid_manager(value: Optional[str]) -> Optional[str]:
    if not value or len(value) < 2:
        return None
    lowered = value.lower()
    if lowered == "нет" or any(word in lowered for word in _MANAGER_STOP_WORDS):
        return None
    return value


def _coordinate(value: Any, limit: float) -> Optional[float]:
    number = parse_number(value)
    if number is None or abs(number) > limit or number == 0:
        return None
    return number


def _json_cell(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _validate_month(value: Optional[str], label: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not _MONTH_RE.match(value):
        raise ValueError(f"{label} must use the YYYY-MM format, got '{value}'.")
    return value


def _is_total_row(cells: Iterable[Any]) -> bool:
    for cell in cells:
        if isinstance(cell, str) and _TOTAL_ROW_RE.match(_fold_header(cell)):
            return True
    return False


def parse_rows(
    table: Sequence[Sequence[Any]],
    *,
    start_month: Optional[str] = None,
    end_month: Optional[str] = None,
) -> ParseResult:
    """Turn a raw table into ``RawRow`` records.

    Missing required columns raise ``MissingColumnsError`` before any row is
    read. Rows whose volume is absent, non-numeric or not positive are
    dropped and counted; summary rows ("Итого") are skipped and counted.
    Dated rows outside the optional month window are filtered out, undated
    rows are kept.
    """

    if not table:
        raise EmptyFileError("The uploaded table contains no rows.")
    start_month = _validate_month(start_month, "start_month")
    end_month = _validate_month(end_month, "end_month")

    header_index = find_header_row(table)
    column_map = map_columns(table[header_index])
    result = ParseResult(rows=[], column_map=column_map, header_index=header_index)

    def cell(row: Sequence[Any], name: str) -> Any:
        index = column_map.get(name)
        if index is None or index >= len(row):
            return None
        return row[index]

    for row_index in range(header_index + 1, len(table)):
        row = table[row_index]
        if _is_total_row(row):
            result.skipped_total_rows += 1
            continue

        volume = parse_number(cell(row, "volume"))
        if volume is None or volume <= 0:
            result.dropped_rows += 1
            continue

        order_date = parse_date(cell(row, "order_date"))
        if order_date is not None and (start_month or end_month):
            month = f"{order_date.year}-{order_date.month:02d}"
            if (start_month and month < start_month) or (end_month and month > end_month):
                result.filtered_rows += 1
                continue

        values: dict[str, Any] = {
            "client_name": _clean_text(cell(row, "client_name")),
            "region_hint": _clean_text(cell(row, "region_hint")),
            "latitude": _coordinate(cell(row, "latitude"), 90.0),
            "longitude": _coordinate(cell(row, "longitude"), 180.0),
            "potential": parse_number(cell(row, "potential")),
            "channel": _clean_text(cell(row, "channel")),
            "packaging": _clean_text(cell(row, "packaging")),
        }
        manager = _valid_manager(_clean_text(cell(row, "manager")))
        brand = _clean_text(cell(row, "brand"))
        address = _clean_text(cell(row, "address")) or ""

        present = {name for name, value in values.items() if value is not None}
        present.add("volume")
        if manager:
            present.add("manager")
        if brand:
            present.add("brand")
        if address:
            present.add("address")
        if order_date is not None:
            present.add("order_date")

        raw = {
            header: _json_cell(row[index])
            for index, header in enumerate(column_map.headers)
            if header and index < len(row)
        }
        result.rows.append(
            RawRow(
                manager=manager or DEFAULT_MANAGER,
                brand=brand or DEFAULT_BRAND,
                address=address,
                volume=volume,
                row_index=row_index,
                order_date=order_date,
                resolved_fields=frozenset(present),
                raw=raw,
                **values,
            )
        )

    logger.info(
        "Parsed %d rows (dropped %d, totals %d, filtered %d)",
        len(result.rows),
        result.dropped_rows,
        result.skipped_total_rows,
        result.filtered_rows,
    )
    return result
