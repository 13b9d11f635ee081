"""Per-manager address to coordinate cache kept in a spreadsheet.

Each manager owns one sheet with the columns below. Writes are plain
read-modify-write cycles without any concurrency check, so two writers
touching the same sheet at once can overwrite each other.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import CacheEntry
from ..address import normalize_for_comparison
from ..ingest.parser import parse_number
from .client import SheetsClient, quote_sheet_title

CACHE_HEADER = ("Адрес ТТ", "lat", "lon", "История Изменений", "Комментарии")
DELETED_MARKER = "DELETED"
INVALID_MARKERS = ("не найдено", "некорректный адрес")
HISTORY_TIMESTAMP_FORMAT = "%d.%m.%Y, %H:%M:%S"

_HISTORY_SPLIT_RE = re.compile(r"\r?\n|\s*\|\|\s*")

logger = logging.getLogger(__name__)


def history_addresses(history: Optional[str]) -> list[str]:
    """Previous addresses recorded as ``<address> [timestamp]`` lines."""

    if not history:
        return []
    addresses = []
    for line in _HISTORY_SPLIT_RE.split(history):
        address = line.split("[", 1)[0].strip()
        if address:
            addresses.append(address)
    return addresses


def parse_cache_row(manager: str, row: Sequence[Any], row_number: int) -> Optional[CacheEntry]:
    cells = [str(cell).strip() if cell is not None else "" for cell in row] + [""] * len(CACHE_HEADER)
    address, lat_text, lon_text, history, comment = cells[:5]
    if not address:
        return None
    is_deleted = DELETED_MARKER in (lat_text.upper(), lon_text.upper())
    lowered = f"{lat_text} {lon_text}".lower()
    is_invalid = any(marker in lowered for marker in INVALID_MARKERS)
    latitude = longitude = None
    if not is_deleted and not is_invalid:
        latitude = parse_number(lat_text)
        longitude = parse_number(lon_text)
    return CacheEntry(
        manager=manager,
        address=address,
        latitude=latitude,
        longitude=longitude,
        history=history or None,
        comment=comment or None,
        is_deleted=is_deleted,
        is_invalid=is_invalid,
        row_number=row_number,
    )


def parse_cache_sheet(manager: str, values: Sequence[Sequence[Any]]) -> list[CacheEntry]:
    entries = []
    for index, row in enumerate(values):
        if index == 0 and row and str(row[0]).strip() == CACHE_HEADER[0]:
            continue
        entry = parse_cache_row(manager, row, index + 1)
        if entry is not None:
            entries.append(entry)
    return entries


def index_entries(entries_by_manager: Mapping[str, Iterable[CacheEntry]]) -> dict[str, CacheEntry]:
    """Map normalized current and historical addresses to cache entries.

    Current addresses take precedence over addresses found in history.
    """

    index: dict[str, CacheEntry] = {}
    historical: dict[str, CacheEntry] = {}
    for entries in entries_by_manager.values():
        for entry in entries:
            index.setdefault(normalize_for_comparison(entry.address), entry)
            for previous in history_addresses(entry.history):
                historical.setdefault(normalize_for_comparison(previous), entry)
    for key, entry in historical.items():
        index.setdefault(key, entry)
    return index


def _find_row(values: Sequence[Sequence[Any]], address: str, *, include_history: bool) -> Optional[int]:
    target = normalize_for_comparison(address)
    for index, row in enumerate(values):
        if row and normalize_for_comparison(str(row[0])) == target:
            return index
    if include_history:
        for index, row in enumerate(values):
            history = str(row[3]) if len(row) > 3 and row[3] is not None else ""
            if any(normalize_for_comparison(item) == target for item in history_addresses(history)):
                return index
    return None


class CoordinateCache:
    def __init__(self, client: SheetsClient, spreadsheet_id: Optional[str] = None) -> None:
        self.client = client
        self.spreadsheet_id = spreadsheet_id or settings.cache_spreadsheet_id
        if not self.spreadsheet_id:
            raise ValueError("Coordinate cache spreadsheet id is not configured.")

    def _range(self, title: str, cells: str) -> str:
        return f"{quote_sheet_title(title)}!{cells}"

    def _find_sheet(self, manager: str) -> Optional[str]:
        wanted = manager.strip().lower()
        for title in self.client.get_sheet_titles(self.spreadsheet_id):
            if title.lower() == wanted:
                return title
        return None

    def _ensure_sheet(self, manager: str) -> str:
        title = self._find_sheet(manager)
        if title is not None:
            return title
        title = manager.strip()
        self.client.add_sheet(self.spreadsheet_id, title)
        self.client.append_values(self.spreadsheet_id, self._range(title, "A1"), [list(CACHE_HEADER)], value_input_option="RAW")
        logger.info("Created coordinate cache sheet for %s", title)
        return title

    def _read(self, title: str) -> list[list[Any]]:
        return self.client.get_values(self.spreadsheet_id, self._range(title, "A:E"))

    def load_all(self) -> dict[str, list[CacheEntry]]:
        """Read every manager sheet, tolerating individual sheet failures."""

        titles = self.client.get_sheet_titles(self.spreadsheet_id)
        ranges = {self._range(title, "A:E"): title for title in titles}
        fetched = self.client.fetch_many(self.spreadsheet_id, list(ranges))
        cache: dict[str, list[CacheEntry]] = {}
        for range_, values in fetched.contents.items():
            title = ranges[range_]
            entries = parse_cache_sheet(title, values)
            if entries:
                cache[title] = entries
        if fetched.errors:
            logger.warning("Coordinate cache loaded with %d unreadable sheets", len(fetched.errors))
        return cache

    def append(self, manager: str, rows: Sequence[Sequence[Any]]) -> int:
        """Append ``[address, lat, lon]`` rows whose address is not cached yet."""

        if not rows:
            return 0
        title = self._ensure_sheet(manager)
        existing = {normalize_for_comparison(str(row[0])) for row in self._read(title) if row}
        unique: list[list[Any]] = []
        for row in rows:
            if not row or not row[0]:
                continue
            key = normalize_for_comparison(str(row[0]))
            if key in existing:
                continue
            existing.add(key)
            padded = list(row) + [""] * (len(CACHE_HEADER) - len(row))
            unique.append(padded[: len(CACHE_HEADER)])
        if unique:
            self.client.append_values(self.spreadsheet_id, self._range(title, "A1"), unique)
        return len(unique)

    def update_coordinates(self, manager: str, updates: Sequence[tuple[str, float, float]]) -> int:
        if not updates:
            return 0
        title = self._ensure_sheet(manager)
        values = self._read(title)
        data = []
        for address, latitude, longitude in updates:
            index = _find_row(values, address, include_history=False)
            if index is None:
                continue
            row_number = index + 1
            data.append({"range": self._range(title, f"B{row_number}:C{row_number}"), "values": [[latitude, longitude]]})
        if data:
            self.client.batch_update_values(self.spreadsheet_id, data)
        return len(data)

    def update_address(
        self,
        manager: str,
        old_address: str,
        new_address: str,
        *,
        comment: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> CacheEntry:
        """Rename a cached address, recording the old value in the history column."""

        if not new_address.strip():
            raise ValueError("New address must not be empty.")
        title = self._ensure_sheet(manager)
        values = self._read(title)
        index = _find_row(values, old_address, include_history=True)
        timestamp = (now or datetime.now()).strftime(HISTORY_TIMESTAMP_FORMAT)
        lat_cell: Any = latitude if latitude is not None else ""
        lon_cell: Any = longitude if longitude is not None else ""

        if index is None:
            history = ""
            if normalize_for_comparison(old_address) != normalize_for_comparison(new_address):
                history = f"{old_address} [{timestamp}]"
            row = [new_address, lat_cell, lon_cell, history, comment or ""]
            self.client.append_values(self.spreadsheet_id, self._range(title, "A1"), [row])
            return parse_cache_row(title, row, len(values) + 1)

        current = [str(cell) if cell is not None else "" for cell in values[index]] + [""] * len(CACHE_HEADER)
        row_number = index + 1
        if normalize_for_comparison(current[0]) == normalize_for_comparison(new_address):
            data = []
            if comment is not None:
                data.append({"range": self._range(title, f"E{row_number}"), "values": [[comment]]})
                current[4] = comment
            if latitude is not None and longitude is not None:
                data.append({"range": self._range(title, f"B{row_number}:C{row_number}"), "values": [[latitude, longitude]]})
                current[1], current[2] = str(latitude), str(longitude)
            if data:
                self.client.batch_update_values(self.spreadsheet_id, data)
            return parse_cache_row(title, current, row_number)

        entry_line = f"{current[0]} [{timestamp}]"
        history = f"{current[3]}\n{entry_line}" if current[3] else entry_line
        row = [new_address, lat_cell, lon_cell, history, comment if comment is not None else current[4]]
        self.client.update_values(self.spreadsheet_id, self._range(title, f"A{row_number}:E{row_number}"), [row])
        logger.info("Renamed cached address for %s at row %d", title, row_number)
        return parse_cache_row(title, row, row_number)

    def delete_address(self, manager: str, address: str) -> bool:
        """Soft-delete an address by writing the DELETED marker over its coordinates."""

        title = self._find_sheet(manager)
        if title is None:
            return False
        index = _find_row(self._read(title), address, include_history=False)
        if index is None:
            return False
        row_number = index + 1
        self.client.update_values(
            self.spreadsheet_id,
            self._range(title, f"B{row_number}:C{row_number}"),
            [[DELETED_MARKER, DELETED_MARKER]],
        )
        return True

    def get_address(self, manager: str, address: str) -> Optional[CacheEntry]:
        """Look up an address by its current value or any previous one."""

        title = self._find_sheet(manager)
        if title is None:
            return None
        values = self._read(title)
        index = _find_row(values, address, include_history=True)
        if index is None:
            return None
        entry = parse_cache_row(title, values[index], index + 1)
        if entry is None or entry.is_deleted:
            return None
        return entry
