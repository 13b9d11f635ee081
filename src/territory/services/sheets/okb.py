"""Load the potential-client universe (OKB) from its spreadsheet."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ...config import settings
from ...models.domain import PotentialClient
from ..ingest.parser import parse_number
from .client import SheetsClient, quote_sheet_title

OKB_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("наименование", "название", "name"),
    "address": ("адрес", "address"),
    "region": ("субъект", "регион", "область", "region"),
    "city": ("город", "населенный пункт", "city"),
    "type": ("тип", "канал", "категория", "type"),
    "latitude": ("широта", "lat"),
    "longitude": ("долгота", "lon", "lng"),
}

logger = logging.getLogger(__name__)


def _header_index(headers: Sequence[str], aliases: Sequence[str], claimed: set[int]) -> Optional[int]:
    for alias in aliases:
        for index, header in enumerate(headers):
            if index not in claimed and alias in header:
                return index
    return None


def _text(row: Sequence[Any], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(row) or row[index] is None:
        return None
    value = str(row[index]).strip()
    return value or None


def parse_potential_clients(values: Sequence[Sequence[Any]]) -> list[PotentialClient]:
    """Turn raw sheet values (header row first) into ``PotentialClient`` records."""

    if not values:
        return []
    headers = [str(cell or "").strip().lower().replace("ё", "е") for cell in values[0]]
    columns: dict[str, Optional[int]] = {}
    claimed: set[int] = set()
    for name in ("address", "name", "region", "city", "type", "latitude", "longitude"):
        index = _header_index(headers, OKB_COLUMN_ALIASES[name], claimed)
        columns[name] = index
        if index is not None:
            claimed.add(index)

    clients: list[PotentialClient] = []
    for row in values[1:]:
        address = _text(row, columns["address"])
        name = _text(row, columns["name"])
        if not address and not name:
            continue
        latitude = parse_number(row[columns["latitude"]]) if _text(row, columns["latitude"]) else None
        longitude = parse_number(row[columns["longitude"]]) if _text(row, columns["longitude"]) else None
        clients.append(
            PotentialClient(
                name=name or address or "",
                address=address or "",
                region=_text(row, columns["region"]),
                city=_text(row, columns["city"]),
                type=_text(row, columns["type"]),
                latitude=latitude,
                longitude=longitude,
                raw={headers[i] or str(i): row[i] for i in range(min(len(headers), len(row)))},
            )
        )
    return clients


def load_potential_clients(
    client: SheetsClient,
    spreadsheet_id: Optional[str] = None,
    sheet_name: Optional[str] = None,
    range_: Optional[str] = None,
) -> list[PotentialClient]:
    spreadsheet = spreadsheet_id or settings.okb_spreadsheet_id
    if not spreadsheet:
        raise ValueError("OKB spreadsheet id is not configured.")
    target = f"{quote_sheet_title(sheet_name or settings.okb_sheet_name)}!{range_ or settings.okb_range}"
    values = client.get_values(spreadsheet, target)
    clients = parse_potential_clients(values)
    logger.info("Loaded %d potential clients from %s", len(clients), target)
    return clients
