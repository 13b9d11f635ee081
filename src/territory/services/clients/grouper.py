"""Resolve sales rows and merge them into client entities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Optional, Sequence

from ...data.region_lookup import resolve_region
from ...models.domain import (
    CacheEntry,
    Client,
    RawRow,
    ResolvedRow,
    UnidentifiedRow,
)
from ..address import normalize_address_key, normalize_for_comparison, parse_address

GEO_KEY_PREFIX = "geo:"
REASON_NO_ADDRESS = "no_address"
REASON_UNRESOLVED_REGION = "unresolved_region"
ABC_A_SHARE = 80.0
ABC_B_SHARE = 95.0
UNKNOWN_CHANNEL = "Не определен"

# First match wins; keywords are matched as substrings of the padded, lower-cased name.
CHANNEL_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Интернет-канал", ("wildberries", "вайлдберриз", "ozon", "озон", "яндекс", "интернет", "e-com", "маркетплейс")),
    ("Бридер канал", ("питомник", "заводчик", "клуб ", "п-к", "приют", "кинолог")),
    ("Ветеринарный канал", ("вет", "клиника", "госпиталь", "врач", "аптека")),
    ("FMCG", ("ашан", "лента", "магнит", "пятерочка", "перекресток", "окей", "метро", "гипермаркет", "супермаркет")),
    ("Зоо розница", (" ип ", "зоо", "магазин", "лавка", "корм")),
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GroupingResult:
    clients: list[Client] = field(default_factory=list)
    unidentified: list[UnidentifiedRow] = field(default_factory=list)


def geo_key(latitude: float, longitude: float, precision: int = 4) -> str:
    return f"{GEO_KEY_PREFIX}{latitude:.{precision}f},{longitude:.{precision}f}"


def detect_channel(name: Optional[str]) -> str:
    """Guess the sales channel from a trade point name."""

    text = f" {str(name or '').lower().replace('ё', 'е')} "
    for channel, keywords in CHANNEL_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return channel
    return UNKNOWN_CHANNEL


def resolve_row(row: RawRow, cache_index: Optional[Mapping[str, CacheEntry]] = None) -> Optional[ResolvedRow]:
    """Resolve one row, or return None when the cache marks its address deleted.

    Rows without a usable channel get one guessed from the client name.
    """

    if not row.channel or len(row.channel.strip()) < 2:
        row = replace(row, channel=detect_channel(row.client_name or row.address))
    address = row.address
    entry = cache_index.get(normalize_for_comparison(address)) if cache_index and address else None
    if entry is not None:
        if entry.is_deleted:
            return None
        # A match through the history column carries the corrected address.
        address = entry.address or address

    parsed = parse_address(address)
    if row.region_hint:
        hint = resolve_region(row.region_hint)
        if hint.resolved:
            if parsed.region != hint.region:
                parsed.city = None
            parsed.region = hint.region
            parsed.source = "region_hint"
            parsed.confidence = max(parsed.confidence, 0.9)

    latitude, longitude = row.latitude, row.longitude
    if (latitude is None or longitude is None) and entry is not None and not entry.is_invalid:
        if entry.latitude is not None and entry.longitude is not None:
            latitude, longitude = entry.latitude, entry.longitude

    return ResolvedRow(
        row=row,
        address=parsed,
        key=normalize_address_key(address),
        latitude=latitude,
        longitude=longitude,
        cache_entry=entry,
    )


def resolve_rows(
    rows: Iterable[RawRow],
    cache_index: Optional[Mapping[str, CacheEntry]] = None,
) -> list[ResolvedRow]:
    resolved: list[ResolvedRow] = []
    deleted = 0
    for row in rows:
        item = resolve_row(row, cache_index)
        if item is None:
            deleted += 1
            continue
        resolved.append(item)
    if deleted:
        logger.info("Skipped %d rows whose cached address is marked deleted", deleted)
    return resolved


def _unidentified(item: ResolvedRow, reason: str) -> UnidentifiedRow:
    return UnidentifiedRow(
        row_index=item.row.row_index,
        manager=item.row.manager,
        address=item.row.address,
        reason=reason,
        raw=dict(item.row.raw),
    )


def _apply_display_fields(client: Client, item: ResolvedRow) -> None:
    row = item.row
    client.name = row.client_name or row.address or client.name
    client.address = item.cache_entry.address if item.cache_entry and item.cache_entry.address else row.address
    client.manager = row.manager
    client.brand = row.brand
    client.channel = row.channel
    client.region = item.address.region
    client.city = item.address.city


def group_clients(resolved_rows: Sequence[ResolvedRow], precision: int = 4) -> GroupingResult:
    """Merge resolved rows that share a normalized address into clients.

    Rows with no address fall back to a rounded-coordinate key; rows with
    neither are reported as unidentified. Rows whose region could not be
    resolved still form clients and are reported as well. Display fields
    follow the most recently dated row, the first row winning ties.
    """

    result = GroupingResult()
    clients: dict[str, Client] = {}

    for item in resolved_rows:
        key = item.key
        if not key:
            if item.latitude is None or item.longitude is None:
                result.unidentified.append(_unidentified(item, REASON_NO_ADDRESS))
                continue
            key = geo_key(item.latitude, item.longitude, precision)
            item.key = key
        if not item.address.is_resolved:
            result.unidentified.append(_unidentified(item, REASON_UNRESOLVED_REGION))

        row = item.row
        client = clients.get(key)
        if client is None:
            client = Client(key=key, name="", address="", manager="", brand="", region="")
            _apply_display_fields(client, item)
            client.last_updated = row.order_date
            clients[key] = client
        elif row.order_date is not None and (client.last_updated is None or row.order_date > client.last_updated):
            _apply_display_fields(client, item)
            client.last_updated = row.order_date

        client.rows.append(item)
        client.fact += row.volume
        if row.potential is not None:
            client.potential = (client.potential or 0.0) + row.potential
        client.monthly_fact[row.month_key] = client.monthly_fact.get(row.month_key, 0.0) + row.volume
        if row.order_date is not None:
            day = row.order_date.isoformat()
            client.daily_fact[day] = client.daily_fact.get(day, 0.0) + row.volume
        if not client.has_coordinates and item.latitude is not None and item.longitude is not None:
            client.latitude, client.longitude = item.latitude, item.longitude

    result.clients = list(clients.values())
    logger.info(
        "Grouped %d rows into %d clients (%d unidentified)",
        len(resolved_rows),
        len(result.clients),
        len(result.unidentified),
    )
    return result


def assign_abc_categories(clients: Sequence[Client]) -> None:
    """Tag clients A/B/C by their cumulative share of total fact."""

    ordered = sorted(clients, key=lambda client: client.fact, reverse=True)
    total = sum(client.fact for client in ordered)
    running = 0.0
    for client in ordered:
        running += client.fact
        share = (running / total) * 100 if total > 0 else 100.0
        if share <= ABC_A_SHARE:
            client.abc_category = "A"
        elif share <= ABC_B_SHARE:
            client.abc_category = "B"
        else:
            client.abc_category = "C"
