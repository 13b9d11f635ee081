"""Aggregate clients into per-(manager, brand, region) metrics."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import DEFAULT_BRAND, AggregatedRow, Client, FilterOptions, SummaryTotals
from ..potential import PotentialMatch

POTENTIAL_SAMPLE_SIZE = 50
_BRAND_SPLIT_RE = re.compile(r"[,;|]")

logger = logging.getLogger(__name__)


def split_brands(value: Optional[str]) -> list[str]:
    """Split a multi-brand cell ("A, B; C") into distinct brand names."""

    brands: list[str] = []
    for part in _BRAND_SPLIT_RE.split(value or ""):
        name = part.strip()
        if name and name not in brands:
            brands.append(name)
    return brands or [DEFAULT_BRAND]


def group_key(manager: str, brand: str, region: str) -> str:
    return f"{region}|{manager}|{brand}".lower()


def _finalize(row: AggregatedRow) -> None:
    row.growth_potential = max(row.potential - row.fact, 0.0)
    row.growth_rate = (row.growth_potential / row.fact * 100) if row.fact > 0 else 0.0
    row.active_tt = len(row.client_keys)


def aggregate(
    clients: Sequence[Client],
    match: Optional[PotentialMatch] = None,
    multiplier: Optional[float] = None,
) -> list[AggregatedRow]:
    """Build one row per (manager, brand, region) present in the data.

    A row's potential is the reported potential when the source row carries
    one, otherwise its volume times ``multiplier``. Multi-brand cells split
    volume and potential evenly between the brands.
    """

    factor = multiplier if multiplier is not None else settings.potential_multiplier
    rows: dict[str, AggregatedRow] = {}

    for client in clients:
        for item in client.rows:
            source = item.row
            brands = split_brands(source.brand)
            share = source.volume / len(brands)
            potential_share = (source.potential / len(brands)) if source.potential is not None else share * factor
            region = item.address.region
            for brand in brands:
                key = group_key(source.manager, brand, region)
                row = rows.get(key)
                if row is None:
                    row = AggregatedRow(
                        key=key,
                        manager=source.manager,
                        brand=brand,
                        region=region,
                        city=item.address.city,
                    )
                    rows[key] = row
                elif row.city is None:
                    row.city = item.address.city
                row.fact += share
                row.potential += potential_share
                row.monthly_fact[source.month_key] = row.monthly_fact.get(source.month_key, 0.0) + share
                if client.key not in row.client_keys:
                    row.client_keys.append(client.key)

    for row in rows.values():
        _finalize(row)
        if match is not None:
            free = match.free_by_region.get(row.region, [])
            row.total_market_tts = match.region_counts.get(row.region, 0)
            row.potential_tts = len(free)
            row.potential_clients = list(free[:POTENTIAL_SAMPLE_SIZE])

    result = sorted(rows.values(), key=lambda row: (-row.fact, row.key))
    logger.info("Aggregated %d clients into %d groups", len(clients), len(result))
    return result


def build_filter_options(rows: Sequence[AggregatedRow]) -> FilterOptions:
    return FilterOptions(
        managers=sorted({row.manager for row in rows}),
        brands=sorted({row.brand for row in rows}),
        regions=sorted({row.region for row in rows}),
    )


def summarize(rows: Sequence[AggregatedRow]) -> SummaryTotals:
    total_fact = sum(row.fact for row in rows)
    total_potential = sum(row.potential for row in rows)
    total_growth = sum(row.growth_potential for row in rows)
    clients = {key for row in rows for key in row.client_keys}
    return SummaryTotals(
        total_fact=total_fact,
        total_potential=total_potential,
        total_growth_potential=total_growth,
        total_growth_rate=(total_growth / total_fact * 100) if total_fact > 0 else 0.0,
        clients=len(clients),
        groups=len(rows),
    )
