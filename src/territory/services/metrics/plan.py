"""Per-group growth plan driven by OKB penetration, assortment width and velocity.

Groups with sales grow from their fact by a percentage built from a base rate
plus three corrections. Groups without sales get an entry plan sized from the
region's OKB capacity and the manager's efficiency elsewhere.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ...config import settings
from ...models.domain import AggregatedRow

MARKET_SHARE_TARGET = 0.35
MARKET_SHARE_WEIGHT = 15.0
SHARE_SMOOTHING = 0.3
WIDTH_WEIGHT = 15.0
VELOCITY_WEIGHT = 10.0
CORRECTION_MIN = -5.0
CORRECTION_MAX = 10.0
MAX_GROWTH_PCT = 150.0
MIN_GROWTH_PCT = 5.0

STRONG_MANAGER_RATIO = 1.1
WEAK_MANAGER_RATIO = 0.8
ACQUISITION_STRONG = 12.0
ACQUISITION_AVERAGE = 7.0
ACQUISITION_WEAK = 3.0

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlanFactors:
    base: float = 0.0
    share: float = 0.0
    width: float = 0.0
    velocity: float = 0.0
    acquisition: float = 0.0

    @property
    def total(self) -> float:
        return self.base + self.share + self.width + self.velocity + self.acquisition


@dataclass(slots=True)
class PlanResult:
    plan: float
    growth_pct: float
    market_share: float
    factors: PlanFactors


def normalize_non_linear(value: float, k: float = 0.2) -> float:
    """Pull a 0..1 share towards the middle: 0.5 + c * (1 - k * c^2), c = value - 0.5."""

    centered = max(0.0, min(1.0, value)) - 0.5
    return max(0.0, min(1.0, 0.5 + centered * (1 - k * centered**2)))


def _clamp(value: float, low: float = CORRECTION_MIN, high: float = CORRECTION_MAX) -> float:
    return max(low, min(high, value))


def calculate_plan(
    fact: float,
    active_count: int,
    matched_count: int,
    region_okb: int,
    velocity: float,
    manager_velocity: float,
    global_avg_sku: float,
    global_velocity: float,
    base_rate: float,
) -> PlanResult:
    uncovered = max(0, region_okb - matched_count)
    universe = active_count + uncovered
    market_share = active_count / universe if universe > 0 else 0.0

    factors = PlanFactors(base=base_rate)
    if fact > 0:
        if 0 < market_share < 0.9:
            smoothed = normalize_non_linear(market_share, SHARE_SMOOTHING)
            factors.share = (MARKET_SHARE_TARGET - smoothed) * MARKET_SHARE_WEIGHT
        if global_avg_sku > 0:
            # Each group is a single brand, so its own width is one SKU.
            factors.width = _clamp((global_avg_sku - 1) / global_avg_sku * WIDTH_WEIGHT)
        if global_velocity > 0:
            factors.velocity = _clamp((global_velocity - velocity) / global_velocity * VELOCITY_WEIGHT)
    else:
        efficiency = manager_velocity / global_velocity if global_velocity > 0 else 1.0
        if efficiency > STRONG_MANAGER_RATIO:
            factors.acquisition = ACQUISITION_STRONG
        elif efficiency < WEAK_MANAGER_RATIO:
            factors.acquisition = ACQUISITION_WEAK
        else:
            factors.acquisition = ACQUISITION_AVERAGE

    floor = MIN_GROWTH_PCT if base_rate > MIN_GROWTH_PCT else 0.0
    growth_pct = max(floor, min(MAX_GROWTH_PCT, factors.total))

    if fact > 0:
        plan = fact * (1 + growth_pct / 100)
    elif region_okb > 0 and global_velocity > 0:
        target_clients = math.ceil(region_okb * factors.acquisition / 100 * 0.5)
        plan = max(1.0, target_clients * global_velocity * global_avg_sku)
    else:
        plan = 0.0
    return PlanResult(plan=plan, growth_pct=growth_pct, market_share=market_share, factors=factors)


def enrich_with_plan(
    rows: Sequence[AggregatedRow],
    covered_keys: Iterable[str] = (),
    base_rate: Optional[float] = None,
) -> None:
    """Fill ``plan`` and ``plan_growth_pct`` on every aggregated row in place.

    Penetration is measured per (manager, region): distinct active clients
    against the region's OKB capacity, with ``covered_keys`` naming the
    clients found in the OKB.
    """

    if not rows:
        return
    rate = base_rate if base_rate is not None else settings.plan_base_rate
    covered = set(covered_keys)

    total_volume = sum(row.fact for row in rows)
    total_listings = sum(len(row.client_keys) for row in rows)
    unique_clients = {key for row in rows for key in row.client_keys}
    global_avg_sku = total_listings / len(unique_clients) if unique_clients else 0.0
    global_velocity = total_volume / total_listings if total_listings else 0.0

    active: dict[tuple[str, str], set[str]] = defaultdict(set)
    manager_fact: dict[str, float] = defaultdict(float)
    manager_listings: dict[str, int] = defaultdict(int)
    for row in rows:
        active[(row.manager, row.region)].update(row.client_keys)
        manager_fact[row.manager] += row.fact
        manager_listings[row.manager] += len(row.client_keys)

    for row in rows:
        clients = active[(row.manager, row.region)]
        listings = len(row.client_keys)
        result = calculate_plan(
            fact=row.fact,
            active_count=len(clients),
            matched_count=len(clients & covered),
            region_okb=row.total_market_tts,
            velocity=row.fact / listings if listings else 0.0,
            manager_velocity=(
                manager_fact[row.manager] / manager_listings[row.manager] if manager_listings[row.manager] else 0.0
            ),
            global_avg_sku=global_avg_sku,
            global_velocity=global_velocity,
            base_rate=rate,
        )
        row.plan = round(result.plan, 2)
        row.plan_growth_pct = round(result.growth_pct, 2)
        row.market_share = round(result.market_share * 100, 2)
    logger.info("Planned %d groups at a %.1f%% base rate", len(rows), rate)
