"""Cross-reference active clients with the potential-client universe."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Sequence

from ...data.region_lookup import resolve_region
from ...models.domain import UNRESOLVED_REGION, Client, PotentialClient, RegionCoverage
from ..address import normalize_address_key, parse_address

COVERAGE_WEIGHT = 0.4
GAP_WEIGHT = 0.6
# A gap of 500 uncovered points saturates the gap score.
GAP_SCORE_DIVISOR = 5.0

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PotentialMatch:
    coverage: list[RegionCoverage] = field(default_factory=list)
    free_by_region: dict[str, list[PotentialClient]] = field(default_factory=dict)
    region_counts: dict[str, int] = field(default_factory=dict)
    covered_keys: set[str] = field(default_factory=set)

    def coverage_for(self, region: str) -> RegionCoverage | None:
        return next((item for item in self.coverage if item.region == region), None)


def potential_region(client: PotentialClient) -> str:
    """Region of an OKB entry: its region column, then its city, then its address."""

    for candidate in (client.region, client.city):
        if candidate:
            resolution = resolve_region(candidate)
            if resolution.resolved:
                return resolution.region
    return parse_address(client.address).region


def coverage_metrics(region: str, active_count: int, potential_count: int, covered_count: int) -> RegionCoverage:
    coverage_pct = min(100.0, active_count / potential_count * 100) if potential_count > 0 else 0.0
    gap = max(0, potential_count - active_count)
    priority = COVERAGE_WEIGHT * (100.0 - coverage_pct) + GAP_WEIGHT * min(100.0, gap / GAP_SCORE_DIVISOR)
    return RegionCoverage(
        region=region,
        active_count=active_count,
        potential_count=potential_count,
        covered_count=covered_count,
        coverage_pct=round(coverage_pct, 2),
        gap=gap,
        priority_score=round(priority, 2),
    )


def match_potential(
    clients: Sequence[Client],
    potential_clients: Sequence[PotentialClient],
    min_potential: int = 0,
) -> PotentialMatch:
    """Compute per-region coverage of the potential universe by active clients.

    A potential client counts as covered only when its normalized address
    equals an active client's key. Clients without coordinates borrow them
    from a matching potential entry.
    """

    active_keys = {client.key: client for client in clients if client.status == "active"}
    active_by_region: Counter[str] = Counter(
        client.region for client in active_keys.values() if client.region and client.region != UNRESOLVED_REGION
    )

    match = PotentialMatch()
    potential_by_region: Counter[str] = Counter()
    covered_by_region: Counter[str] = Counter()
    free_by_region: dict[str, list[PotentialClient]] = defaultdict(list)

    for entry in potential_clients:
        region = potential_region(entry)
        if region == UNRESOLVED_REGION:
            continue
        entry.region = region
        potential_by_region[region] += 1
        key = normalize_address_key(entry.address)
        client = active_keys.get(key) if key else None
        if client is None:
            free_by_region[region].append(entry)
            continue
        covered_by_region[region] += 1
        match.covered_keys.add(key)
        if not client.has_coordinates and entry.latitude is not None and entry.longitude is not None:
            client.latitude, client.longitude = entry.latitude, entry.longitude

    for region in sorted(set(potential_by_region) | set(active_by_region)):
        potential_count = potential_by_region.get(region, 0)
        if potential_count < min_potential:
            continue
        match.coverage.append(
            coverage_metrics(region, active_by_region.get(region, 0), potential_count, covered_by_region.get(region, 0))
        )

    match.coverage.sort(key=lambda item: (-item.priority_score, item.region))
    match.free_by_region = dict(free_by_region)
    match.region_counts = dict(potential_by_region)
    logger.info(
        "Matched %d potential clients across %d regions (%d covered)",
        sum(potential_by_region.values()),
        len(match.coverage),
        len(match.covered_keys),
    )
    return match
