"""Domain models for sales rows, resolved addresses and aggregated results."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

UNRESOLVED_REGION = "Регион не определен"
DEFAULT_BRAND = "Без бренда"
DEFAULT_MANAGER = "Не назначен"
UNKNOWN_MONTH = "unknown"


@dataclass(slots=True)
class RawRow:
    """One spreadsheet line mapped onto the semantic schema.

    Optional fields are None when the corresponding column was not found or
    the cell was empty; ``resolved_fields`` names the semantic fields that
    were present for this row.
    """

    manager: str
    brand: str
    address: str
    volume: float
    row_index: int
    client_name: Optional[str] = None
    region_hint: Optional[str] = None
    order_date: Optional[date] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    potential: Optional[float] = None
    channel: Optional[str] = None
    packaging: Optional[str] = None
    resolved_fields: frozenset[str] = frozenset()
    raw: dict = field(default_factory=dict)

    @property
    def month_key(self) -> str:
        if self.order_date is None:
            return UNKNOWN_MONTH
        return f"{self.order_date.year}-{self.order_date.month:02d}"


@dataclass(slots=True)
class ParsedAddress:
    """Canonical interpretation of a free-text address."""

    region: str = UNRESOLVED_REGION
    city: Optional[str] = None
    street: Optional[str] = None
    house: Optional[str] = None
    building: Optional[str] = None
    postal_code: Optional[str] = None
    confidence: float = 0.0
    source: str = "unknown"
    ambiguous_candidates: tuple[str, ...] = ()
    country: str = "Россия"

    @property
    def is_resolved(self) -> bool:
        return self.region != UNRESOLVED_REGION


@dataclass(slots=True)
class CacheEntry:
    """Row of the per-manager coordinate cache."""

    manager: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    history: Optional[str] = None
    comment: Optional[str] = None
    is_deleted: bool = False
    is_invalid: bool = False
    row_number: Optional[int] = None


@dataclass(slots=True)
class ResolvedRow:
    """A raw row together with its resolved address and grouping key."""

    row: RawRow
    address: ParsedAddress
    key: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cache_entry: Optional[CacheEntry] = None


@dataclass(slots=True)
class UnidentifiedRow:
    """Row surfaced to the user for manual correction."""

    row_index: int
    manager: str
    address: str
    reason: str
    raw: dict = field(default_factory=dict)


@dataclass(slots=True)
class Client:
    """Trade point assembled from one or more transaction rows."""

    key: str
    name: str
    address: str
    manager: str
    brand: str
    region: str
    city: Optional[str] = None
    channel: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    fact: float = 0.0
    potential: Optional[float] = None
    status: str = "active"
    abc_category: str = "C"
    last_updated: Optional[date] = None
    monthly_fact: dict[str, float] = field(default_factory=dict)
    daily_fact: dict[str, float] = field(default_factory=dict)
    rows: list[ResolvedRow] = field(default_factory=list)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(slots=True)
class PotentialClient:
    """Entry of the external potential-client universe (OKB)."""

    name: str
    address: str
    region: Optional[str] = None
    city: Optional[str] = None
    type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    raw: dict = field(default_factory=dict)


@dataclass(slots=True)
class RegionCoverage:
    region: str
    active_count: int
    potential_count: int
    covered_count: int
    coverage_pct: float
    gap: int
    priority_score: float


@dataclass(slots=True)
class AggregatedRow:
    """Fact and potential for one (manager, brand, region) combination."""

    key: str
    manager: str
    brand: str
    region: str
    city: Optional[str]
    fact: float = 0.0
    potential: float = 0.0
    growth_potential: float = 0.0
    growth_rate: float = 0.0
    potential_tts: int = 0
    total_market_tts: int = 0
    active_tt: int = 0
    plan: float = 0.0
    plan_growth_pct: float = 0.0
    market_share: float = 0.0
    monthly_fact: dict[str, float] = field(default_factory=dict)
    potential_clients: list[PotentialClient] = field(default_factory=list)
    client_keys: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ChurnMetric:
    client_key: str
    client_name: str
    address: str
    manager: str
    risk_score: float
    risk_level: str
    days_since_last_order: int
    avg_order_gap: int
    volume_drop_pct: int
    fact: float


@dataclass(slots=True)
class OutlierRow:
    row: AggregatedRow
    z_score: float
    reason: str


@dataclass(slots=True)
class SuggestedAction:
    client_key: str
    client_name: str
    address: str
    manager: str
    type: str
    priority_score: float
    reason: str
    recommended_step: str
    fact: float
    potential: float


@dataclass(slots=True)
class FilterOptions:
    managers: list[str]
    brands: list[str]
    regions: list[str]


@dataclass(slots=True)
class SummaryTotals:
    total_fact: float
    total_potential: float
    total_growth_potential: float
    total_growth_rate: float
    clients: int
    groups: int


@dataclass(slots=True)
class EtrState:
    """Exponential smoothing state for remaining-time estimates.

    Created fresh for every run; ``update_etr`` returns a new instance.
    """

    seconds_per_item: float = 0.0
    samples: int = 0
