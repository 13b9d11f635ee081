"""Pydantic request/response models for address and analysis endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ParseAddressRequest(BaseModel):
    address: str = Field(..., description="Free-text address to normalize.")


class ParsedAddressModel(_FromDomain):
    region: str
    city: Optional[str] = None
    street: Optional[str] = None
    house: Optional[str] = None
    building: Optional[str] = None
    postal_code: Optional[str] = None
    confidence: float
    source: str
    ambiguous_candidates: list[str] = Field(default_factory=list)
    country: str
    is_resolved: bool
    key: Optional[str] = Field(default=None, description="Grouping key derived from the address.")


class PotentialClientModel(_FromDomain):
    name: str
    address: str
    region: Optional[str] = None
    city: Optional[str] = None
    type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AggregatedRowModel(_FromDomain):
    key: str
    manager: str
    brand: str
    region: str
    city: Optional[str] = None
    fact: float
    potential: float
    growth_potential: float
    growth_rate: float
    potential_tts: int
    total_market_tts: int
    active_tt: int
    plan: float = 0.0
    plan_growth_pct: float = 0.0
    market_share: float = 0.0
    monthly_fact: dict[str, float]
    potential_clients: list[PotentialClientModel] = Field(default_factory=list)
    client_keys: list[str] = Field(default_factory=list)


class ClientModel(_FromDomain):
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
    fact: float
    potential: Optional[float] = None
    status: str
    abc_category: str
    last_updated: Optional[date] = None
    monthly_fact: dict[str, float]


class UnidentifiedRowModel(_FromDomain):
    row_index: int
    manager: str
    address: str
    reason: str
    raw: dict[str, Any] = Field(default_factory=dict)


class RegionCoverageModel(_FromDomain):
    region: str
    active_count: int
    potential_count: int
    covered_count: int
    coverage_pct: float = Field(..., ge=0.0, le=100.0)
    gap: int
    priority_score: float


class ChurnMetricModel(_FromDomain):
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


class OutlierModel(_FromDomain):
    row: AggregatedRowModel
    z_score: float
    reason: str


class SuggestedActionModel(_FromDomain):
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


class FilterOptionsModel(_FromDomain):
    managers: list[str]
    brands: list[str]
    regions: list[str]


class SummaryModel(_FromDomain):
    total_fact: float
    total_potential: float
    total_growth_potential: float
    total_growth_rate: float
    clients: int
    groups: int


class AnalysisResponse(_FromDomain):
    rows: list[AggregatedRowModel]
    clients: list[ClientModel]
    unidentified: list[UnidentifiedRowModel]
    coverage: list[RegionCoverageModel]
    churn: list[ChurnMetricModel]
    outliers: list[OutlierModel]
    actions: list[SuggestedActionModel]
    filters: FilterOptionsModel
    summary: SummaryModel
    column_map: dict[str, str]
    stats: dict[str, int]
    reference_errors: list[str] = Field(default_factory=list)
    run_directory: Optional[str] = None


class ProgressModel(_FromDomain):
    stage: str
    done: int
    total: int
    percent: float
    remaining_seconds: Optional[float] = None
    message: str = ""


class JobCreatedResponse(BaseModel):
    job_id: str
    status: str


class JobStatusResponse(_FromDomain):
    job_id: str
    status: str
    progress: Optional[ProgressModel] = None
    result: Optional[AnalysisResponse] = None
    error: Optional[str] = None
    reference_errors: list[str] = Field(default_factory=list)
