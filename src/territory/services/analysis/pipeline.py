"""End-to-end analysis run: parse, resolve, group, match, aggregate."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import (
    AggregatedRow,
    CacheEntry,
    ChurnMetric,
    Client,
    EtrState,
    FilterOptions,
    OutlierRow,
    PotentialClient,
    RegionCoverage,
    ResolvedRow,
    SuggestedAction,
    SummaryTotals,
    UnidentifiedRow,
)
from ..clients import assign_abc_categories, group_clients
from ..clients.grouper import resolve_row
from ..ingest import parse_rows
from ..metrics import (
    aggregate,
    build_filter_options,
    calculate_churn_metrics,
    detect_outliers,
    enrich_with_plan,
    generate_next_best_actions,
    summarize,
)
from ..potential import match_potential
from ..progress import format_remaining, update_etr
from ..sheets.coords_cache import index_entries

PROGRESS_STEPS = 50

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnalysisOptions:
    start_month: Optional[str] = None
    end_month: Optional[str] = None
    multiplier: Optional[float] = None
    precision: Optional[int] = None
    min_potential: Optional[int] = None
    plan_base_rate: Optional[float] = None
    as_of: Optional[date] = None


@dataclass(slots=True)
class ProgressUpdate:
    stage: str
    done: int
    total: int
    percent: float
    remaining_seconds: Optional[float] = None
    message: str = ""


@dataclass(slots=True)
class AnalysisResult:
    rows: list[AggregatedRow]
    clients: list[Client]
    unidentified: list[UnidentifiedRow]
    coverage: list[RegionCoverage]
    churn: list[ChurnMetric]
    outliers: list[OutlierRow]
    actions: list[SuggestedAction]
    filters: FilterOptions
    summary: SummaryTotals
    column_map: dict[str, str] = field(default_factory=dict)
    stats: dict[str, int] = field(default_factory=dict)
    reference_errors: list[str] = field(default_factory=list)


ProgressCallback = Callable[[ProgressUpdate], None]


def _notify(callback: Optional[ProgressCallback], stage: str, percent: float, message: str = "", **extra: Any) -> None:
    if callback is None:
        return
    callback(
        ProgressUpdate(
            stage=stage,
            done=extra.get("done", 0),
            total=extra.get("total", 0),
            percent=round(percent, 1),
            remaining_seconds=extra.get("remaining"),
            message=message,
        )
    )


def run_analysis(
    table: Sequence[Sequence[Any]],
    potential_clients: Sequence[PotentialClient] = (),
    cache_entries: Optional[Mapping[str, Sequence[CacheEntry]]] = None,
    options: Optional[AnalysisOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> AnalysisResult:
    """Run the full analysis over an already-read table.

    Parser errors (missing columns, empty input) propagate unchanged; every
    per-row problem is reported through ``unidentified`` or the drop counters.
    """

    options = options or AnalysisOptions()
    multiplier = options.multiplier if options.multiplier is not None else settings.potential_multiplier
    precision = options.precision if options.precision is not None else settings.coordinate_key_precision
    min_potential = options.min_potential if options.min_potential is not None else settings.coverage_min_potential

    _notify(on_progress, "parse", 0.0, "Чтение файла")
    parsed = parse_rows(table, start_month=options.start_month, end_month=options.end_month)
    cache_index = index_entries(cache_entries) if cache_entries else {}

    total = len(parsed.rows)
    step = max(1, total // PROGRESS_STEPS)
    etr = EtrState()
    started_at = time.monotonic()
    resolved: list[ResolvedRow] = []
    deleted = 0
    for done, row in enumerate(parsed.rows, start=1):
        item = resolve_row(row, cache_index)
        if item is None:
            deleted += 1
        else:
            resolved.append(item)
        if on_progress is not None and (done % step == 0 or done == total):
            etr, remaining = update_etr(etr, started_at, done, total)
            _notify(
                on_progress,
                "resolve",
                10 + 60 * done / total,
                format_remaining(remaining),
                done=done,
                total=total,
                remaining=None if math.isinf(remaining) else round(remaining, 1),
            )

    _notify(on_progress, "group", 72.0, "Группировка клиентов")
    grouping = group_clients(resolved, precision=precision)
    assign_abc_categories(grouping.clients)

    _notify(on_progress, "match", 80.0, "Сопоставление с ОКБ")
    match = match_potential(grouping.clients, potential_clients, min_potential=min_potential)

    _notify(on_progress, "aggregate", 90.0, "Расчет метрик")
    rows = aggregate(grouping.clients, match, multiplier)
    enrich_with_plan(rows, match.covered_keys, options.plan_base_rate)
    churn = calculate_churn_metrics(grouping.clients, options.as_of)
    result = AnalysisResult(
        rows=rows,
        clients=grouping.clients,
        unidentified=grouping.unidentified,
        coverage=match.coverage,
        churn=churn,
        outliers=detect_outliers(rows),
        actions=generate_next_best_actions(grouping.clients, churn, multiplier),
        filters=build_filter_options(rows),
        summary=summarize(rows),
        column_map=parsed.column_map.as_dict(),
        stats={
            "parsed_rows": total,
            "dropped_rows": parsed.dropped_rows,
            "skipped_total_rows": parsed.skipped_total_rows,
            "filtered_rows": parsed.filtered_rows,
            "deleted_rows": deleted,
            "unidentified_rows": len(grouping.unidentified),
        },
    )
    _notify(on_progress, "done", 100.0, "Готово", done=total, total=total)
    logger.info(
        "Analysis finished: %d rows, %d clients, %d groups",
        total,
        len(result.clients),
        len(result.rows),
    )
    return result
