"""Utilities to serialize analysis results into JSON/CSV artifacts."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ...models.domain import AggregatedRow, RegionCoverage, UnidentifiedRow
from ...schemas.analysis import AnalysisResponse

# Excel only detects UTF-8 in CSV files that start with a byte-order mark.
CSV_BOM = "\ufeff"

AGGREGATED_COLUMNS = (
    ("Регион", "region"),
    ("РМ", "manager"),
    ("Бренд", "brand"),
    ("Город", "city"),
    ("Факт", "fact"),
    ("Потенциал", "potential"),
    ("Потенциал роста", "growth_potential"),
    ("Рост, %", "growth_rate"),
    ("Активных ТТ", "active_tt"),
    ("ТТ в ОКБ", "total_market_tts"),
    ("Свободных ТТ", "potential_tts"),
    ("План", "plan"),
    ("Рост плана, %", "plan_growth_pct"),
)


def _number(value: float) -> str:
    return f"{value:.2f}"


def analysis_response_to_json(response: AnalysisResponse) -> dict:
    return response.model_dump(mode="json")


def aggregated_rows_to_csv(rows: Sequence[AggregatedRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";")
    writer.writerow([label for label, _ in AGGREGATED_COLUMNS])
    for row in rows:
        values = []
        for _, attribute in AGGREGATED_COLUMNS:
            value = getattr(row, attribute)
            values.append(_number(value) if isinstance(value, float) else ("" if value is None else value))
        writer.writerow(values)
    return CSV_BOM + buffer.getvalue()


def coverage_to_csv(coverage: Sequence[RegionCoverage]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";")
    writer.writerow(["Регион", "Активных ТТ", "ТТ в ОКБ", "Покрыто", "Покрытие, %", "Разрыв", "Приоритет"])
    for item in coverage:
        writer.writerow(
            [
                item.region,
                item.active_count,
                item.potential_count,
                item.covered_count,
                _number(item.coverage_pct),
                item.gap,
                _number(item.priority_score),
            ]
        )
    return CSV_BOM + buffer.getvalue()


UNIDENTIFIED_COLUMNS = ["row_index", "manager", "address", "reason"]


def unidentified_to_csv(rows: Sequence[UnidentifiedRow]) -> str:
    buffer = io.StringIO()
    extra = sorted({str(key) for row in rows for key in row.raw} - set(UNIDENTIFIED_COLUMNS))
    writer = csv.DictWriter(buffer, fieldnames=UNIDENTIFIED_COLUMNS + extra, delimiter=";")
    writer.writeheader()
    for row in rows:
        writer.writerow(
            {
                **{key: row.raw.get(key, "") for key in extra},
                "row_index": row.row_index,
                "manager": row.manager,
                "address": row.address,
                "reason": row.reason,
            }
        )
    return CSV_BOM + buffer.getvalue()
