"""Outlier detection and next-best-action suggestions."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...config import settings
from ...models.domain import UNRESOLVED_REGION, AggregatedRow, ChurnMetric, Client, OutlierRow, SuggestedAction

OUTLIER_Z_THRESHOLD = 2.5
OUTLIER_MIN_ROWS = 5
MAX_ACTIONS = 50
CHURN_ACTION_MIN_SCORE = 50
ACTIVATION_FACT_LIMIT = 50.0


def detect_outliers(
    rows: Sequence[AggregatedRow],
    threshold: float = OUTLIER_Z_THRESHOLD,
    min_rows: int = OUTLIER_MIN_ROWS,
) -> list[OutlierRow]:
    """Flag groups whose fact lies more than ``threshold`` deviations from the mean."""

    positive = [row for row in rows if row.fact > 0]
    if len(positive) < min_rows:
        return []
    facts = np.array([row.fact for row in positive], dtype=float)
    std = float(facts.std())
    if std == 0:
        return []
    mean = float(facts.mean())

    outliers: list[OutlierRow] = []
    for row, fact in zip(positive, facts):
        z_score = (float(fact) - mean) / std
        if abs(z_score) <= threshold:
            continue
        if z_score > 0:
            reason = f"Сверх-высокие продажи (Z={z_score:.1f}). Проверьте на опт/дубль."
        else:
            reason = f"Аномально низкие продажи (Z={z_score:.1f})."
        outliers.append(OutlierRow(row=row, z_score=round(z_score, 3), reason=reason))
    return sorted(outliers, key=lambda item: -item.z_score)


def _action(client: Client, kind: str, score: float, reason: str, step: str, potential: float) -> SuggestedAction:
    return SuggestedAction(
        client_key=client.key,
        client_name=client.name,
        address=client.address,
        manager=client.manager,
        type=kind,
        priority_score=round(score, 2),
        reason=reason,
        recommended_step=step,
        fact=client.fact,
        potential=potential,
    )


def generate_next_best_actions(
    clients: Sequence[Client],
    churn_metrics: Sequence[ChurnMetric],
    multiplier: Optional[float] = None,
    limit: int = MAX_ACTIONS,
) -> list[SuggestedAction]:
    """Rank churn, data-fix, activation and growth actions across clients."""

    factor = multiplier if multiplier is not None else settings.potential_multiplier
    churn_by_key = {metric.client_key: metric for metric in churn_metrics}
    actions: list[SuggestedAction] = []

    for client in clients:
        churn = churn_by_key.get(client.key)
        if churn is not None and churn.risk_score > CHURN_ACTION_MIN_SCORE:
            bonus = 20 if client.abc_category == "A" else 0
            actions.append(
                _action(
                    client,
                    "churn",
                    churn.risk_score + bonus,
                    f"{churn.days_since_last_order} дн. без заказа (норма {churn.avg_order_gap})",
                    "Срочный звонок / визит. Предложить акцию на возврат.",
                    client.potential or 0.0,
                )
            )
            continue

        if not client.has_coordinates or client.region == UNRESOLVED_REGION:
            actions.append(
                _action(
                    client,
                    "data_fix",
                    40 + min(20.0, client.fact / 100),
                    "Нет координат или адрес не распознан",
                    "Исправить адрес вручную.",
                    0.0,
                )
            )

        potential = client.potential if client.potential is not None else client.fact * factor
        gap = max(0.0, potential - client.fact)
        growth_pct = gap / client.fact * 100 if client.fact > 0 else 0.0
        if gap > 200 or growth_pct > 50:
            kind = "activation" if client.fact < ACTIVATION_FACT_LIMIT else "growth"
            abc_weight = {"A": 30, "B": 15}.get(client.abc_category, 0)
            step = (
                "Предложить стартовый пакет или пробную партию."
                if kind == "activation"
                else "Расширение ассортимента (cross-sell)."
            )
            actions.append(
                _action(
                    client,
                    kind,
                    min(80.0, gap / 100 * 10 + abc_weight),
                    f"Потенциал роста +{round(gap)} ({round(growth_pct)}%)",
                    step,
                    potential,
                )
            )

    actions.sort(key=lambda action: -action.priority_score)
    return actions[:limit]
