"""Rule-based churn risk scoring from a client's dated order history."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ...models.domain import ChurnMetric, Client

SILENCE_FACTOR = 1.5
EXTREME_SILENCE_FACTOR = 3.0
SILENCE_POINTS = 40
EXTREME_SILENCE_POINTS = 20
VOLUME_DROP_THRESHOLD_PCT = 30.0
VOLUME_DROP_POINTS = 30
CATEGORY_POINTS = {"A": 20, "B": 10}
MAX_SCORE = 100

LEVEL_CRITICAL = "Critical"
LEVEL_HIGH = "High"
LEVEL_MONITOR = "Monitor"


def risk_level(score: float) -> Optional[str]:
    if score >= 80:
        return LEVEL_CRITICAL
    if score > 60:
        return LEVEL_HIGH
    if score > 30:
        return LEVEL_MONITOR
    return None


def score_client(client: Client, as_of: date) -> Optional[ChurnMetric]:
    """Score one client, or None when it has fewer than two dated orders."""

    history = sorted((date.fromisoformat(day), volume) for day, volume in client.daily_fact.items())
    if len(history) < 2:
        return None

    last_day, last_volume = history[-1]
    days_since = (as_of - last_day).days
    gaps = [(later[0] - earlier[0]).days for earlier, later in zip(history, history[1:])]
    avg_gap = sum(gaps) / len(gaps)
    avg_volume = sum(volume for _, volume in history) / len(history)
    volume_drop = 0.0
    if avg_volume > 0 and last_volume < avg_volume:
        volume_drop = (avg_volume - last_volume) / avg_volume * 100

    score = 0
    if days_since > avg_gap * SILENCE_FACTOR:
        score += SILENCE_POINTS
    if days_since > avg_gap * EXTREME_SILENCE_FACTOR:
        score += EXTREME_SILENCE_POINTS
    if volume_drop > VOLUME_DROP_THRESHOLD_PCT:
        score += VOLUME_DROP_POINTS
    score += CATEGORY_POINTS.get(client.abc_category, 0)
    score = min(MAX_SCORE, score)

    level = risk_level(score)
    if level is None:
        return None
    return ChurnMetric(
        client_key=client.key,
        client_name=client.name,
        address=client.address,
        manager=client.manager,
        risk_score=score,
        risk_level=level,
        days_since_last_order=days_since,
        avg_order_gap=round(avg_gap),
        volume_drop_pct=round(volume_drop),
        fact=client.fact,
    )


def calculate_churn_metrics(clients: Sequence[Client], as_of: Optional[date] = None) -> list[ChurnMetric]:
    """Return at-risk clients, highest score first."""

    reference = as_of or date.today()
    metrics: list[ChurnMetric] = []
    for client in clients:
        metric = score_client(client, reference)
        if metric is not None:
            metrics.append(metric)
    return sorted(metrics, key=lambda metric: (-metric.risk_score, metric.client_key))
