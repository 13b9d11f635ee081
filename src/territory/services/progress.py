"""Estimated time remaining for long-running analysis steps."""

from __future__ import annotations

import math
import time
from typing import Optional

from ..models.domain import EtrState

SMOOTHING_FACTOR = 0.1


def update_etr(
    state: EtrState,
    started_at: float,
    done: int,
    total: int,
    now: Optional[float] = None,
) -> tuple[EtrState, float]:
    """Fold the latest throughput sample into ``state``.

    Returns the new state and the remaining seconds (``inf`` before the first
    item completes). ``state`` itself is left untouched, so every run owns its
    own smoothing history.
    """

    if done < 1:
        return state, math.inf
    elapsed = (now if now is not None else time.monotonic()) - started_at
    current = max(elapsed, 0.0) / done
    if state.samples == 0:
        smoothed = current
    else:
        smoothed = SMOOTHING_FACTOR * current + (1 - SMOOTHING_FACTOR) * state.seconds_per_item
    remaining = smoothed * max(total - done, 0)
    return EtrState(seconds_per_item=smoothed, samples=state.samples + 1), remaining


def format_remaining(seconds: float) -> str:
    """Human readable remaining time, e.g. "Осталось ~ 1 мин 30 сек"."""

    if math.isnan(seconds) or math.isinf(seconds) or seconds <= 1:
        return "расчет времени..."
    minutes = int(seconds // 60)
    rest = round(seconds % 60)
    if rest == 60:
        minutes, rest = minutes + 1, 0
    parts = ["~"]
    if minutes > 0:
        parts.append(f"{minutes} мин")
    if rest > 0 or minutes == 0:
        parts.append(f"{rest} сек")
    return "Осталось " + " ".join(parts)
