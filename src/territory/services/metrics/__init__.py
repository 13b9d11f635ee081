"""Metric aggregation, churn scoring and insights."""

from .aggregator import aggregate, build_filter_options, split_brands, summarize
from .churn import calculate_churn_metrics
from .insights import detect_outliers, generate_next_best_actions
from .plan import calculate_plan, enrich_with_plan

__all__ = [
    "aggregate",
    "build_filter_options",
    "calculate_churn_metrics",
    "calculate_plan",
    "detect_outliers",
    "enrich_with_plan",
    "generate_next_best_actions",
    "split_brands",
    "summarize",
]
