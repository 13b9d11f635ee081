"""Potential-client matching."""

from .matcher import PotentialMatch, coverage_metrics, match_potential, potential_region

__all__ = ["PotentialMatch", "coverage_metrics", "match_potential", "potential_region"]
