"""Numeric helpers for risk scoring."""

from .ranking import percentile_rank, round_half_up, safe_mean, sorted_values

__all__ = [
    "percentile_rank",
    "round_half_up",
    "safe_mean",
    "sorted_values",
]
