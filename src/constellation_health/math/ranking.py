"""Rank-based normalization helpers."""

import math
from typing import Sequence, Union

import numpy as np

Number = Union[int, float]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``),
    which would shift percentiles and scores that land exactly on .5.
    """
    return int(math.floor(value + 0.5))


def sorted_values(values: Sequence[Number]) -> np.ndarray:
    """Ascending float array, suitable for repeated ``percentile_rank`` calls."""
    return np.sort(np.asarray(values, dtype=float))


def percentile_rank(value: Number, values: Union[Sequence[Number], np.ndarray]) -> int:
    """
    Rank-based percentile of ``value`` within ``values`` (0-100).

    Finds the index of the first element >= value in the sorted data:
        - empty data           -> 0
        - larger than all      -> 100
        - found at index 0     -> 0
        - otherwise            -> round(index / n * 100)

    Args:
        value: Value to rank
        values: Reference data; pre-sorted arrays from ``sorted_values`` are
            used as-is

    Returns:
        Percentile rank in [0, 100]
    """
    if isinstance(values, np.ndarray):
        ordered = values
    else:
        ordered = sorted_values(values)

    n = len(ordered)
    if n == 0:
        return 0

    index = int(np.searchsorted(ordered, value, side="left"))
    if index >= n:
        return 100
    if index == 0:
        return 0
    return round_half_up(index / n * 100)


def safe_mean(values: Sequence[Number]) -> float:
    """Arithmetic mean, 0.0 for empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))
