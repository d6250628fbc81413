"""Static complexity metrics."""

from .analyzer import HIGH_COMPLEXITY_THRESHOLD, ComplexityAnalyzer, ComplexityStats
from .estimator import (
    ComplexityEstimator,
    PatternComplexityEstimator,
    PatternFamily,
    count_lines_of_code,
    default_estimators,
)

__all__ = [
    "ComplexityAnalyzer",
    "ComplexityStats",
    "ComplexityEstimator",
    "PatternComplexityEstimator",
    "PatternFamily",
    "HIGH_COMPLEXITY_THRESHOLD",
    "count_lines_of_code",
    "default_estimators",
]
