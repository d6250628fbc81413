"""Risk scoring, batch scheduling, recommendations and the orchestrator."""

from .analyzer import HealthAnalyzer
from .batching import (
    BatchAction,
    BatchRun,
    BatchScheduler,
    classify_batch_error,
    is_resource_exhaustion,
)
from .recommendations import DEFAULT_RECOMMENDATION, RecommendationsEngine
from .scoring import ReferenceVectors, RiskScorer

__all__ = [
    "HealthAnalyzer",
    "BatchAction",
    "BatchRun",
    "BatchScheduler",
    "classify_batch_error",
    "is_resource_exhaustion",
    "DEFAULT_RECOMMENDATION",
    "RecommendationsEngine",
    "ReferenceVectors",
    "RiskScorer",
]
