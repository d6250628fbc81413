"""
Constellation Health - codebase risk scores and health reports

Combines heuristic complexity, git churn and dependency counts into a
percentile-normalized risk score per file, then aggregates the scores into
a codebase health report with recommendations.
"""

__version__ = "0.1.0"

from .config import HealthConfig, RiskConfig, load_config
from .graph import Graph, GraphStore
from .health import HealthAnalyzer, RecommendationsEngine
from .models import (
    ChurnMetrics,
    ComplexityMetrics,
    FileMetrics,
    HealthAnalysis,
    HealthStatus,
    RiskCategory,
    RiskScore,
)

__all__ = [
    "HealthAnalyzer",
    "RecommendationsEngine",
    "HealthConfig",
    "RiskConfig",
    "load_config",
    "Graph",
    "GraphStore",
    "ChurnMetrics",
    "ComplexityMetrics",
    "FileMetrics",
    "HealthAnalysis",
    "HealthStatus",
    "RiskCategory",
    "RiskScore",
]
