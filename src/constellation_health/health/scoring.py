"""Percentile-normalized risk scoring and report aggregation.

Each file is ranked against the whole analyzed set on three axes:

    complexity    cyclomatic complexity, files with none excluded from the reference set
    churn         commits in the trailing window
    dependencies  incoming + outgoing edges

The three rank percentiles are blended with the configured weights into a
score on the 0-100 scale, which is then bucketed into a risk category.
Scores are only meaningful relative to the set they were computed from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..config import DEFAULT_RISK, RiskConfig
from ..logging_config import get_logger
from ..math import percentile_rank, round_half_up, safe_mean, sorted_values
from ..models import (
    NEUTRAL_HEALTH_SCORE,
    FileMetrics,
    HealthAnalysis,
    RiskCategory,
    RiskDistribution,
    RiskScore,
    utc_timestamp,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReferenceVectors:
    """Sorted reference data for one scoring run."""

    complexity: np.ndarray
    churn: np.ndarray
    dependencies: np.ndarray

    @classmethod
    def from_metrics(cls, metrics: Sequence[FileMetrics]) -> ReferenceVectors:
        return cls(
            complexity=sorted_values(
                [m.cyclomatic_complexity for m in metrics if m.cyclomatic_complexity > 0]
            ),
            churn=sorted_values([m.churn.commit_count for m in metrics]),
            dependencies=sorted_values([m.dependencies for m in metrics]),
        )


class RiskScorer:
    """Turns a complete set of FileMetrics into RiskScores and a report."""

    def __init__(self, risk: RiskConfig = DEFAULT_RISK, top_risks_count: int = 5):
        self.risk = risk
        self.top_risks_count = top_risks_count

    def score_all(self, metrics: Sequence[FileMetrics]) -> list[RiskScore]:
        """Score every file against the full set, preserving input order."""
        logger.debug(f"Calculating risk scores for {len(metrics)} files")
        vectors = ReferenceVectors.from_metrics(metrics)
        return [self.score_file(m, vectors) for m in metrics]

    def score_file(self, file: FileMetrics, vectors: ReferenceVectors) -> RiskScore:
        complexity_pct = percentile_rank(file.cyclomatic_complexity, vectors.complexity)
        churn_pct = percentile_rank(file.churn.commit_count, vectors.churn)
        dependency_pct = percentile_rank(file.dependencies, vectors.dependencies)

        weighted = self.weighted_score(complexity_pct, churn_pct, dependency_pct)
        category = self.categorize(weighted)

        return RiskScore(
            node_id=file.node_id,
            score=weighted / 100,
            percentile=round_half_up(weighted),
            category=category,
            color=self.color_for(category),
            metrics=file,
        )

    def weighted_score(self, complexity_pct: float, churn_pct: float, dependency_pct: float) -> float:
        """Blend three percentiles into one score on the 0-100 scale."""
        return (
            complexity_pct * self.risk.weight_complexity
            + churn_pct * self.risk.weight_churn
            + dependency_pct * self.risk.weight_dependencies
        )

    def categorize(self, weighted_score: float) -> RiskCategory:
        if weighted_score >= self.risk.threshold_high:
            return RiskCategory.CRITICAL
        if weighted_score >= self.risk.threshold_medium:
            return RiskCategory.HIGH
        if weighted_score >= self.risk.threshold_low:
            return RiskCategory.MEDIUM
        return RiskCategory.LOW

    def color_for(self, category: RiskCategory) -> str:
        return {
            RiskCategory.LOW: self.risk.color_low,
            RiskCategory.MEDIUM: self.risk.color_medium,
            RiskCategory.HIGH: self.risk.color_high,
            RiskCategory.CRITICAL: self.risk.color_critical,
        }[category]

    def aggregate(self, risk_scores: list[RiskScore]) -> HealthAnalysis:
        """Build the report for a scored set. Recommendations are left empty."""
        if risk_scores:
            health_score = round_half_up((1 - safe_mean([s.score for s in risk_scores])) * 100)
        else:
            health_score = NEUTRAL_HEALTH_SCORE

        # sorted() is stable, so equal scores keep graph order
        top_risks = sorted(risk_scores, key=lambda s: s.score, reverse=True)[
            : self.top_risks_count
        ]

        return HealthAnalysis(
            timestamp=utc_timestamp(),
            total_files=len(risk_scores),
            health_score=health_score,
            risk_scores=list(risk_scores),
            distribution=RiskDistribution.from_scores(risk_scores),
            top_risks=top_risks,
        )
