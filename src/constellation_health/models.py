"""Data models for health analysis.

Python attributes are snake_case; ``to_dict()`` emits the camelCase field
names consumed by dashboards and exports, in declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# daysSinceLastChange value meaning "no history available"
NO_HISTORY_DAYS = 999


@dataclass(frozen=True)
class ComplexityMetrics:
    """Static metrics for one file content revision.

    ``cyclomatic_complexity`` is None for file kinds without a complexity
    estimator.
    """

    lines_of_code: int
    file_size: int
    cyclomatic_complexity: Optional[int] = None

    @classmethod
    def zero(cls) -> ComplexityMetrics:
        return cls(lines_of_code=0, file_size=0, cyclomatic_complexity=0)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "linesOfCode": self.lines_of_code,
            "fileSize": self.file_size,
        }
        if self.cyclomatic_complexity is not None:
            data["cyclomaticComplexity"] = self.cyclomatic_complexity
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComplexityMetrics:
        return cls(
            lines_of_code=data["linesOfCode"],
            file_size=data["fileSize"],
            cyclomatic_complexity=data.get("cyclomaticComplexity"),
        )


@dataclass(frozen=True)
class ChurnMetrics:
    """Version-control activity for one file over a trailing window."""

    commit_count: int
    unique_authors: int
    days_since_last_change: int

    @property
    def has_history(self) -> bool:
        return self.days_since_last_change < NO_HISTORY_DAYS

    @classmethod
    def no_history(cls) -> ChurnMetrics:
        return cls(commit_count=0, unique_authors=0, days_since_last_change=NO_HISTORY_DAYS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitCount": self.commit_count,
            "uniqueAuthors": self.unique_authors,
            "daysSinceLastChange": self.days_since_last_change,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChurnMetrics:
        return cls(
            commit_count=data["commitCount"],
            unique_authors=data["uniqueAuthors"],
            days_since_last_change=data["daysSinceLastChange"],
        )


@dataclass(frozen=True)
class FileMetrics:
    """Combined metrics for one graph node."""

    node_id: str
    path: str
    complexity: ComplexityMetrics
    churn: ChurnMetrics
    dependencies: int

    @classmethod
    def minimal(cls, node_id: str, path: str, dependencies: int = 0) -> FileMetrics:
        """Zeroed record used when a file could not be analyzed."""
        return cls(
            node_id=node_id,
            path=path,
            complexity=ComplexityMetrics.zero(),
            churn=ChurnMetrics.no_history(),
            dependencies=dependencies,
        )

    @property
    def cyclomatic_complexity(self) -> int:
        """Cyclomatic complexity with absent treated as 0."""
        return self.complexity.cyclomatic_complexity or 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "path": self.path,
            "complexity": self.complexity.to_dict(),
            "churn": self.churn.to_dict(),
            "dependencies": self.dependencies,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileMetrics:
        return cls(
            node_id=data["nodeId"],
            path=data["path"],
            complexity=ComplexityMetrics.from_dict(data["complexity"]),
            churn=ChurnMetrics.from_dict(data["churn"]),
            dependencies=data["dependencies"],
        )


class RiskCategory(str, Enum):
    """Risk tier of a file, ordered from least to most severe."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def is_elevated(self) -> bool:
        return self in (RiskCategory.HIGH, RiskCategory.CRITICAL)


@dataclass(frozen=True)
class RiskScore:
    """Risk of one file relative to the batch it was scored in."""

    node_id: str
    score: float  # [0, 1]
    percentile: int  # [0, 100]
    category: RiskCategory
    color: str
    metrics: FileMetrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "score": self.score,
            "percentile": self.percentile,
            "category": self.category.value,
            "color": self.color,
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RiskScore:
        return cls(
            node_id=data["nodeId"],
            score=data["score"],
            percentile=data["percentile"],
            category=RiskCategory(data["category"]),
            color=data["color"],
            metrics=FileMetrics.from_dict(data["metrics"]),
        )


@dataclass(frozen=True)
class RiskDistribution:
    """File counts per risk category."""

    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0

    @property
    def total(self) -> int:
        return self.low + self.medium + self.high + self.critical

    def count(self, category: RiskCategory) -> int:
        return getattr(self, category.value)

    @classmethod
    def from_scores(cls, scores: list[RiskScore]) -> RiskDistribution:
        counts = {category.value: 0 for category in RiskCategory}
        for score in scores:
            counts[score.category.value] += 1
        return cls(**counts)

    def to_dict(self) -> dict[str, int]:
        return {
            "low": self.low,
            "medium": self.medium,
            "high": self.high,
            "critical": self.critical,
        }


_FALLBACK_RECOMMENDATIONS = [
    "⚠️ Health analysis was unable to complete due to errors.",
    "🔧 Check file permissions and ensure git is available.",
    "📊 Try analyzing a smaller subset of files first.",
]

# Health score reported when there is nothing to score
NEUTRAL_HEALTH_SCORE = 50


class HealthStatus(str, Enum):
    """Codebase-level verdict derived from the health score."""

    CRITICAL = "Critical"
    NEEDS_ATTENTION = "Needs Attention"
    GOOD = "Good"
    EXCELLENT = "Excellent"

    @classmethod
    def from_score(cls, health_score: int) -> HealthStatus:
        if health_score < 50:
            return cls.CRITICAL
        elif health_score < 70:
            return cls.NEEDS_ATTENTION
        elif health_score < 85:
            return cls.GOOD
        return cls.EXCELLENT


@dataclass
class HealthAnalysis:
    """Aggregate result of one analysis run.

    Invariant: ``distribution.total == total_files == len(risk_scores)``.
    """

    timestamp: str
    total_files: int
    health_score: int
    risk_scores: list[RiskScore]
    distribution: RiskDistribution
    top_risks: list[RiskScore]
    recommendations: list[str] = field(default_factory=list)

    @classmethod
    def fallback(cls) -> HealthAnalysis:
        """Neutral, all-zero report for runs that could not start."""
        return cls(
            timestamp=utc_timestamp(),
            total_files=0,
            health_score=NEUTRAL_HEALTH_SCORE,
            risk_scores=[],
            distribution=RiskDistribution(),
            top_risks=[],
            recommendations=list(_FALLBACK_RECOMMENDATIONS),
        )

    @property
    def status(self) -> HealthStatus:
        return HealthStatus.from_score(self.health_score)

    def summary_message(self) -> str:
        """One-line completion message, led by the most urgent finding."""
        prefix = f"Health analysis complete! Score: {self.health_score}/100."
        if self.distribution.critical:
            return f"{prefix} ⚠️ {self.distribution.critical} critical risk files need immediate attention."
        elif self.distribution.high:
            return f"{prefix} 📊 {self.distribution.high} high risk files should be prioritized."
        elif self.health_score > 85:
            return f"{prefix} ✨ Excellent codebase health!"
        return f"{prefix} Check the recommendations below."

    def copy(self) -> HealthAnalysis:
        """Copy with fresh lists; the scores themselves are immutable."""
        return HealthAnalysis(
            timestamp=self.timestamp,
            total_files=self.total_files,
            health_score=self.health_score,
            risk_scores=list(self.risk_scores),
            distribution=self.distribution,
            top_risks=list(self.top_risks),
            recommendations=list(self.recommendations),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "totalFiles": self.total_files,
            "healthScore": self.health_score,
            "riskScores": [s.to_dict() for s in self.risk_scores],
            "distribution": self.distribution.to_dict(),
            "topRisks": [s.to_dict() for s in self.top_risks],
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthAnalysis:
        return cls(
            timestamp=data["timestamp"],
            total_files=data["totalFiles"],
            health_score=data["healthScore"],
            risk_scores=[RiskScore.from_dict(s) for s in data["riskScores"]],
            distribution=RiskDistribution(**data["distribution"]),
            top_risks=[RiskScore.from_dict(s) for s in data["topRisks"]],
            recommendations=list(data["recommendations"]),
        )


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
