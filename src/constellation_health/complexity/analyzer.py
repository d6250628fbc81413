"""Per-file static metrics with cache-first lookup."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..cache import MetricsCache
from ..exceptions import FileAccessError
from ..logging_config import get_logger
from ..math import safe_mean
from ..models import ComplexityMetrics
from .estimator import (
    ComplexityEstimator,
    count_lines_of_code,
    default_estimators,
    estimator_for,
)

logger = get_logger(__name__)

# Files above this cyclomatic complexity count as highly complex
HIGH_COMPLEXITY_THRESHOLD = 10


@dataclass(frozen=True)
class ComplexityStats:
    """Summary of complexity over a set of files."""

    total_files: int
    total_lines_of_code: int
    average_complexity: float
    max_complexity: int
    files_with_high_complexity: int


class ComplexityAnalyzer:
    """Reads files and derives ComplexityMetrics, caching results per path."""

    def __init__(
        self,
        cache: MetricsCache,
        estimators: Optional[Dict[str, ComplexityEstimator]] = None,
        batch_size: int = 10,
    ):
        self.cache = cache
        self.estimators = estimators if estimators is not None else default_estimators()
        self.batch_size = batch_size

    def analyze_file(self, path: str) -> ComplexityMetrics:
        """
        Analyze one file. Never raises.

        Unreadable files are logged and reported as zeroed metrics; those
        results are not cached so the next call retries.
        """
        cached = self.cache.get_complexity_metrics(path)
        if cached is not None:
            return cached

        try:
            content, size = self._read(path)
            metrics = self._measure(path, content, size)
        except Exception as e:
            logger.warning(f"Failed to analyze complexity of {path}: {e}")
            return ComplexityMetrics.zero()

        self.cache.set_complexity_metrics(path, metrics)
        return metrics

    def _read(self, path: str) -> tuple[str, int]:
        filepath = Path(path)
        try:
            size = filepath.stat().st_size
            with open(filepath, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            raise FileAccessError(filepath, str(e))
        return content, size

    def _measure(self, path: str, content: str, size: int) -> ComplexityMetrics:
        lines_of_code = count_lines_of_code(content)
        estimator = estimator_for(path, self.estimators)
        if estimator is None:
            return ComplexityMetrics(lines_of_code=lines_of_code, file_size=size)
        return ComplexityMetrics(
            lines_of_code=lines_of_code,
            file_size=size,
            cyclomatic_complexity=estimator.estimate(content),
        )

    def analyze_files(self, paths: Iterable[str]) -> List[ComplexityMetrics]:
        """Analyze files in fixed-size chunks, one chunk in flight at a time.

        Results are in input order.
        """
        paths = list(paths)
        results: List[ComplexityMetrics] = []

        for start in range(0, len(paths), self.batch_size):
            chunk = paths[start : start + self.batch_size]
            with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
                results.extend(executor.map(self.analyze_file, chunk))

        return results

    def get_complexity_stats(self, paths: Iterable[str]) -> ComplexityStats:
        metrics = self.analyze_files(paths)

        complexities = [
            m.cyclomatic_complexity for m in metrics if (m.cyclomatic_complexity or 0) > 0
        ]

        return ComplexityStats(
            total_files=len(metrics),
            total_lines_of_code=sum(m.lines_of_code for m in metrics),
            average_complexity=round(safe_mean(complexities), 2),
            max_complexity=max(complexities, default=0),
            files_with_high_complexity=sum(
                1 for c in complexities if c > HIGH_COMPLEXITY_THRESHOLD
            ),
        )

    def clear_cache(self, path: Optional[str] = None) -> None:
        """Drop cached metrics for one file, or for every file."""
        if path is not None:
            self.cache.delete(MetricsCache.complexity_key(path))
        else:
            self.cache.delete_prefix("complexity:")
