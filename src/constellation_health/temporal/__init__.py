"""Version-control activity metrics."""

from .churn import ChurnProvider, ChurnStats, GitChurnAnalyzer, MostActiveFile

__all__ = ["ChurnProvider", "ChurnStats", "GitChurnAnalyzer", "MostActiveFile"]
