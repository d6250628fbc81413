"""Analysis-related exceptions: graph input, scoped lookups, file access."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from .base import ConstellationHealthError

if TYPE_CHECKING:
    from ..models import HealthAnalysis


class AnalysisError(ConstellationHealthError):
    """Base class for analysis-related errors."""

    pass


class HealthAnalysisError(AnalysisError):
    """An analysis run could not start.

    Carries a neutral ``fallback`` report that callers may show instead of
    failing outright.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, str]] = None,
        fallback: Optional[HealthAnalysis] = None,
    ):
        super().__init__(message, details=details)
        if fallback is None:
            from ..models import HealthAnalysis

            fallback = HealthAnalysis.fallback()
        self.fallback = fallback


class GraphUnavailableError(HealthAnalysisError):
    """Raised when no dependency graph was supplied and none is loaded."""

    def __init__(self) -> None:
        super().__init__(
            "No graph data available. Scan the project first.",
            details={"reason": "scan required"},
        )


class InvalidGraphError(HealthAnalysisError):
    """Raised when the supplied graph does not have the expected shape."""

    def __init__(self, reason: str):
        super().__init__(
            "Invalid graph data structure. Re-scan the project.",
            details={"reason": reason},
        )
        self.reason = reason


class NoMatchingFilesError(AnalysisError):
    """Raised when a scoped analysis matches no graph nodes."""

    def __init__(self, paths: Sequence[str]):
        super().__init__(
            "No matching files found in the graph data.",
            details={"paths": ", ".join(paths)},
        )
        self.paths = list(paths)


class FileAccessError(AnalysisError):
    """Raised when a file cannot be accessed or read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason
