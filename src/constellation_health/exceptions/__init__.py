"""Exception hierarchy for Constellation Health."""

from .analysis import (
    AnalysisError,
    FileAccessError,
    GraphUnavailableError,
    HealthAnalysisError,
    InvalidGraphError,
    NoMatchingFilesError,
)
from .base import ConstellationHealthError
from .config import ConfigurationError, InvalidConfigError
from .taxonomy import BatchError, ChurnError, ErrorCode, HealthError

__all__ = [
    "ConstellationHealthError",
    "AnalysisError",
    "HealthAnalysisError",
    "GraphUnavailableError",
    "InvalidGraphError",
    "NoMatchingFilesError",
    "FileAccessError",
    "ConfigurationError",
    "InvalidConfigError",
    "ErrorCode",
    "HealthError",
    "ChurnError",
    "BatchError",
]
