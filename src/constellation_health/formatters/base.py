"""Base formatter interface for health report rendering."""

from abc import ABC, abstractmethod

from ..models import HealthAnalysis


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def render(self, analysis: HealthAnalysis) -> None:
        """Write the report to the terminal."""

    @abstractmethod
    def format(self, analysis: HealthAnalysis) -> str:
        """Return formatted string representation of the report."""
