"""JSON formatter for health reports."""

import json

from ..models import HealthAnalysis
from .base import BaseFormatter


class JsonFormatter(BaseFormatter):
    """Render the report as JSON, keys in their declared order."""

    def render(self, analysis: HealthAnalysis) -> None:
        print(self.format(analysis))

    def format(self, analysis: HealthAnalysis) -> str:
        return json.dumps(analysis.to_dict(), indent=2, ensure_ascii=False)
