"""CSV formatter for health reports."""

import csv
import io

from ..models import HealthAnalysis
from .base import BaseFormatter

HEADER = [
    "File Path",
    "Risk Category",
    "Risk Score",
    "Risk Percentile",
    "Lines of Code",
    "Cyclomatic Complexity",
    "Commit Count",
    "Unique Authors",
    "Days Since Change",
    "Dependencies",
]


class CsvFormatter(BaseFormatter):
    """One row per scored file, in graph order."""

    def render(self, analysis: HealthAnalysis) -> None:
        print(self.format(analysis), end="")

    def format(self, analysis: HealthAnalysis) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(HEADER)
        for risk in analysis.risk_scores:
            m = risk.metrics
            writer.writerow([
                m.path, risk.category.value, f"{risk.score:.3f}", risk.percentile,
                m.complexity.lines_of_code, m.cyclomatic_complexity,
                m.churn.commit_count, m.churn.unique_authors,
                m.churn.days_since_last_change, m.dependencies,
            ])
        return output.getvalue()
