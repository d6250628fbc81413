"""Rich terminal formatter for health reports."""

import re
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import HealthAnalysis, HealthStatus, RiskCategory
from .base import BaseFormatter

_CATEGORY_STYLE = {
    RiskCategory.LOW: "green",
    RiskCategory.MEDIUM: "yellow",
    RiskCategory.HIGH: "dark_orange",
    RiskCategory.CRITICAL: "red bold",
}

_STATUS_STYLE = {
    HealthStatus.CRITICAL: "red",
    HealthStatus.NEEDS_ATTENTION: "dark_orange",
    HealthStatus.GOOD: "yellow",
    HealthStatus.EXCELLENT: "green",
}

_BOLD = re.compile(r"\*\*(.+?)\*\*")


def _recommendation_text(line: str) -> Text:
    """Recommendation lines mark file names with **bold**."""
    return Text.from_markup(_BOLD.sub(r"[bold]\1[/bold]", escape(line)))


class RichFormatter(BaseFormatter):
    """Summary panel, distribution, top risks and recommendations."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, analysis: HealthAnalysis) -> None:
        self._print_summary(analysis)
        if analysis.total_files:
            self._print_distribution(analysis)
        if analysis.top_risks:
            self._print_top_risks(analysis)
        self._print_recommendations(analysis)

    def format(self, analysis: HealthAnalysis) -> str:
        with self.console.capture() as capture:
            self.render(analysis)
        return capture.get()

    def _print_summary(self, analysis: HealthAnalysis) -> None:
        status = analysis.status
        style = _STATUS_STYLE[status]
        body = (
            f"[bold {style}]{analysis.health_score}/100  {status.value}[/bold {style}]\n"
            f"[bold]{analysis.total_files}[/bold] files analyzed  "
            f"[dim]{analysis.timestamp}[/dim]\n"
            f"{escape(analysis.summary_message())}"
        )
        self.console.print(Panel(body, title="[bold cyan]Codebase Health[/bold cyan]", expand=False))

    def _print_distribution(self, analysis: HealthAnalysis) -> None:
        table = Table(title="Risk distribution", show_header=True, header_style="bold")
        table.add_column("Category")
        table.add_column("Files", justify="right")
        table.add_column("Share", justify="right")

        for category in RiskCategory:
            count = analysis.distribution.count(category)
            share = count / analysis.total_files * 100
            style = _CATEGORY_STYLE[category]
            table.add_row(
                f"[{style}]{category.value}[/{style}]",
                str(count),
                f"{share:.0f}%",
            )

        self.console.print(table)

    def _print_top_risks(self, analysis: HealthAnalysis) -> None:
        table = Table(title="Top risks", show_header=True, header_style="bold")
        table.add_column("#", justify="right", style="dim")
        table.add_column("File")
        table.add_column("Risk", justify="right")
        table.add_column("Category")
        table.add_column("Complexity", justify="right")
        table.add_column("Commits", justify="right")
        table.add_column("Deps", justify="right")

        for rank, risk in enumerate(analysis.top_risks, 1):
            style = _CATEGORY_STYLE[risk.category]
            complexity = risk.metrics.complexity.cyclomatic_complexity
            table.add_row(
                str(rank),
                escape(risk.node_id),
                f"{risk.percentile}",
                f"[{style}]{risk.category.value}[/{style}]",
                "-" if complexity is None else str(complexity),
                str(risk.metrics.churn.commit_count),
                str(risk.metrics.dependencies),
            )

        self.console.print(table)

    def _print_recommendations(self, analysis: HealthAnalysis) -> None:
        if not analysis.recommendations:
            return
        self.console.print()
        self.console.print("[bold]Recommendations[/bold]")
        for line in analysis.recommendations:
            self.console.print(Text("  ").append_text(_recommendation_text(line)))
