"""Tests for the formatters package."""

import json
from io import StringIO

import pytest
from rich.console import Console

from constellation_health.formatters import (
    CsvFormatter,
    JsonFormatter,
    RichFormatter,
    get_formatter,
)
from constellation_health.models import (
    ChurnMetrics,
    ComplexityMetrics,
    FileMetrics,
    HealthAnalysis,
    RiskCategory,
    RiskDistribution,
    RiskScore,
)


def _report():
    metrics = FileMetrics(
        node_id="src/[core].ts",
        path="/repo/src/[core].ts",
        complexity=ComplexityMetrics(lines_of_code=320, file_size=9000, cyclomatic_complexity=18),
        churn=ChurnMetrics(commit_count=7, unique_authors=3, days_since_last_change=1),
        dependencies=4,
    )
    score = RiskScore(
        node_id="src/[core].ts",
        score=0.72,
        percentile=72,
        category=RiskCategory.HIGH,
        color="#f97316",
        metrics=metrics,
    )
    return HealthAnalysis(
        timestamp="2024-01-01T00:00:00.000Z",
        total_files=1,
        health_score=28,
        risk_scores=[score],
        distribution=RiskDistribution(high=1),
        top_risks=[score],
        recommendations=["🔧 **[core].ts** has high cyclomatic complexity (18)."],
    )


@pytest.fixture
def rich_formatter():
    return RichFormatter(Console(file=StringIO(), width=120, color_system=None))


class TestGetFormatter:
    def test_known(self):
        assert isinstance(get_formatter("json"), JsonFormatter)
        assert isinstance(get_formatter("rich"), RichFormatter)
        assert isinstance(get_formatter("csv"), CsvFormatter)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown formatter"):
            get_formatter("xml")


class TestJsonFormatter:
    def test_document(self):
        data = json.loads(JsonFormatter().format(_report()))
        assert list(data)[:3] == ["timestamp", "totalFiles", "healthScore"]
        assert data["topRisks"][0]["category"] == "high"
        assert data["riskScores"][0]["metrics"]["complexity"]["cyclomaticComplexity"] == 18

    def test_keeps_unicode(self):
        assert "🔧" in JsonFormatter().format(_report())

    def test_render_prints(self, capsys):
        JsonFormatter().render(_report())
        assert json.loads(capsys.readouterr().out)["healthScore"] == 28


class TestRichFormatter:
    def test_sections(self, rich_formatter):
        output = rich_formatter.format(_report())
        assert "Codebase Health" in output
        assert "28/100" in output
        assert "Risk distribution" in output
        assert "Top risks" in output
        assert "Recommendations" in output

    def test_file_names_not_read_as_markup(self, rich_formatter):
        output = rich_formatter.format(_report())
        assert "src/[core].ts" in output
        assert "[core].ts has high cyclomatic complexity" in output
        assert "**" not in output

    def test_empty_report(self, rich_formatter):
        output = rich_formatter.format(HealthAnalysis.fallback())
        assert "50/100" in output
        assert "Top risks" not in output

    def test_status_label_and_summary(self, rich_formatter):
        output = rich_formatter.format(_report())
        assert "Critical" in output
        assert "1 high risk files should be prioritized" in output

    def test_excellent_status(self, rich_formatter):
        report = HealthAnalysis(
            timestamp="2024-01-01T00:00:00.000Z",
            total_files=0,
            health_score=92,
            risk_scores=[],
            distribution=RiskDistribution(),
            top_risks=[],
        )
        output = rich_formatter.format(report)
        assert "92/100  Excellent" in output


class TestCsvFormatter:
    def test_rows(self):
        lines = CsvFormatter().format(_report()).splitlines()
        assert lines[0] == (
            "File Path,Risk Category,Risk Score,Risk Percentile,Lines of Code,"
            "Cyclomatic Complexity,Commit Count,Unique Authors,Days Since Change,Dependencies"
        )
        assert lines[1] == "/repo/src/[core].ts,high,0.720,72,320,18,7,3,1,4"
        assert len(lines) == 2

    def test_missing_complexity_written_as_zero(self):
        report = _report()
        score = report.risk_scores[0]
        metrics = FileMetrics(
            node_id="README.md",
            path="/repo/README, draft.md",
            complexity=ComplexityMetrics(lines_of_code=3, file_size=40),
            churn=ChurnMetrics.no_history(),
            dependencies=0,
        )
        report.risk_scores.append(
            RiskScore(
                node_id="README.md",
                score=0.0,
                percentile=0,
                category=RiskCategory.LOW,
                color=score.color,
                metrics=metrics,
            )
        )
        row = CsvFormatter().format(report).splitlines()[2]
        assert row == '"/repo/README, draft.md",low,0.000,0,3,0,0,0,999,0'

    def test_empty_report_is_header_only(self):
        assert CsvFormatter().format(HealthAnalysis.fallback()).count("\n") == 1

    def test_render_prints(self, capsys):
        CsvFormatter().render(_report())
        assert capsys.readouterr().out.startswith("File Path,")
