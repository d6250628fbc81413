"""Health analysis command."""

import json
from pathlib import Path
from typing import List, Optional

import click
import typer

from ..exceptions import AnalysisError, ConfigurationError
from ..formatters import FORMATTERS, RichFormatter, get_formatter
from ..graph import Graph, GraphStore
from ..health import HealthAnalyzer
from ..logging_config import setup_logging
from ..models import RiskCategory
from . import app
from ._common import console, err_console, fail, resolve_config


def _read_graph(graph_json: Path) -> Graph:
    try:
        with open(graph_json, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        fail(f"Cannot read graph file {graph_json}: {e}")
    return Graph.from_dict(data)


@app.command()
def analyze(
    graph_json: Optional[Path] = typer.Argument(
        None,
        help="Exported dependency graph (default: the workspace's cached graph)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    workspace_root: Optional[Path] = typer.Option(
        None,
        "-C",
        "--workspace-root",
        help="Workspace root for git history (default: graph metadata, then cwd)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    scan_path: str = typer.Option(
        ".",
        "--scan-path",
        help="Restrict the cached graph to this workspace-relative directory",
    ),
    files: Optional[List[str]] = typer.Option(
        None,
        "--file",
        "-f",
        help="Only analyze graph nodes matching this path (repeatable)",
    ),
    category: Optional[str] = typer.Option(
        None,
        "--category",
        help="Also print advice for one risk category",
        click_type=click.Choice([c.value for c in RiskCategory], case_sensitive=False),
    ),
    fmt: str = typer.Option(
        "rich",
        "--format",
        help="Output format: rich (default), json, csv",
        click_type=click.Choice(sorted(FORMATTERS), case_sensitive=False),
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Shorthand for --format json",
    ),
    fail_under: Optional[int] = typer.Option(
        None,
        "--fail-under",
        min=0,
        max=100,
        help="Exit 1 if the health score is below this value",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size",
        min=1,
        help="Files analyzed concurrently per batch",
    ),
    churn_days: Optional[int] = typer.Option(
        None,
        "--churn-days",
        min=1,
        help="Trailing window for commit counts",
    ),
    report_cache: Optional[bool] = typer.Option(
        None,
        "--report-cache/--no-report-cache",
        help="Persist whole reports across runs",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file"),
) -> None:
    """Score every file in a dependency graph and print the health report."""
    setup_logging(verbose=verbose, quiet=quiet, log_file=str(log_file) if log_file else None)

    try:
        cfg = resolve_config(config, batch_size, churn_days, report_cache)
    except ConfigurationError as e:
        fail(str(e))

    store = GraphStore()
    try:
        if graph_json is not None:
            graph = _read_graph(graph_json)
            store.set_graph(graph)
            root = workspace_root or Path(graph.metadata.workspace_root or ".")
        else:
            root = workspace_root or Path.cwd()
            store.load_graph(str(root), scan_path)
    except AnalysisError as e:
        fail(str(e))

    with HealthAnalyzer(str(root), config=cfg, graph_provider=store) as analyzer:
        try:
            if files:
                analysis = analyzer.analyze_files(files)
            else:
                analysis = analyzer.analyze_codebase()
        except AnalysisError as e:
            fail(str(e))

        advice = (
            analyzer.category_recommendations(analysis, RiskCategory(category.lower()))
            if category
            else []
        )

    fmt = "json" if json_output else fmt.lower()

    if fmt == "rich":
        RichFormatter(console).render(analysis)
        if advice:
            console.print()
            console.print(f"[bold]{category.lower()}-risk files[/bold]")
            for line in advice:
                console.print(f"  {line}", markup=False)
    elif fmt == "json" and advice:
        data = analysis.to_dict()
        data["categoryRecommendations"] = advice
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        # CSV rows carry no advice
        get_formatter(fmt).render(analysis)

    if fail_under is not None and analysis.health_score < fail_under:
        err_console.print(
            f"[red]Health score {analysis.health_score} is below {fail_under}[/red]"
        )
        raise typer.Exit(1)
