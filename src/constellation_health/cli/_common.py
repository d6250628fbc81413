"""Shared CLI helpers."""

from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console

from ..config import HealthConfig, load_config

console = Console()
err_console = Console(stderr=True)


def resolve_config(
    config: Optional[Path] = None,
    batch_size: Optional[int] = None,
    churn_days: Optional[int] = None,
    report_cache: Optional[bool] = None,
) -> HealthConfig:
    """Build configuration from CLI options.

    Raises:
        ConfigurationError: If any source holds an invalid value
    """
    overrides = {}
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    if churn_days is not None:
        overrides["churn_window_days"] = churn_days
    if report_cache is not None:
        overrides["report_cache_enabled"] = report_cache
    return load_config(config_file=config, **overrides)


def fail(message: str, code: int = 1) -> NoReturn:
    """Print an error to stderr and exit."""
    err_console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)
