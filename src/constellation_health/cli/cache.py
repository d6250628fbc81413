"""Persistent report cache commands."""

from pathlib import Path
from typing import Optional

import typer

from ..cache import ReportStore
from ..exceptions import ConfigurationError
from . import app
from ._common import console, fail, resolve_config


def _open_store(workspace_root: Path, config: Optional[Path]) -> ReportStore:
    try:
        cfg = resolve_config(config)
    except ConfigurationError as e:
        fail(str(e))
    return ReportStore(
        cache_dir=str(workspace_root / cfg.report_cache_dir),
        ttl_seconds=cfg.analysis_ttl_seconds,
        enabled=cfg.report_cache_enabled,
    )


@app.command()
def cache_info(
    workspace_root: Path = typer.Option(Path("."), "-C", "--workspace-root", help="Workspace root"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
):
    """Show report cache information and statistics."""
    store = _open_store(workspace_root, config)
    stats = store.stats()
    store.close()

    console.print("[bold cyan]Constellation Health Report Cache[/bold cyan]")
    console.print()

    if stats.get("enabled"):
        console.print("Status: [green]Enabled[/green]")
        console.print(f"Directory: [blue]{stats.get('directory', 'N/A')}[/blue]")
        console.print(f"Entries: [yellow]{stats.get('size', 0)}[/yellow]")
        console.print(f"Size: [yellow]{stats.get('volume', 0)} bytes[/yellow]")
        console.print(f"TTL: [yellow]{stats.get('ttl_seconds', 0):g}s[/yellow]")
    else:
        console.print("Status: [red]Disabled[/red]")


@app.command()
def cache_clear(
    workspace_root: Path = typer.Option(Path("."), "-C", "--workspace-root", help="Workspace root"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
):
    """Clear the persistent report cache."""
    store = _open_store(workspace_root, config)

    if not store.enabled:
        console.print("[yellow]Report cache is disabled[/yellow]")
        raise typer.Exit(0)

    removed = store.clear()
    store.close()
    console.print(f"[green]Report cache cleared successfully ({removed} reports removed)[/green]")
