"""CLI entry point. Importing this package registers every subcommand."""

from typing import Optional

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="constellation-health",
    help="Constellation Health - codebase risk scores and health reports",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"constellation-health {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show the version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Constellation Health - codebase risk scores and health reports."""


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .cache import cache_clear as _cache_clear, cache_info as _cache_info  # noqa: F401, E402


def main() -> None:
    app()
