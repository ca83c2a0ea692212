"""Augur CLI.

Package structure:
    cli/
    ├── __init__.py           # App assembly and global options
    ├── helpers.py            # Logging state, input loading, engine construction
    ├── output.py             # Rich formatting
    └── commands/
        ├── advise.py         # advise, consensus commands
        ├── providers.py      # providers command
        └── validate.py       # validate command
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from augur import __version__

from . import helpers as helpers
from .commands import advise, consensus, providers, validate
from .helpers import configure_global_logging, set_log_file, set_log_format, set_log_level
from .output import console

app = typer.Typer(
    name="augur",
    help="Advice orchestration across interchangeable LLM providers",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"Augur v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="AUGUR_LOG_LEVEL",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json or console",
            envvar="AUGUR_LOG_FORMAT",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Also write logs to this rotating file",
            envvar="AUGUR_LOG_FILE",
        ),
    ] = None,
) -> None:
    """Augur - advice orchestration across LLM providers."""
    configure_global_logging(console)


app.command()(advise)
app.command()(consensus)
app.command()(providers)
app.command()(validate)


__all__ = ["app", "main", "console"]
