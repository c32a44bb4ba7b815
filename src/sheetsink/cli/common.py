"""Shared CLI utilities and constants."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from sheetsink.core import ConnectionConfig, ConnectionManager
from sheetsink.core.exceptions import IngestError, SheetsinkError
from sheetsink.core.logging import configure_logging

# Load .env file from current directory (SHEETSINK_DATABASE_URL, etc.)
load_dotenv()

# Shared console instance
console = Console()

# Common type aliases for typer options
FileArg = Annotated[
    Path,
    typer.Argument(
        help="CSV or Excel (.xlsx, .xls) file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]

TableArg = Annotated[str, typer.Argument(help="Destination table, optionally schema.table")]

DatabaseUrlOption = Annotated[
    str | None,
    typer.Option(
        "--database-url",
        "-d",
        help="SQLAlchemy URL of the sink (default: SHEETSINK_DATABASE_URL)",
    ),
]

JsonFlag = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON for scripting",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v=INFO, -vv=DEBUG)",
    ),
]


def setup_logging(verbosity: int = 0, log_format: str = "console") -> None:
    """Configure structured logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
        log_format: "console" for development, "json" for production/cloud
    """
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity >= 1:
        level = "INFO"
    else:
        level = "WARNING"

    configure_logging(
        log_level=level,
        log_format=log_format,
        show_timestamps=verbosity >= 1,
        color=log_format == "console",
    )


def get_manager(database_url: str | None = None) -> ConnectionManager:
    """Create and initialize a ConnectionManager for the sink.

    Returns the manager. Caller is responsible for closing it.
    """
    if database_url:
        config = ConnectionConfig.from_settings(database_url=database_url)
    else:
        config = ConnectionConfig.from_settings()
    manager = ConnectionManager(config)
    manager.initialize()
    return manager


def exit_with_error(error: SheetsinkError) -> None:
    """Print a user-facing error and exit with status 1."""
    if isinstance(error, IngestError):
        console.print(f"[red]{error.user_message()}[/red]")
        console.print(f"[dim]{error.message}[/dim]")
    else:
        console.print(f"[red]{error}[/red]")
    raise typer.Exit(1)
