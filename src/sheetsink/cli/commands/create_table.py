"""Create-table command - create the destination table for a file."""

from __future__ import annotations

from typing import Annotated

import typer

from sheetsink.cli.common import (
    DatabaseUrlOption,
    FileArg,
    TableArg,
    VerboseOption,
    console,
    exit_with_error,
    get_manager,
    setup_logging,
)
from sheetsink.core.exceptions import SheetsinkError


def create_table(
    file: FileArg,
    table: TableArg,
    database_url: DatabaseUrlOption = None,
    primary_key: Annotated[
        list[str] | None,
        typer.Option(
            "--primary-key",
            "-k",
            help="Primary-key column (repeatable); replaces the inferred key flags",
        ),
    ] = None,
    verbose: VerboseOption = 0,
) -> None:
    """Infer a schema from a file and create the table for it.

    Examples:

        sheetsink create-table products.csv products

        sheetsink create-table report.xlsx sales.orders -k order_id -k line_no
    """
    setup_logging(verbosity=verbose)

    from sheetsink.ingest import analyze, create_table as create

    manager = get_manager(database_url)
    try:
        columns = analyze(file, cleanup=False).columns
        if primary_key is not None:
            names = {column.name for column in columns}
            unknown = sorted(set(primary_key) - names)
            if unknown:
                console.print(f"[red]Unknown column(s): {', '.join(unknown)}[/red]")
                raise typer.Exit(1)
            columns = [
                column.model_copy(update={"is_primary_key": column.name in primary_key})
                for column in columns
            ]
        create(manager, table, columns)
    except SheetsinkError as e:
        exit_with_error(e)
    finally:
        manager.close()

    keys = [column.name for column in columns if column.is_primary_key]
    console.print(
        f"[green]Created {table}[/green] with {len(columns)} columns"
        + (f" (primary key: {', '.join(keys)})" if keys else "")
    )
