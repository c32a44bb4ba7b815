"""Analyze command - infer a schema from the head of a file."""

from __future__ import annotations

import json

import typer
from rich.table import Table as RichTable

from sheetsink.cli.common import (
    FileArg,
    JsonFlag,
    VerboseOption,
    console,
    exit_with_error,
    setup_logging,
)
from sheetsink.core.exceptions import IngestError


def analyze(
    file: FileArg,
    json_output: JsonFlag = False,
    verbose: VerboseOption = 0,
) -> None:
    """Infer column names and types from the first rows of a file.

    The file is left in place.

    Examples:

        sheetsink analyze products.csv

        sheetsink analyze report.xlsx --json
    """
    setup_logging(verbosity=verbose)

    from sheetsink.ingest import analyze as analyze_file

    try:
        result = analyze_file(file, cleanup=False)
    except IngestError as e:
        exit_with_error(e)
        return

    if json_output:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    console.print(f"\n[bold]Schema[/bold] - {file.name}\n")
    table = RichTable(show_header=True, header_style="bold")
    table.add_column("Header")
    table.add_column("Column")
    table.add_column("Type")
    table.add_column("Key", justify="center")
    for header, column in zip(result.headers, result.columns, strict=True):
        table.add_row(
            header,
            column.name,
            column.sql_type,
            "[green]✓[/green]" if column.is_primary_key else "",
        )
    console.print(table)

    if result.preview_rows:
        console.print("\n[bold]Preview[/bold]")
        preview = RichTable(show_header=True, header_style="bold")
        for header in result.headers:
            preview.add_column(header)
        for row in result.preview_rows:
            cells = (row.get(header) for header in result.headers)
            preview.add_row(*("" if cell is None else str(cell) for cell in cells))
        console.print(preview)
