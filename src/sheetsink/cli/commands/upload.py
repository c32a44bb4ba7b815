"""Upload command - stream a file into an existing table."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn

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
from sheetsink.core.models import DuplicatePolicy, IngestResult
from sheetsink.reporting import UploadProgress


class _ConsoleProgress(UploadProgress):
    """UploadProgress that mirrors its percent onto a rich progress bar."""

    def __init__(self, bar: Progress, task: TaskID):
        super().__init__()
        self._bar = bar
        self._task = task

    def on_batch_written(self, result: IngestResult, fraction_read: float) -> None:
        super().on_batch_written(result, fraction_read)
        snapshot = self.snapshot()
        self._bar.update(
            self._task,
            completed=snapshot.percent,
            description=f"{snapshot.state.value} {snapshot.rows_processed:,} rows",
        )


def upload(
    file: FileArg,
    table: TableArg,
    database_url: DatabaseUrlOption = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", min=1, help="Rows per write (default: 1000)"),
    ] = None,
    policy: Annotated[
        DuplicatePolicy | None,
        typer.Option("--policy", help="Rows with an existing key: ignore, update or error"),
    ] = None,
    delete: Annotated[
        bool,
        typer.Option("--delete", help="Delete the file once the upload has finished"),
    ] = False,
    verbose: VerboseOption = 0,
) -> None:
    """Upload a CSV or Excel file into an existing table.

    Rows whose key already exists are skipped unless --policy says otherwise,
    so re-running an upload is safe.

    Examples:

        sheetsink upload products.csv products

        sheetsink upload report.xlsx sales.orders --policy update -b 5000
    """
    setup_logging(verbosity=verbose)

    from sheetsink.ingest import upload as upload_file

    manager = get_manager(database_url)
    try:
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as bar:
            task = bar.add_task("reading", total=100)
            result = upload_file(
                file,
                table,
                manager,
                batch_size=batch_size,
                policy=policy,
                progress=_ConsoleProgress(bar, task),
                cleanup=delete,
            )
    except SheetsinkError as e:
        exit_with_error(e)
        return
    finally:
        manager.close()

    skipped = result.rows_processed - result.rows_written
    console.print(
        f"[green]Uploaded {result.rows_written:,} rows[/green] into {table} "
        f"({result.rows_processed:,} read, {result.batches} batches"
        + (f", {skipped:,} not written" if skipped > 0 else "")
        + ")"
    )
