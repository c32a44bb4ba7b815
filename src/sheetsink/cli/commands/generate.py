"""Generate command - write a synthetic products CSV."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated

import typer

from sheetsink.cli.common import console


def generate(
    output: Annotated[Path, typer.Argument(help="CSV file to write")],
    rows: Annotated[int, typer.Option("--rows", "-r", min=1, help="Data rows")] = 100_000,
    seed: Annotated[int | None, typer.Option("--seed", help="Random seed")] = None,
) -> None:
    """Write a large products CSV for trying out uploads.

    Examples:

        sheetsink generate ./dummy/products_large.csv

        sheetsink generate big.csv --rows 500000
    """
    from sheetsink.sources.synthetic import write_products_csv

    start = time.perf_counter()
    path = write_products_csv(output, rows=rows, seed=seed)
    size_mb = path.stat().st_size / (1024 * 1024)
    console.print(
        f"[green]Created {path}[/green] with {rows:,} rows "
        f"({size_mb:.2f} MB in {time.perf_counter() - start:.1f}s)"
    )
