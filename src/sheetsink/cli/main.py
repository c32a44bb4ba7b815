"""Main CLI application entry point."""

from __future__ import annotations

import typer

from sheetsink.cli.commands import analyze, create_table, generate, upload

app = typer.Typer(
    name="sheetsink",
    help="sheetsink - stream CSV and Excel files into relational tables.",
    no_args_is_help=True,
)

# Register commands
app.command()(analyze.analyze)
app.command("create-table")(create_table.create_table)
app.command()(upload.upload)
app.command()(generate.generate)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
