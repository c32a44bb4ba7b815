"""CLI command implementations."""

from sheetsink.cli.commands import analyze, create_table, generate, upload

__all__ = ["analyze", "create_table", "generate", "upload"]
