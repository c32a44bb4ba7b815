"""Tabular source readers.

open_source() dispatches on the format hint or the file extension and returns
a RowStream whose headers are already resolved.
"""

from __future__ import annotations

from pathlib import Path

from sheetsink.core.exceptions import MalformedFile
from sheetsink.core.models import SourceFormat
from sheetsink.sources.base import RowStream
from sheetsink.sources.csv import CSVRowStream, open_csv
from sheetsink.sources.spreadsheet import (
    SheetRowStream,
    SpreadsheetRowStream,
    detect_header_row,
    open_spreadsheet,
)

_EXTENSION_FORMATS = {
    ".csv": SourceFormat.CSV,
    ".tsv": SourceFormat.CSV,
    ".txt": SourceFormat.CSV,
    ".xlsx": SourceFormat.SPREADSHEET,
    ".xlsm": SourceFormat.SPREADSHEET,
    ".xls": SourceFormat.SPREADSHEET,
}


def resolve_format(path: Path, format_hint: SourceFormat | str | None = None) -> SourceFormat:
    """Decide which reader handles a file.

    Args:
        path: File on local storage
        format_hint: A SourceFormat, its value ("csv", "spreadsheet"), or an
            original file name / extension such as "report.xlsx" or ".csv".
            Falls back to the extension of path.

    Raises:
        MalformedFile: If the container is not supported
    """
    if isinstance(format_hint, SourceFormat):
        return format_hint

    if format_hint:
        hint = format_hint.strip().lower()
        if hint in (SourceFormat.CSV.value, SourceFormat.SPREADSHEET.value):
            return SourceFormat(hint)
        suffix = hint if hint.startswith(".") and "/" not in hint else Path(hint).suffix
    else:
        suffix = path.suffix.lower()

    try:
        return _EXTENSION_FORMATS[suffix]
    except KeyError:
        raise MalformedFile(f"Unsupported file type '{suffix or path.name}'") from None


def open_source(
    path: Path | str,
    format_hint: SourceFormat | str | None = None,
    *,
    header_scan_rows: int = 15,
    encoding: str = "utf-8-sig",
) -> RowStream:
    """Open a file as a lazy stream of raw rows.

    Raises:
        EmptySource: If the file has no header or no data rows
        MalformedFile: If the container or its encoding cannot be decoded
    """
    path = Path(path)
    source_format = resolve_format(path, format_hint)
    if source_format is SourceFormat.SPREADSHEET:
        return open_spreadsheet(path, header_scan_rows=header_scan_rows)
    return open_csv(path, encoding=encoding)


__all__ = [
    "CSVRowStream",
    "RowStream",
    "SheetRowStream",
    "SpreadsheetRowStream",
    "detect_header_row",
    "open_source",
    "resolve_format",
]
