"""Spreadsheet source readers (.xlsx, .xlsm, .xls) with smart header detection."""

from sheetsink.sources.spreadsheet.reader import (
    SheetRowStream,
    SpreadsheetRowStream,
    detect_header_row,
    is_legacy_workbook,
    open_spreadsheet,
)

__all__ = [
    "SheetRowStream",
    "SpreadsheetRowStream",
    "detect_header_row",
    "is_legacy_workbook",
    "open_spreadsheet",
]
