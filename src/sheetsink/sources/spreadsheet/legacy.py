"""Legacy .xls (BIFF) workbooks, read through xlrd.

xlrd decodes the whole sheet up front, so these files are not streamed the
way .xlsx is; cells are still converted lazily, one row at a time.
"""

from __future__ import annotations

import struct
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import xlrd
from xlrd.compdoc import CompDocError
from xlrd.xldate import XLDateError, xldate_as_datetime

from sheetsink.core.exceptions import EmptySource, MalformedFile
from sheetsink.core.models import CellValue
from sheetsink.sources.spreadsheet.reader import SheetRowStream


def convert_cell(cell: Any, datemode: int) -> CellValue:
    """Map an xlrd cell onto the values openpyxl would produce."""
    match cell.ctype:
        case xlrd.XL_CELL_EMPTY | xlrd.XL_CELL_BLANK | xlrd.XL_CELL_ERROR:
            return None
        case xlrd.XL_CELL_BOOLEAN:
            return bool(cell.value)
        case xlrd.XL_CELL_NUMBER:
            value = float(cell.value)
            return int(value) if value.is_integer() else value
        case xlrd.XL_CELL_DATE:
            try:
                moment = xldate_as_datetime(cell.value, datemode)
            except (XLDateError, ValueError, OverflowError):
                return cell.value
            # Serials below 1 carry a time of day only
            return moment.time() if cell.value < 1 else moment
        case _:
            return cell.value


class LegacySpreadsheetRowStream(SheetRowStream):
    """Row stream over the first worksheet of a legacy .xls workbook."""

    def _open(self, path: Path) -> tuple[Iterator[Sequence[CellValue]], int, str]:
        try:
            self._book = xlrd.open_workbook(str(path), on_demand=True)
        except (xlrd.XLRDError, CompDocError, struct.error, OSError, AssertionError) as e:
            raise MalformedFile(f"{path.name} is not a readable .xls workbook: {e}") from e

        if self._book.nsheets == 0:
            self._release()
            raise EmptySource(f"{path.name} has no worksheets")
        sheet = self._book.sheet_by_index(0)
        datemode = self._book.datemode
        rows = (
            tuple(convert_cell(cell, datemode) for cell in sheet.row(index))
            for index in range(sheet.nrows)
        )
        return rows, sheet.nrows, sheet.name

    def _release(self) -> None:
        self._book.release_resources()
