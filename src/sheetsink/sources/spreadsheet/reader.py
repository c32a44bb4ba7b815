"""Spreadsheet reader with smart header detection.

Real-world exports often put title or logo rows above the actual header, so
the header row is located by non-empty cell density among the first rows of
the first worksheet. Only the scanned rows are buffered; the rest of the
sheet is pulled row by row.

Two containers are read: .xlsx/.xlsm through openpyxl in read-only mode and
legacy .xls (BIFF) through xlrd. The container is chosen from the file's
signature, not its name.
"""

from __future__ import annotations

import zipfile
from abc import abstractmethod
from collections import deque
from collections.abc import Iterator, Sequence
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sheetsink.core.exceptions import EmptySource, MalformedFile
from sheetsink.core.logging import get_logger
from sheetsink.core.models import CellKind, CellValue, SourceFormat, classify_cell
from sheetsink.sources.base import RowStream, build_headers, is_blank

logger = get_logger(__name__)

DEFAULT_HEADER_SCAN_ROWS = 15

# Compound File Binary header used by .xls workbooks
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def count_non_empty(cells: Sequence[CellValue]) -> int:
    return sum(1 for cell in cells if classify_cell(cell) is not CellKind.EMPTY)


def detect_header_row(
    rows: Sequence[Sequence[CellValue]], scan_limit: int = DEFAULT_HEADER_SCAN_ROWS
) -> int:
    """Return the index of the header row among the first scan_limit rows.

    The header is the row with the most non-empty cells; on a tie the
    earliest row wins.
    """
    best_index = 0
    best_count = 0
    for index, cells in enumerate(rows[:scan_limit]):
        count = count_non_empty(cells)
        if count > best_count:
            best_index, best_count = index, count
    return best_index


class SheetRowStream(RowStream):
    """Row stream over the first worksheet of a workbook.

    Subclasses open the workbook and provide the sheet's rows as an
    iterator of cell tuples plus the sheet's row count.
    """

    source_format = SourceFormat.SPREADSHEET

    def __init__(self, path: Path, header_scan_rows: int = DEFAULT_HEADER_SCAN_ROWS):
        self._position = 0
        rows, self._max_row, sheet = self._open(path)
        try:
            self._rows: Iterator[Sequence[CellValue]] = rows
            scanned = self._scan(header_scan_rows)
            if not scanned or all(is_blank(cells) for cells in scanned):
                raise EmptySource(f"{path.name} is empty")

            header_index = detect_header_row(scanned, header_scan_rows)
            headers = build_headers(scanned[header_index])
            self._buffer: deque[Sequence[CellValue]] = deque(
                cells for cells in scanned[header_index + 1 :] if not is_blank(cells)
            )
            if not self._buffer:
                first = self._next_record()
                if first is None:
                    raise EmptySource(f"{path.name} has no data rows after the header")
                self._buffer.append(first)
        except BaseException:
            self._release()
            raise

        super().__init__(path, headers)
        logger.debug(
            "spreadsheet_opened",
            file=path.name,
            container=type(self).__name__,
            sheet=sheet,
            header_row=header_index,
            columns=len(headers),
        )

    @abstractmethod
    def _open(self, path: Path) -> tuple[Iterator[Sequence[CellValue]], int, str]:
        """Open the workbook; return (rows of the first sheet, row count, sheet title).

        Raises:
            MalformedFile: The container cannot be decoded
            EmptySource: The workbook has no worksheets
        """

    def _scan(self, limit: int) -> list[Sequence[CellValue]]:
        scanned: list[Sequence[CellValue]] = []
        for cells in self._rows:
            self._position += 1
            scanned.append(cells)
            if len(scanned) >= limit:
                break
        return scanned

    def _next_record(self) -> Sequence[CellValue] | None:
        for cells in self._rows:
            self._position += 1
            if not is_blank(cells):
                return cells
        return None

    @property
    def fraction_read(self) -> float:
        if self._closed or not self._max_row:
            return 1.0
        return min(self._position / self._max_row, 1.0)

    def _next_cells(self) -> Sequence[CellValue]:
        if self._buffer:
            return self._buffer.popleft()
        cells = self._next_record()
        if cells is None:
            raise StopIteration
        return cells


class SpreadsheetRowStream(SheetRowStream):
    """Row stream over the first worksheet of an .xlsx workbook."""

    def _open(self, path: Path) -> tuple[Iterator[Sequence[CellValue]], int, str]:
        # Opened as a file object so stored uploads need no .xlsx suffix
        self._handle = open(path, "rb")
        try:
            self._workbook = load_workbook(self._handle, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
            self._handle.close()
            raise MalformedFile(f"{path.name} is not a readable workbook: {e}") from e

        if not self._workbook.worksheets:
            self._release()
            raise EmptySource(f"{path.name} has no worksheets")
        worksheet = self._workbook.worksheets[0]
        return worksheet.iter_rows(values_only=True), worksheet.max_row or 0, worksheet.title

    def _release(self) -> None:
        self._workbook.close()
        self._handle.close()


def is_legacy_workbook(path: Path) -> bool:
    with open(path, "rb") as f:
        return f.read(len(OLE2_SIGNATURE)) == OLE2_SIGNATURE


def open_spreadsheet(
    path: Path, header_scan_rows: int = DEFAULT_HEADER_SCAN_ROWS
) -> SheetRowStream:
    """Open the first worksheet of an .xlsx or .xls workbook."""
    if is_legacy_workbook(path):
        from sheetsink.sources.spreadsheet.legacy import LegacySpreadsheetRowStream

        return LegacySpreadsheetRowStream(path, header_scan_rows=header_scan_rows)
    return SpreadsheetRowStream(path, header_scan_rows=header_scan_rows)
