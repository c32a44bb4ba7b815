"""Delimited-text reader.

The file is decoded incrementally through the csv module, so memory stays
constant in file size. The first record is always the header.
"""

from __future__ import annotations

import csv
import io
import os
from collections.abc import Sequence
from pathlib import Path

from sheetsink.core.exceptions import EmptySource, MalformedFile
from sheetsink.core.logging import get_logger
from sheetsink.core.models import CellValue, SourceFormat
from sheetsink.sources.base import RowStream, build_headers, is_blank

logger = get_logger(__name__)


class CSVRowStream(RowStream):
    """Row stream over a CSV (or TSV) file."""

    source_format = SourceFormat.CSV

    def __init__(self, path: Path, delimiter: str = ",", encoding: str = "utf-8-sig"):
        self._binary = open(path, "rb")
        try:
            self._size = os.fstat(self._binary.fileno()).st_size
            self._text = io.TextIOWrapper(self._binary, encoding=encoding, newline="")
            self._reader = csv.reader(self._text, delimiter=delimiter)
            self._pending: list[str] | None = None

            header_cells = self._read_record(path)
            if header_cells is None:
                raise EmptySource(f"{path.name} is empty")
            headers = build_headers(header_cells)
            if not headers:
                raise EmptySource(f"{path.name} has no header")

            # Peek one record so a header-only file fails before any write
            self._pending = self._read_record(path)
            if self._pending is None:
                raise EmptySource(f"{path.name} has a header but no data rows")
        except BaseException:
            self._binary.close()
            raise

        super().__init__(path, headers)
        logger.debug("csv_opened", file=path.name, columns=len(headers), bytes=self._size)

    def _read_record(self, path: Path) -> list[str] | None:
        """Read the next non-blank record, None at end of file."""
        try:
            for record in self._reader:
                if record and not is_blank(record):
                    return record
        except UnicodeDecodeError as e:
            raise MalformedFile(f"{path.name} is not valid text: {e.reason}") from e
        except csv.Error as e:
            raise MalformedFile(f"{path.name} line {self._reader.line_num}: {e}") from e
        return None

    @property
    def fraction_read(self) -> float:
        if self._closed or not self._size:
            return 1.0
        return min(self._binary.tell() / self._size, 1.0)

    def _next_cells(self) -> Sequence[CellValue]:
        if self._pending is not None:
            record, self._pending = self._pending, None
            return record
        record = self._read_record(self.path)
        if record is None:
            raise StopIteration
        return record

    def _release(self) -> None:
        self._text.close()


def open_csv(path: Path, encoding: str = "utf-8-sig") -> CSVRowStream:
    """Open a delimited-text file; .tsv files are tab separated."""
    delimiter = "\t" if path.suffix.lower() == ".tsv" else ","
    return CSVRowStream(path, delimiter=delimiter, encoding=encoding)
