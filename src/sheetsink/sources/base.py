"""Base class for row streams produced by the source readers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from pathlib import Path
from types import TracebackType

from sheetsink.core.models import CellKind, CellValue, SourceFormat, classify_cell


def build_headers(cells: Sequence[CellValue]) -> list[str]:
    """Turn a header row into unique, non-blank header strings.

    Trailing empty cells are dropped. Blank cells inside the row become
    column_<n> (1-based) and repeated names get a numeric suffix.
    """
    values = list(cells)
    while values and classify_cell(values[-1]) is CellKind.EMPTY:
        values.pop()

    headers: list[str] = []
    seen: dict[str, int] = {}
    for position, cell in enumerate(values, start=1):
        name = str(cell).strip() if classify_cell(cell) is not CellKind.EMPTY else ""
        if not name:
            name = f"column_{position}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        seen.setdefault(name, 1)
        headers.append(name)
    return headers


def make_row(headers: Sequence[str], cells: Sequence[CellValue]) -> dict[str, CellValue]:
    """Key a row's cells by header, padding missing cells with "" and dropping extras."""
    row: dict[str, CellValue] = {}
    for index, header in enumerate(headers):
        value = cells[index] if index < len(cells) else ""
        row[header] = "" if value is None else value
    return row


def is_blank(cells: Sequence[CellValue]) -> bool:
    return all(classify_cell(cell) is CellKind.EMPTY for cell in cells)


class RowStream(ABC, Iterator[dict[str, CellValue]]):
    """Lazy, forward-only sequence of raw rows read from one file.

    The header is resolved when the stream is opened. The stream cannot be
    restarted; open the file again for a second pass. Always close the
    stream (or use it as a context manager) to release the file handle.
    """

    source_format: SourceFormat

    def __init__(self, path: Path, headers: list[str]):
        self.path = path
        self.headers = headers
        self.rows_read = 0
        self._closed = False

    @property
    @abstractmethod
    def fraction_read(self) -> float:
        """Approximate share of the file consumed so far, 0.0 to 1.0."""

    @abstractmethod
    def _next_cells(self) -> Sequence[CellValue]:
        """Return the cells of the next non-blank record or raise StopIteration."""

    @abstractmethod
    def _release(self) -> None:
        """Release the underlying file handle."""

    def __iter__(self) -> RowStream:
        return self

    def __next__(self) -> dict[str, CellValue]:
        if self._closed:
            raise StopIteration
        try:
            cells = self._next_cells()
        except StopIteration:
            self.close()
            raise
        self.rows_read += 1
        return make_row(self.headers, cells)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the file. Safe to call multiple times."""
        if not self._closed:
            self._closed = True
            self._release()

    def __enter__(self) -> RowStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
