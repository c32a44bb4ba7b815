"""Exception hierarchy for the ingestion pipeline.

Parsing errors (EmptySource, MalformedFile) are raised before anything is
written. Write errors (SinkRejected and subclasses) and Cancelled carry the
partial IngestResult accumulated up to the failure: batches committed before
it stay committed.
"""

from __future__ import annotations

from enum import Enum

from sheetsink.core.models import IngestResult


class SheetsinkError(Exception):
    """Base class for all sheetsink errors."""


class InvalidTableName(SheetsinkError, ValueError):
    """A table name contains characters outside [A-Za-z0-9_]."""


class InvalidColumnType(SheetsinkError, ValueError):
    """A column type is outside the INTEGER/DECIMAL/VARCHAR/DATETIME grammar."""


class InvalidTransition(SheetsinkError, RuntimeError):
    """An upload progress reporter was moved to a state it cannot reach."""


class IngestError(SheetsinkError):
    """An analysis or upload could not complete."""

    #: Short, non-leaking description of the failure class.
    summary = "Upload failed"

    def __init__(self, message: str, result: IngestResult | None = None):
        super().__init__(message)
        self.message = message
        self.result = result

    @property
    def rows_processed(self) -> int:
        return self.result.rows_processed if self.result else 0

    def user_message(self) -> str:
        """Render the message shown to the person who uploaded the file."""
        if self.rows_processed:
            return f"{self.summary} after {self.rows_processed} rows."
        return f"{self.summary}."


class EmptySource(IngestError):
    summary = "The file contains no data rows"


class MalformedFile(IngestError):
    summary = "The file could not be read; ensure it is a valid CSV or Excel workbook"


class SinkErrorHint(str, Enum):
    """User-facing classification of a sink rejection."""

    VALUE_TOO_LARGE = "value_too_large"
    TEXT_TOO_LONG = "text_too_long"
    MISSING_TABLE = "missing_table"
    TIMEOUT = "timeout"
    GENERIC = "generic"


_HINT_SUMMARIES = {
    SinkErrorHint.VALUE_TOO_LARGE: "A numeric value is too large for its column",
    SinkErrorHint.TEXT_TOO_LONG: "A text value is too long for its column",
    SinkErrorHint.MISSING_TABLE: "The destination table does not exist",
    SinkErrorHint.TIMEOUT: "The database did not acknowledge a batch in time",
    SinkErrorHint.GENERIC: "The database rejected the data (format error or connection lost)",
}


class SinkRejected(IngestError):
    """A batch write failed; the upload stops at that batch."""

    def __init__(
        self,
        message: str,
        hint: SinkErrorHint = SinkErrorHint.GENERIC,
        result: IngestResult | None = None,
    ):
        super().__init__(message, result)
        self.hint = hint

    @property
    def summary(self) -> str:  # type: ignore[override]
        return _HINT_SUMMARIES[self.hint]


class SinkTimeout(SinkRejected):
    def __init__(self, message: str, result: IngestResult | None = None):
        super().__init__(message, SinkErrorHint.TIMEOUT, result)


class TableNotFound(SinkRejected):
    def __init__(self, table: str, result: IngestResult | None = None):
        super().__init__(f"Table {table} does not exist", SinkErrorHint.MISSING_TABLE, result)
        self.table = table


class Cancelled(IngestError):
    """The caller aborted the upload. Not a pipeline failure."""

    summary = "Upload cancelled"
