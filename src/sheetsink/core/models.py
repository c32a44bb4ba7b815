"""Base models and types shared by the reader, analysis and loading modules."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# A raw cell as produced by a source reader.
CellValue = None | str | int | float | Decimal | datetime | date | time | timedelta | bool

# Header string -> raw cell, in header order.
RawRow = Mapping[str, CellValue]

# Normalized column name -> value safe to hand to the sink driver.
NormalizedRow = dict[str, Any]


class CellKind(str, Enum):
    """Closed set of cell kinds the pipeline distinguishes."""

    EMPTY = "empty"
    INTEGER = "integer"
    DECIMAL = "decimal"
    TEXT = "text"
    DATETIME = "datetime"


def classify_cell(value: object) -> CellKind:
    """Classify a raw Python cell value into its CellKind.

    Classification is by Python type only; numeric-looking strings are TEXT
    here and are parsed by the inference engine.
    """
    match value:
        case None:
            return CellKind.EMPTY
        case str() if not value.strip():
            return CellKind.EMPTY
        case str():
            return CellKind.TEXT
        case bool():
            return CellKind.TEXT
        case int():
            return CellKind.INTEGER
        case float() if value != value:  # NaN
            return CellKind.EMPTY
        case float() | Decimal():
            return CellKind.DECIMAL
        case datetime() | date():
            return CellKind.DATETIME
        case _:
            return CellKind.TEXT


class SourceFormat(str, Enum):
    """Container formats the source reader understands."""

    CSV = "csv"
    SPREADSHEET = "spreadsheet"


class DuplicatePolicy(str, Enum):
    """What a batch write does with rows whose key already exists."""

    IGNORE = "ignore"  # insert, skip conflicting keys
    UPDATE = "update"  # upsert, overwrite non-key columns
    ERROR = "error"  # plain insert, a conflict rejects the batch


class ColumnDefinition(BaseModel):
    """Inferred relational definition of one column."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[a-z0-9_]+$")
    sql_type: str
    is_primary_key: bool = False


class BatchOutcome(BaseModel):
    """Result of one batch write."""

    model_config = ConfigDict(frozen=True)

    index: int
    rows_processed: int
    rows_written: int
    seconds: float = 0.0


class IngestResult(BaseModel):
    """Final counters of an ingestion.

    rows_processed counts every row pulled from the source; rows_written is
    what the sink reported as persisted.
    """

    model_config = ConfigDict(frozen=True)

    rows_processed: int = 0
    rows_written: int = 0
    batches: int = 0

    def add(self, outcome: BatchOutcome) -> IngestResult:
        """Return a new result with one more batch folded in."""
        return IngestResult(
            rows_processed=self.rows_processed + outcome.rows_processed,
            rows_written=self.rows_written + outcome.rows_written,
            batches=self.batches + 1,
        )

    def with_unwritten(self, rows: int) -> IngestResult:
        """Return a new result counting rows that were read but never written."""
        return self.model_copy(update={"rows_processed": self.rows_processed + rows})

    @classmethod
    def fold(cls, outcomes: Iterable[BatchOutcome]) -> IngestResult:
        """Reduce batch outcomes into a single result."""
        result = cls()
        for outcome in outcomes:
            result = result.add(outcome)
        return result
