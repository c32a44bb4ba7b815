"""Schema inference from a small sample of rows.

Type inference is a heuristic over the first few rows only (5 by default),
not the whole file. Each column tracks three hypotheses that start true and
fall permanently on the first counter-example:

- is_integer: every non-empty value is a number with no fractional part
- is_decimal: every non-empty value is a number
- is_date:    every non-empty value is a calendar date/time

Decision order, first match wins:

    is_integer and longest value > 9 chars  -> VARCHAR(50)
    is_integer                              -> INTEGER
    is_decimal                              -> DECIMAL(10,2)
    is_date                                 -> DATETIME
    otherwise (including all-empty columns) -> VARCHAR(255)

The first rule keeps phone-number-like digit strings out of 32-bit integer
columns, where they would overflow or lose leading zeros.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sheetsink.analysis.temporal import parse_datetime
from sheetsink.analysis.typing import sql_types
from sheetsink.core.config import get_settings
from sheetsink.core.logging import get_logger
from sheetsink.core.models import CellKind, CellValue, ColumnDefinition, classify_cell

logger = get_logger(__name__)

MAX_INTEGER_LENGTH = 9

_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_PRIMARY_KEY_HINT = re.compile(r"id|sku|code|no", re.IGNORECASE)


def normalize_column_name(header: str, position: int = 1) -> str:
    """Lower-case a header and collapse every non-alphanumeric run to "_".

    A header with no usable characters becomes column_<position>.
    """
    name = _NON_ALNUM.sub("_", header.strip().lower()).strip("_")
    return name or f"column_{position}"


def normalize_column_names(headers: Sequence[str]) -> list[str]:
    """Normalize all headers of a file, suffixing collisions (_2, _3, ...)."""
    names: list[str] = []
    seen: dict[str, int] = {}
    for position, header in enumerate(headers, start=1):
        name = normalize_column_name(header, position)
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        seen.setdefault(name, 1)
        names.append(name)
    return names


def is_primary_key_candidate(name: str) -> bool:
    """Advisory primary-key flag based on the column name alone."""
    return _PRIMARY_KEY_HINT.search(name) is not None


def _as_number(value: CellValue) -> Decimal | None:
    match classify_cell(value):
        case CellKind.INTEGER | CellKind.DECIMAL:
            return Decimal(str(value))
        case CellKind.TEXT if isinstance(value, str):
            text = value.strip()
            if not _NUMBER.match(text):
                return None
            try:
                return Decimal(text)
            except InvalidOperation:
                return None
        case _:
            return None


@dataclass
class ColumnHypotheses:
    """Running type hypotheses for one column."""

    is_integer: bool = True
    is_decimal: bool = True
    is_date: bool = True
    longest: int = 0
    observed: int = 0

    def observe(self, value: CellValue) -> None:
        if classify_cell(value) is CellKind.EMPTY:
            return

        self.observed += 1
        self.longest = max(self.longest, len(str(value).strip()))

        number = _as_number(value)
        if number is None:
            self.is_integer = False
            self.is_decimal = False
        elif number != number.to_integral_value():
            self.is_integer = False

        if self.is_date and parse_datetime(value) is None:
            self.is_date = False

    def sql_type(self) -> str:
        if not self.observed:
            return sql_types.VARCHAR_DEFAULT
        if self.is_integer and self.longest > MAX_INTEGER_LENGTH:
            return sql_types.VARCHAR_LONG_NUMBER
        if self.is_integer:
            return sql_types.INTEGER
        if self.is_decimal:
            return sql_types.DECIMAL
        if self.is_date:
            return sql_types.DATETIME
        return sql_types.VARCHAR_DEFAULT


def infer_columns(
    headers: Sequence[str],
    sample: Sequence[Mapping[str, CellValue]],
    sample_size: int | None = None,
) -> list[ColumnDefinition]:
    """Infer a column definition per header from a sample of raw rows.

    Args:
        headers: Original header strings, in file order
        sample: Raw rows keyed by original header; only the first
            sample_size rows are considered
        sample_size: Rows to consider (default: settings.sample_size)

    Returns:
        One ColumnDefinition per header, in header order
    """
    if sample_size is None:
        sample_size = get_settings().sample_size
    rows = sample[:sample_size]

    columns: list[ColumnDefinition] = []
    for header, name in zip(headers, normalize_column_names(headers), strict=True):
        hypotheses = ColumnHypotheses()
        for row in rows:
            hypotheses.observe(row.get(header))
        columns.append(
            ColumnDefinition(
                name=name,
                sql_type=hypotheses.sql_type(),
                is_primary_key=is_primary_key_candidate(name),
            )
        )

    logger.debug("columns_inferred", columns=len(columns), sample_rows=len(rows))
    return columns
