"""Column type vocabulary shared by inference and table creation.

The inference engine only ever produces INTEGER, DECIMAL(10,2), VARCHAR(n)
and DATETIME; parse_sql_type() accepts exactly that grammar (with any
precision/length) and maps it to SQLAlchemy types for CREATE TABLE.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.types import TypeEngine

from sheetsink.core.exceptions import InvalidColumnType

INTEGER = "INTEGER"
DECIMAL = "DECIMAL(10,2)"
DATETIME = "DATETIME"
VARCHAR_DEFAULT = "VARCHAR(255)"
# All-digit values longer than 9 characters (phone numbers, long codes)
VARCHAR_LONG_NUMBER = "VARCHAR(50)"

_TYPE_PATTERN = re.compile(
    r"^\s*(?P<base>INTEGER|INT|DECIMAL|VARCHAR|DATETIME)\s*"
    r"(?:\(\s*(?P<first>\d+)\s*(?:,\s*(?P<second>\d+)\s*)?\))?\s*$",
    re.IGNORECASE,
)


class SqlTypeKind(str, Enum):
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    VARCHAR = "VARCHAR"
    DATETIME = "DATETIME"


@dataclass(frozen=True)
class SqlType:
    """Parsed column type."""

    kind: SqlTypeKind
    length: int | None = None  # VARCHAR length or DECIMAL precision
    scale: int | None = None  # DECIMAL scale

    def __str__(self) -> str:
        match self.kind:
            case SqlTypeKind.VARCHAR:
                return f"VARCHAR({self.length})"
            case SqlTypeKind.DECIMAL:
                return f"DECIMAL({self.length},{self.scale})"
            case _:
                return self.kind.value

    def to_sqlalchemy(self) -> TypeEngine[Any]:
        match self.kind:
            case SqlTypeKind.INTEGER:
                return Integer()
            case SqlTypeKind.DECIMAL:
                return Numeric(self.length, self.scale)
            case SqlTypeKind.VARCHAR:
                return String(self.length)
            case SqlTypeKind.DATETIME:
                return DateTime()


def parse_sql_type(text: str) -> SqlType:
    """Parse a column type string.

    Raises:
        InvalidColumnType: If the string is outside the supported grammar
    """
    match = _TYPE_PATTERN.match(text)
    if match is None:
        raise InvalidColumnType(f"Unsupported column type '{text}'")

    base = match["base"].upper()
    first = int(match["first"]) if match["first"] else None
    second = int(match["second"]) if match["second"] else None

    if base in ("INTEGER", "INT"):
        if first is not None:
            raise InvalidColumnType(f"INTEGER takes no arguments: '{text}'")
        return SqlType(SqlTypeKind.INTEGER)

    if base == "DATETIME":
        if first is not None:
            raise InvalidColumnType(f"DATETIME takes no arguments: '{text}'")
        return SqlType(SqlTypeKind.DATETIME)

    if base == "VARCHAR":
        if first is None or second is not None or first < 1:
            raise InvalidColumnType(f"VARCHAR needs a single positive length: '{text}'")
        return SqlType(SqlTypeKind.VARCHAR, length=first)

    precision = first if first is not None else 10
    scale = second if second is not None else 0
    if precision < 1 or scale > precision:
        raise InvalidColumnType(f"Invalid DECIMAL precision/scale: '{text}'")
    return SqlType(SqlTypeKind.DECIMAL, length=precision, scale=scale)
