"""Column type inference and the SQL type vocabulary."""

from sheetsink.analysis.typing.sql_types import SqlType, SqlTypeKind, parse_sql_type
from sheetsink.analysis.typing.inference import (
    ColumnHypotheses,
    infer_columns,
    is_primary_key_candidate,
    normalize_column_name,
    normalize_column_names,
)

__all__ = [
    "ColumnHypotheses",
    "SqlType",
    "SqlTypeKind",
    "infer_columns",
    "is_primary_key_candidate",
    "normalize_column_name",
    "normalize_column_names",
    "parse_sql_type",
]
