"""Batch loading into relational sinks."""

from sheetsink.loading.ddl import build_table, create_table
from sheetsink.loading.loader import BatchLoader, CancelToken, LoadListener, column_mapping
from sheetsink.loading.sink import (
    SinkBase,
    SQLAlchemySink,
    build_insert_statement,
    classify_sink_error,
    split_table_name,
)

__all__ = [
    "BatchLoader",
    "CancelToken",
    "LoadListener",
    "SQLAlchemySink",
    "SinkBase",
    "build_insert_statement",
    "build_table",
    "classify_sink_error",
    "column_mapping",
    "create_table",
    "split_table_name",
]
