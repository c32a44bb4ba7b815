"""CREATE TABLE from inferred column definitions."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import Column, MetaData, Table
from sqlalchemy.exc import DBAPIError

from sheetsink.analysis.typing import parse_sql_type
from sheetsink.core.connections import ConnectionManager
from sheetsink.core.exceptions import SinkRejected
from sheetsink.core.logging import get_logger
from sheetsink.core.models import ColumnDefinition
from sheetsink.loading.sink import classify_sink_error, split_table_name

logger = get_logger(__name__)


def build_table(table_name: str, columns: Sequence[ColumnDefinition]) -> Table:
    """Build the SQLAlchemy table for a set of column definitions.

    Every column flagged as primary key joins one (possibly composite)
    primary key.

    Raises:
        InvalidTableName: If the table name is not [schema.]name of [A-Za-z0-9_]
        InvalidColumnType: If a column type is outside the supported grammar
        ValueError: If no columns are given
    """
    schema, name = split_table_name(table_name)
    if not columns:
        raise ValueError("A table needs at least one column")

    return Table(
        name,
        MetaData(schema=schema),
        *(
            Column(
                definition.name,
                parse_sql_type(definition.sql_type).to_sqlalchemy(),
                primary_key=definition.is_primary_key,
                autoincrement=False,
            )
            for definition in columns
        ),
    )


def create_table(
    manager: ConnectionManager,
    table_name: str,
    columns: Sequence[ColumnDefinition],
) -> Table:
    """Create the destination table in the sink.

    Raises:
        SinkRejected: If the database refuses the statement (e.g. the table
            already exists)
    """
    target = build_table(table_name, columns)
    try:
        target.create(manager.engine)
    except DBAPIError as e:
        raise SinkRejected(str(e.orig), classify_sink_error(e)) from e

    logger.info(
        "table_created",
        table=table_name,
        columns=len(columns),
        primary_key=[c.name for c in columns if c.is_primary_key],
    )
    return target
