"""Relational sinks that receive normalized batches.

A sink gets exactly one write_batch() call per batch and reports how many
rows that call actually persisted. Driver errors are translated into
SinkRejected with a user-facing hint; the loader never retries them.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from sqlalchemy import column, insert, table
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import DBAPIError, NoSuchTableError, SQLAlchemyError

from sheetsink.core.connections import ConnectionManager
from sheetsink.core.exceptions import (
    InvalidTableName,
    SinkErrorHint,
    SinkRejected,
    TableNotFound,
)
from sheetsink.core.logging import get_logger
from sheetsink.core.models import DuplicatePolicy, NormalizedRow

logger = get_logger(__name__)

_TABLE_NAME = re.compile(r"^(?:(?P<schema>[A-Za-z0-9_]+)\.)?(?P<table>[A-Za-z0-9_]+)$")

# Lower-cased driver message fragments -> hint. First match wins.
_ERROR_HINTS: list[tuple[tuple[str, ...], SinkErrorHint]] = [
    (
        ("out of range", "overflow", "too large", "value too big"),
        SinkErrorHint.VALUE_TOO_LARGE,
    ),
    (
        ("too long", "string or blob too big", "right truncated"),
        SinkErrorHint.TEXT_TOO_LONG,
    ),
    (
        ("no such table", "doesn't exist", "does not exist"),
        SinkErrorHint.MISSING_TABLE,
    ),
]


def split_table_name(name: str) -> tuple[str | None, str]:
    """Validate a [schema.]table name and split it.

    Raises:
        InvalidTableName: If either part has characters outside [A-Za-z0-9_]
    """
    match = _TABLE_NAME.match(name.strip())
    if match is None:
        raise InvalidTableName(f"Invalid table name '{name}'")
    return match["schema"], match["table"]


def classify_sink_error(error: BaseException) -> SinkErrorHint:
    """Map a driver error onto a user-facing hint."""
    message = str(getattr(error, "orig", None) or error).lower()
    for fragments, hint in _ERROR_HINTS:
        if any(fragment in message for fragment in fragments):
            return hint
    return SinkErrorHint.GENERIC


def build_insert_statement(
    table_name: str,
    columns: Sequence[str],
    dialect: str,
    policy: DuplicatePolicy = DuplicatePolicy.IGNORE,
    primary_key: Sequence[str] = (),
    schema: str | None = None,
) -> Any:
    """Build the batch INSERT for a dialect and duplicate policy.

    - sqlite, postgresql: ON CONFLICT DO NOTHING / DO UPDATE
    - mysql, mariadb:     INSERT IGNORE / ON DUPLICATE KEY UPDATE
    - anything else:      plain INSERT

    The target is a lightweight table clause, so values go to the driver
    as-is (dates are already canonical strings).
    """
    target = table(table_name, *(column(name) for name in columns), schema=schema)
    updatable = [name for name in columns if name not in primary_key]

    if policy is DuplicatePolicy.ERROR:
        return insert(target)

    if dialect in ("sqlite", "postgresql"):
        module = sqlite if dialect == "sqlite" else postgresql
        stmt = module.insert(target)
        if policy is DuplicatePolicy.UPDATE and primary_key and updatable:
            return stmt.on_conflict_do_update(
                index_elements=list(primary_key),
                set_={name: stmt.excluded[name] for name in updatable},
            )
        return stmt.on_conflict_do_nothing()

    if dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(target)
        if policy is DuplicatePolicy.UPDATE and updatable:
            return stmt.on_duplicate_key_update(
                {name: stmt.inserted[name] for name in updatable}
            )
        # SQLAlchemy always connects with CLIENT_FOUND_ROWS, under which a
        # no-op ON DUPLICATE KEY UPDATE still counts every duplicate as affected
        return stmt.prefix_with("IGNORE")

    logger.warning("duplicate_policy_unsupported", dialect=dialect, policy=policy.value)
    return insert(target)


class SinkBase(ABC):
    """Destination of normalized batches."""

    def prepare(self, columns: Sequence[str]) -> None:
        """Called once with the insert column list before the first batch."""

    @abstractmethod
    def write_batch(self, rows: Sequence[NormalizedRow]) -> int:
        """Persist one batch.

        Args:
            rows: Normalized rows, all with the same keys

        Returns:
            Number of rows the database reports as written

        Raises:
            SinkRejected: If the database rejects the batch
        """

    def close(self) -> None:
        """Release resources held by the sink."""


class SQLAlchemySink(SinkBase):
    """Batched insert-ignore / upsert into an existing table.

    The table is reflected and the statement built once per upload; see
    build_insert_statement() for the per-dialect conflict handling.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        table_name: str,
        policy: DuplicatePolicy = DuplicatePolicy.IGNORE,
    ):
        self.manager = manager
        self.schema, self.table_name = split_table_name(table_name)
        self.policy = DuplicatePolicy(policy)
        self._statement: Any = None
        self._primary_key: list[str] = []

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.table_name}" if self.schema else self.table_name

    def prepare(self, columns: Sequence[str]) -> None:
        try:
            reflected = self.manager.reflect_table(self.table_name, schema=self.schema)
        except NoSuchTableError:
            raise TableNotFound(self.qualified_name) from None
        except DBAPIError as e:
            raise SinkRejected(str(e.orig), classify_sink_error(e)) from e

        unknown = [name for name in columns if name not in reflected.columns]
        if unknown:
            raise SinkRejected(
                f"Columns not in {self.qualified_name}: {', '.join(unknown)}",
                SinkErrorHint.GENERIC,
            )

        self._primary_key = [c.name for c in reflected.primary_key.columns]
        self._statement = build_insert_statement(
            self.table_name,
            columns,
            self.manager.engine.dialect.name,
            self.policy,
            self._primary_key,
            self.schema,
        )
        logger.debug(
            "sink_prepared",
            table=self.qualified_name,
            dialect=self.manager.engine.dialect.name,
            policy=self.policy.value,
            primary_key=self._primary_key,
        )

    def write_batch(self, rows: Sequence[NormalizedRow]) -> int:
        if self._statement is None:
            raise RuntimeError("SQLAlchemySink.prepare() must be called before write_batch()")

        try:
            with self.manager.begin() as conn:
                result = conn.execute(self._statement, list(rows))
        except DBAPIError as e:
            hint = classify_sink_error(e)
            if hint is SinkErrorHint.MISSING_TABLE:
                raise TableNotFound(self.qualified_name) from e
            raise SinkRejected(str(e.orig), hint) from e
        except SQLAlchemyError as e:
            raise SinkRejected(str(e), classify_sink_error(e)) from e

        # MySQL counts an upserted row twice
        return min(result.rowcount, len(rows)) if result.rowcount >= 0 else len(rows)
