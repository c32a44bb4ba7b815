"""Connection management for the relational sink.

A single pooled SQLAlchemy engine per destination database. The pool size is
the only throttle shared between concurrent uploads; the pipeline itself
holds no global locks.

Usage:
    from sheetsink.core.connections import ConnectionManager, ConnectionConfig

    manager = ConnectionManager(ConnectionConfig(database_url="sqlite:///./data.db"))
    manager.initialize()

    with manager.begin() as conn:
        conn.execute(...)

    manager.close()
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import MetaData, Table, create_engine, event, inspect
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.pool import StaticPool

from sheetsink.core.config import get_settings
from sheetsink.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConnectionConfig:
    """Connection configuration for the sink database.

    Attributes:
        database_url: SQLAlchemy URL of the destination database
        pool_size: SQLAlchemy connection pool size
        max_overflow: Maximum overflow connections beyond pool_size
        pool_timeout: Seconds to wait for a connection from pool
        sqlite_timeout: SQLite busy timeout in seconds
        echo_sql: Whether to echo SQL statements (for debugging)
    """

    database_url: str

    # SQLAlchemy pool settings
    pool_size: int = 10
    max_overflow: int = 0
    pool_timeout: float = 30.0
    sqlite_timeout: float = 30.0

    # Debug
    echo_sql: bool = False

    @classmethod
    def from_settings(cls, **kwargs: Any) -> ConnectionConfig:
        """Create config from application settings.

        Args:
            **kwargs: Override any config attributes

        Returns:
            ConnectionConfig built from SHEETSINK_* settings
        """
        settings = get_settings()
        values: dict[str, Any] = {
            "database_url": settings.database_url,
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
            "sqlite_timeout": settings.sqlite_timeout,
            "echo_sql": settings.echo_sql,
        }
        values.update(kwargs)
        return cls(**values)

    @classmethod
    def in_memory(cls, **kwargs: Any) -> ConnectionConfig:
        """Create config for an in-memory SQLite database (useful for testing)."""
        return cls(database_url="sqlite:///:memory:", **kwargs)


@dataclass
class ConnectionManager:
    """Pooled engine for the sink with scoped transactions.

    Thread Safety:
    - Each begin() scope checks a connection out of the pool, so concurrent
      uploads write through independent connections.
    - In-memory SQLite shares one connection (StaticPool) so that batch
      writes issued from worker threads see the same database.
    """

    config: ConnectionConfig
    _engine: Engine | None = field(default=None, init=False, repr=False)
    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)

    def initialize(self) -> None:
        """Create the engine and its pool.

        Safe to call multiple times (idempotent).

        Raises:
            RuntimeError: If initialization fails
        """
        with self._init_lock:
            if self._initialized:
                return

            try:
                self._engine = self._create_engine()
                self._initialized = True
            except Exception as e:
                self.close()
                raise RuntimeError(f"Failed to initialize connections: {e}") from e

    def _create_engine(self) -> Engine:
        url = make_url(self.config.database_url)

        if url.get_backend_name() != "sqlite":
            return create_engine(
                url,
                echo=self.config.echo_sql,
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
                pool_pre_ping=True,
            )

        if url.database in (None, "", ":memory:"):
            engine = create_engine(
                url,
                echo=self.config.echo_sql,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(
                url,
                echo=self.config.echo_sql,
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
                # Batches are written from a worker thread
                connect_args={"check_same_thread": False},
            )

        sqlite_timeout = self.config.sqlite_timeout

        @event.listens_for(engine, "connect")
        def configure_sqlite(dbapi_conn: Any, connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={int(sqlite_timeout * 1000)}")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        return engine

    def _ensure_initialized(self) -> None:
        """Raise if not initialized."""
        if not self._initialized:
            raise RuntimeError(
                "ConnectionManager not initialized. Call manager.initialize() first."
            )

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine.

        Raises:
            RuntimeError: If manager not initialized
        """
        self._ensure_initialized()
        assert self._engine is not None
        return self._engine

    @contextmanager
    def begin(self) -> Generator[Connection]:
        """Check out a connection and run a transaction.

        Commits when the block exits cleanly, rolls back on exception.

        Example:
            with manager.begin() as conn:
                conn.execute(insert(table), rows)
        """
        with self.engine.begin() as conn:
            yield conn

    def table_exists(self, table_name: str, schema: str | None = None) -> bool:
        """Check whether a table exists in the sink."""
        return inspect(self.engine).has_table(table_name, schema=schema)

    def reflect_table(self, table_name: str, schema: str | None = None) -> Table:
        """Reflect a table definition from the sink.

        Raises:
            sqlalchemy.exc.NoSuchTableError: If the table does not exist
        """
        return Table(table_name, MetaData(schema=schema), autoload_with=self.engine)

    def close(self) -> None:
        """Dispose of the pool. Safe to call multiple times."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._initialized = False


# Default manager for the API process
_default_manager: ConnectionManager | None = None
_default_lock = threading.Lock()


def get_connection_manager(config: ConnectionConfig | None = None) -> ConnectionManager:
    """Get or create the process-wide ConnectionManager.

    Args:
        config: Configuration used when the manager is first created.
                Defaults to ConnectionConfig.from_settings().

    Returns:
        Initialized ConnectionManager
    """
    global _default_manager

    with _default_lock:
        if _default_manager is None:
            manager = ConnectionManager(config or ConnectionConfig.from_settings())
            manager.initialize()
            _default_manager = manager
            logger.info("sink_connected", backend=manager.engine.dialect.name)
        return _default_manager


def close_default_manager() -> None:
    """Close the default ConnectionManager if it exists."""
    global _default_manager

    with _default_lock:
        if _default_manager is not None:
            _default_manager.close()
            _default_manager = None


__all__ = [
    "ConnectionConfig",
    "ConnectionManager",
    "close_default_manager",
    "get_connection_manager",
]
