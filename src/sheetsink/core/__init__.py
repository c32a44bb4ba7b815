"""Core infrastructure: configuration, logging, connections, shared models."""

from sheetsink.core.config import Settings, get_settings
from sheetsink.core.connections import (
    ConnectionConfig,
    ConnectionManager,
    close_default_manager,
    get_connection_manager,
)
from sheetsink.core.exceptions import (
    Cancelled,
    EmptySource,
    IngestError,
    MalformedFile,
    SheetsinkError,
    SinkErrorHint,
    SinkRejected,
    SinkTimeout,
    TableNotFound,
)
from sheetsink.core.models import (
    CellKind,
    ColumnDefinition,
    DuplicatePolicy,
    IngestResult,
    SourceFormat,
)

__all__ = [
    "Cancelled",
    "CellKind",
    "ColumnDefinition",
    "ConnectionConfig",
    "ConnectionManager",
    "DuplicatePolicy",
    "EmptySource",
    "IngestError",
    "IngestResult",
    "MalformedFile",
    "Settings",
    "SheetsinkError",
    "SinkErrorHint",
    "SinkRejected",
    "SinkTimeout",
    "SourceFormat",
    "TableNotFound",
    "close_default_manager",
    "get_connection_manager",
    "get_settings",
]
