"""Structured logging for the ingestion pipeline.

Console output for CLI use, JSON lines for server deployments.

Usage:
    from sheetsink.core.logging import configure_logging, get_logger, log_context

    configure_logging(log_level="INFO", log_format="json")
    logger = get_logger(__name__)

    with log_context(upload_id="abc123", table="products"):
        logger.info("batch_written", batch=3, rows=1000)

Every event logged inside log_context() carries upload_id and table, so
the lines of concurrent uploads can be told apart.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

import structlog
from structlog.typing import FilteringBoundLogger

# Libraries whose INFO output drowns out per-batch events
_QUIET_LIBRARIES = ("sqlalchemy.engine", "sqlalchemy.pool", "openpyxl", "multipart")

class _StderrLoggerFactory:
    """Build PrintLoggers on whatever sys.stderr is when the event is logged."""

    def __call__(self, *args: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


_upload_context: ContextVar[dict[str, Any]] = ContextVar("upload_context", default={})


@dataclass
class IngestMetrics:
    """Counters and timings for the file currently being ingested."""

    source: str
    started: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished: datetime | None = None

    batches: int = 0
    rows_processed: int = 0
    rows_written: int = 0
    slowest_batch_seconds: float = 0.0
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def elapsed(self) -> float:
        end = self.finished or datetime.now(UTC)
        return (end - self.started).total_seconds()

    @property
    def rows_per_second(self) -> float:
        elapsed = self.elapsed
        return self.rows_processed / elapsed if elapsed > 0 else 0.0

    def record_timing(self, operation: str, seconds: float) -> None:
        self.timings[operation] = self.timings.get(operation, 0.0) + seconds

    def record_batch(self, rows_processed: int, rows_written: int, seconds: float) -> None:
        self.batches += 1
        self.rows_processed += rows_processed
        self.rows_written += rows_written
        self.slowest_batch_seconds = max(self.slowest_batch_seconds, seconds)
        self.record_timing("write", seconds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "elapsed_seconds": round(self.elapsed, 3),
            "batches": self.batches,
            "rows_processed": self.rows_processed,
            "rows_written": self.rows_written,
            "rows_per_second": round(self.rows_per_second, 1),
            "slowest_batch_seconds": round(self.slowest_batch_seconds, 3),
            "timings": {name: round(seconds, 3) for name, seconds in self.timings.items()},
        }


_current_metrics: ContextVar[IngestMetrics | None] = ContextVar("current_metrics", default=None)


def start_ingest_metrics(source: str) -> IngestMetrics:
    """Begin collecting metrics for one file in the current context."""
    metrics = IngestMetrics(source=source)
    _current_metrics.set(metrics)
    return metrics


def end_ingest_metrics() -> IngestMetrics | None:
    """Stop collecting and return what was gathered, if anything."""
    metrics = _current_metrics.get()
    if metrics is not None:
        metrics.finished = datetime.now(UTC)
        _current_metrics.set(None)
    return metrics


def record_batch_written(rows_processed: int, rows_written: int, seconds: float) -> None:
    """Fold one acknowledged batch into the current metrics. No-op outside an ingestion."""
    metrics = _current_metrics.get()
    if metrics is not None:
        metrics.record_batch(rows_processed, rows_written, seconds)


def _merge_upload_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key, value in _upload_context.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    show_timestamps: bool = True,
    color: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        log_format: "console" (human readable) or "json" (one object per line)
        show_timestamps: Prefix console lines with an ISO timestamp
        color: Colorize console output
    """
    level = getattr(logging, log_level.upper())

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _merge_upload_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]
    if show_timestamps or log_format == "json":
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    match log_format:
        case "json":
            processors += [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        case _:
            processors.append(
                structlog.dev.ConsoleRenderer(
                    colors=color, exception_formatter=structlog.dev.plain_traceback
                )
            )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=_StderrLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # Route library logging (SQLAlchemy, uvicorn) to the same stream
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Return a structlog logger, typically get_logger(__name__)."""
    return cast(FilteringBoundLogger, structlog.get_logger(name))


@contextmanager
def log_context(**context: Any) -> Iterator[dict[str, Any]]:
    """Bind key-value pairs to every event logged inside the block.

    Contexts nest; inner values win. None values are not bound.
    """
    bound = {**_upload_context.get(), **{k: v for k, v in context.items() if v is not None}}
    token = _upload_context.set(bound)
    try:
        yield bound
    finally:
        _upload_context.reset(token)


configure_logging()
