"""Entry points: analyze a file, create its table, upload it.

Example:
    from sheetsink import analyze, create_table, upload
    from sheetsink.core import get_connection_manager

    manager = get_connection_manager()
    analysis = analyze("products.xlsx", cleanup=False)
    create_table(manager, "products", analysis.columns)
    result = upload("products.xlsx", "products", manager)
    print(result.rows_written)
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from itertools import islice
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from sheetsink.analysis.typing import infer_columns
from sheetsink.core.config import get_settings
from sheetsink.core.connections import ConnectionManager, get_connection_manager
from sheetsink.core.exceptions import Cancelled, IngestError, SheetsinkError
from sheetsink.core.logging import (
    end_ingest_metrics,
    get_logger,
    log_context,
    start_ingest_metrics,
)
from sheetsink.core.models import ColumnDefinition, DuplicatePolicy, IngestResult, SourceFormat
from sheetsink.loading import BatchLoader, CancelToken, SinkBase, SQLAlchemySink
from sheetsink.loading import create_table as _create_table
from sheetsink.reporting import UploadProgress
from sheetsink.sources import open_source

logger = get_logger(__name__)


class AnalysisResult(BaseModel):
    """What analyze() learned about a file.

    preview_rows are raw rows keyed by the original header strings, as the
    reader produced them; nothing is renamed or normalized.
    """

    model_config = ConfigDict(frozen=True)

    headers: list[str]
    columns: list[ColumnDefinition]
    preview_rows: list[dict[str, Any]]


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("file_cleanup_failed", path=str(path), error=str(e))


def analyze(
    path: Path | str,
    format_hint: SourceFormat | str | None = None,
    sample_size: int | None = None,
    cleanup: bool = True,
    *,
    preview_rows: int | None = None,
    header_scan_rows: int | None = None,
) -> AnalysisResult:
    """Infer column definitions and a preview from the head of a file.

    Only the first max(sample_size, preview_rows) data rows are read; the
    sink is never touched.

    Args:
        path: File on local storage
        format_hint: SourceFormat, "csv"/"spreadsheet", or the original file name
        sample_size: Rows used for type inference (default: settings.sample_size)
        cleanup: Delete the file afterwards, whether analysis succeeds or not
        preview_rows: Rows returned in the preview (default: settings.preview_rows)
        header_scan_rows: Spreadsheet rows scanned for the header

    Raises:
        EmptySource: No header or no data rows
        MalformedFile: The file cannot be decoded
    """
    settings = get_settings()
    path = Path(path)
    sample_size = sample_size or settings.sample_size
    preview_rows = settings.preview_rows if preview_rows is None else preview_rows

    try:
        with open_source(
            path,
            format_hint,
            header_scan_rows=header_scan_rows or settings.header_scan_rows,
        ) as stream:
            headers = list(stream.headers)
            sample = list(islice(stream, max(sample_size, preview_rows)))
    finally:
        if cleanup:
            _remove(path)

    columns = infer_columns(headers, sample, sample_size=sample_size)
    preview = [dict(row) for row in sample[:preview_rows]]

    logger.info("file_analyzed", file=path.name, columns=len(columns), sample_rows=len(sample))
    return AnalysisResult(headers=headers, columns=columns, preview_rows=preview)


def create_table(
    manager: ConnectionManager | None,
    table_name: str,
    columns: Sequence[ColumnDefinition],
) -> None:
    """Create the destination table from (possibly edited) column definitions.

    Raises:
        InvalidTableName: Bad table name
        InvalidColumnType: A type outside INTEGER, DECIMAL(p,s), VARCHAR(n), DATETIME
        SinkRejected: The database refused the statement
    """
    _create_table(manager or get_connection_manager(), table_name, columns)


def upload(
    path: Path | str,
    table_name: str,
    target: SinkBase | ConnectionManager | None = None,
    columns: Sequence[str] | None = None,
    *,
    format_hint: SourceFormat | str | None = None,
    batch_size: int | None = None,
    policy: DuplicatePolicy | str | None = None,
    write_timeout: float | None = None,
    cancel_token: CancelToken | None = None,
    progress: UploadProgress | None = None,
    cleanup: bool = True,
) -> IngestResult:
    """Stream a file into an existing table.

    Args:
        path: File on local storage
        table_name: Destination table, [schema.]name
        target: A sink, or a ConnectionManager to build an SQLAlchemySink
            on (default: the process-wide manager). A sink passed in is
            left open; one built here is closed
        columns: Sink column names to load (default: normalized headers)
        format_hint: SourceFormat, "csv"/"spreadsheet", or the original file name
        batch_size: Rows per write (default: settings.batch_size)
        policy: Duplicate-key policy (default: settings.duplicate_policy)
        write_timeout: Seconds per write (default: settings.write_timeout_seconds)
        cancel_token: Stops dispatching new batches once cancelled
        progress: Reporter driven through the upload's states
        cleanup: Delete the file afterwards, whether the upload succeeds or not

    Returns:
        IngestResult with rows processed and rows written

    Raises:
        EmptySource, MalformedFile: Before anything is written
        SinkRejected, SinkTimeout, TableNotFound: Carrying the partial result
        Cancelled: Carrying the partial result
    """
    settings = get_settings()
    path = Path(path)

    upload_id = progress.upload_id if progress is not None else None
    sink: SinkBase | None = target if isinstance(target, SinkBase) else None
    owns_sink = sink is None

    with log_context(upload_id=upload_id, table=table_name):
        metrics = start_ingest_metrics(path.name)
        start = time.perf_counter()
        logger.info("upload_started", file=path.name)
        try:
            if progress is not None:
                progress.start()
            if sink is None:
                sink = SQLAlchemySink(
                    target or get_connection_manager(),
                    table_name,
                    DuplicatePolicy(policy or settings.duplicate_policy),
                )
            loader = BatchLoader(
                sink,
                batch_size=batch_size or settings.batch_size,
                write_timeout=(
                    settings.write_timeout_seconds if write_timeout is None else write_timeout
                ),
            )
            stream = open_source(path, format_hint, header_scan_rows=settings.header_scan_rows)
            metrics.record_timing("open", time.perf_counter() - start)
            result = loader.load(
                stream,
                columns=columns,
                cancel_token=cancel_token,
                listener=progress,
            )
        except Cancelled as e:
            logger.info("upload_cancelled", rows_processed=e.rows_processed)
            if progress is not None:
                progress.cancel(e.rows_processed)
            raise
        except IngestError as e:
            logger.error(
                "upload_failed",
                error_type=type(e).__name__,
                error=e.message,
                rows_processed=e.rows_processed,
            )
            if progress is not None:
                progress.fail(e)
            raise
        except SheetsinkError as e:
            logger.error("upload_failed", error_type=type(e).__name__, error=str(e))
            if progress is not None:
                progress.fail(str(e), rows_processed=0)
            raise
        except Exception as e:
            logger.error("upload_failed", error_type=type(e).__name__, error=str(e))
            if progress is not None and not progress.state.is_terminal:
                progress.fail("Upload failed", rows_processed=0)
            raise
        finally:
            # A caller-provided sink stays open for its next upload
            if owns_sink and sink is not None:
                sink.close()
            if cleanup:
                _remove(path)
            ended = end_ingest_metrics()
            if ended is not None:
                logger.debug("upload_metrics", **ended.to_dict())

        if progress is not None:
            progress.succeed(result)
        logger.info(
            "upload_completed",
            rows_processed=result.rows_processed,
            rows_written=result.rows_written,
            seconds=round(time.perf_counter() - start, 3),
        )
        return result
