"""Batch loader: pull rows, normalize, write, repeat.

The loader is pull-based. It takes at most batch_size rows from the
stream, normalizes them and hands them to the sink in a single call. The
next batch is only pulled after the sink acknowledged the previous one,
so at most one batch is held in memory and batches reach the sink in
source order.

The first failing write ends the upload. Batches committed before it stay
committed and the raised error carries the partial IngestResult.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from itertools import islice
from typing import Protocol

from sheetsink.analysis.temporal import normalize_row
from sheetsink.analysis.typing import normalize_column_names
from sheetsink.core.exceptions import Cancelled, IngestError, SinkRejected, SinkTimeout
from sheetsink.core.logging import get_logger, record_batch_written
from sheetsink.core.models import BatchOutcome, CellValue, IngestResult, NormalizedRow
from sheetsink.loading.sink import SinkBase
from sheetsink.sources.base import RowStream

logger = get_logger(__name__)


class CancelToken:
    """Cooperative cancellation flag shared between a caller and the loader."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class LoadListener(Protocol):
    """Receives loader progress. Implemented by UploadProgress."""

    def on_batch_written(self, result: IngestResult, fraction_read: float) -> None: ...

    def on_source_exhausted(self) -> None: ...


def column_mapping(
    headers: Sequence[str], columns: Sequence[str] | None = None
) -> dict[str, str | None]:
    """Map sink column names to the original headers they are read from.

    Without an explicit column set every header is loaded under its
    normalized name. With one, each requested column is taken from the
    header that normalizes to it, or left NULL when no header does.
    """
    by_name = dict(zip(normalize_column_names(headers), headers, strict=True))
    if columns is None:
        return dict(by_name)
    return {name: by_name.get(name) for name in columns}


class BatchLoader:
    """Writes a row stream into a sink in fixed-size batches.

    Args:
        sink: Destination; receives one write_batch() call per batch
        batch_size: Maximum rows per write (default 1000)
        write_timeout: Seconds to wait for one write to be acknowledged;
            0 or None waits forever
    """

    def __init__(
        self,
        sink: SinkBase,
        batch_size: int = 1000,
        write_timeout: float | None = 600,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.sink = sink
        self.batch_size = batch_size
        self.write_timeout = write_timeout or None

    def _batches(
        self, stream: Iterator[Mapping[str, CellValue]]
    ) -> Iterator[tuple[list[Mapping[str, CellValue]], bool]]:
        """Yield (rows, is_last) pairs, pulling lazily from the stream."""
        while True:
            rows = list(islice(stream, self.batch_size))
            if not rows:
                return
            yield rows, len(rows) < self.batch_size

    def _write(self, executor: ThreadPoolExecutor | None, rows: list[NormalizedRow]) -> int:
        if executor is None:
            return self.sink.write_batch(rows)
        future = executor.submit(self.sink.write_batch, rows)
        try:
            return future.result(timeout=self.write_timeout)
        except FutureTimeout:
            raise SinkTimeout(
                f"Batch write not acknowledged within {self.write_timeout}s"
            ) from None

    def load(
        self,
        stream: RowStream,
        columns: Sequence[str] | None = None,
        cancel_token: CancelToken | None = None,
        listener: LoadListener | None = None,
    ) -> IngestResult:
        """Load every row of the stream into the sink.

        Args:
            stream: Open source stream; closed when this returns or raises
            columns: Sink column names to load (default: normalized headers)
            cancel_token: Checked before each batch is dispatched
            listener: Notified after each write and when the source runs dry

        Returns:
            IngestResult folded from every batch outcome

        Raises:
            SinkRejected: The sink rejected a batch (carries the partial result)
            SinkTimeout: A write was not acknowledged in time
            Cancelled: The token was set before a batch was dispatched
        """
        mapping = column_mapping(stream.headers, columns)
        executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="sheetsink-write")
            if self.write_timeout
            else None
        )
        result = IngestResult()
        exhausted = False

        try:
            self.sink.prepare(list(mapping))

            for index, (raw_rows, is_last) in enumerate(self._batches(stream)):
                if cancel_token is not None and cancel_token.cancelled:
                    result = result.with_unwritten(len(raw_rows))
                    raise Cancelled("Upload cancelled by caller", result)

                if is_last:
                    exhausted = True
                    if listener is not None:
                        listener.on_source_exhausted()

                rows = [normalize_row(row, mapping) for row in raw_rows]
                start = time.perf_counter()
                try:
                    written = self._write(executor, rows)
                except SinkRejected as e:
                    e.result = result.with_unwritten(len(rows))
                    logger.warning(
                        "batch_rejected",
                        batch=index,
                        rows=len(rows),
                        hint=e.hint.value,
                        error=e.message,
                    )
                    raise
                elapsed = time.perf_counter() - start

                result = result.add(
                    BatchOutcome(
                        index=index,
                        rows_processed=len(rows),
                        rows_written=written,
                        seconds=elapsed,
                    )
                )
                record_batch_written(len(rows), written, elapsed)
                logger.debug(
                    "batch_written",
                    batch=index,
                    rows=len(rows),
                    written=written,
                    seconds=round(elapsed, 3),
                )
                if listener is not None:
                    listener.on_batch_written(result, stream.fraction_read)

            if not exhausted and listener is not None:
                listener.on_source_exhausted()

        except IngestError as e:
            if e.result is None:
                e.result = result
            raise
        finally:
            stream.close()
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "load_completed",
            batches=result.batches,
            rows_processed=result.rows_processed,
            rows_written=result.rows_written,
        )
        return result
