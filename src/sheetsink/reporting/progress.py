"""Upload progress reporting.

UploadProgress is the state machine a caller polls while an upload runs:

    idle -> reading -> writing -> success
                  \\          \\-> error | cancelled
                   \\-> error | cancelled

It implements the loader's listener interface, so passing it as
``listener`` to BatchLoader.load() is enough to drive it. Percent follows
the fraction of the source consumed but never passes 90 until the upload
has succeeded.
"""

from __future__ import annotations

import threading
import time
import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict

from sheetsink.core.exceptions import IngestError, InvalidTransition
from sheetsink.core.logging import get_logger
from sheetsink.core.models import IngestResult

logger = get_logger(__name__)

MAX_PERCENT_BEFORE_SUCCESS = 90


class UploadState(str, Enum):
    IDLE = "idle"
    READING = "reading"
    WRITING = "writing"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.SUCCESS, UploadState.ERROR, UploadState.CANCELLED)


_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.IDLE: frozenset(
        {UploadState.READING, UploadState.ERROR, UploadState.CANCELLED}
    ),
    UploadState.READING: frozenset(
        {UploadState.READING, UploadState.WRITING, UploadState.ERROR, UploadState.CANCELLED}
    ),
    UploadState.WRITING: frozenset(
        {UploadState.WRITING, UploadState.SUCCESS, UploadState.ERROR, UploadState.CANCELLED}
    ),
    UploadState.SUCCESS: frozenset(),
    UploadState.ERROR: frozenset(),
    UploadState.CANCELLED: frozenset(),
}


class ProgressSnapshot(BaseModel):
    """Point-in-time view of an upload, safe to serialize."""

    model_config = ConfigDict(frozen=True)

    upload_id: str
    state: UploadState
    percent: int
    rows_processed: int = 0
    rows_written: int = 0
    message: str | None = None
    result: IngestResult | None = None


class UploadProgress:
    """Thread-safe progress reporter for one upload."""

    def __init__(self, upload_id: str | None = None):
        self.upload_id = upload_id or uuid.uuid4().hex
        self._lock = threading.Lock()
        self._state = UploadState.IDLE
        self._percent = 0
        self._rows_processed = 0
        self._rows_written = 0
        self._message: str | None = None
        self._result: IngestResult | None = None
        self._finished_at: float | None = None

    @property
    def state(self) -> UploadState:
        with self._lock:
            return self._state

    @property
    def finished_at(self) -> float | None:
        """time.monotonic() when the upload reached a terminal state."""
        with self._lock:
            return self._finished_at

    def _move(self, target: UploadState) -> None:
        # Caller holds the lock
        if target not in _TRANSITIONS[self._state]:
            raise InvalidTransition(
                f"Upload {self.upload_id}: cannot go from {self._state.value} to {target.value}"
            )
        if target is not self._state:
            logger.debug(
                "upload_state_changed",
                upload_id=self.upload_id,
                previous=self._state.value,
                state=target.value,
            )
        self._state = target
        if target.is_terminal:
            self._finished_at = time.monotonic()

    def _advance(self, fraction: float) -> None:
        percent = int(max(0.0, min(fraction, 1.0)) * 100)
        self._percent = max(self._percent, min(percent, MAX_PERCENT_BEFORE_SUCCESS))

    def start(self) -> None:
        with self._lock:
            self._move(UploadState.READING)

    def on_batch_written(self, result: IngestResult, fraction_read: float) -> None:
        with self._lock:
            if self._state is UploadState.IDLE:
                self._move(UploadState.READING)
            self._move(self._state)
            self._rows_processed = result.rows_processed
            self._rows_written = result.rows_written
            self._advance(fraction_read)

    def on_source_exhausted(self) -> None:
        with self._lock:
            if self._state is UploadState.IDLE:
                self._move(UploadState.READING)
            self._move(UploadState.WRITING)

    def succeed(self, result: IngestResult) -> None:
        with self._lock:
            self._move(UploadState.SUCCESS)
            self._result = result
            self._rows_processed = result.rows_processed
            self._rows_written = result.rows_written
            self._percent = 100
            self._message = (
                f"Uploaded {result.rows_written} of {result.rows_processed} rows."
            )

    def fail(self, error: IngestError | str, rows_processed: int | None = None) -> None:
        """Move to error with a short user-facing message."""
        if isinstance(error, IngestError):
            message = error.user_message()
            rows = error.rows_processed if rows_processed is None else rows_processed
        else:
            message = error
            rows = rows_processed
        with self._lock:
            self._move(UploadState.ERROR)
            self._message = message
            if rows is not None:
                self._rows_processed = rows

    def cancel(self, rows_processed: int | None = None) -> None:
        with self._lock:
            self._move(UploadState.CANCELLED)
            self._message = "Upload cancelled."
            if rows_processed is not None:
                self._rows_processed = rows_processed

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                upload_id=self.upload_id,
                state=self._state,
                percent=self._percent,
                rows_processed=self._rows_processed,
                rows_written=self._rows_written,
                message=self._message,
                result=self._result,
            )


class UploadRegistry:
    """Keeps progress reporters by upload id so clients can poll them.

    Finished uploads are evicted when a new one is created: first those that
    finished more than finished_ttl seconds ago, then the oldest ones beyond
    max_finished. Uploads still running are never evicted.
    """

    def __init__(self, max_finished: int = 1000, finished_ttl: float = 3600.0) -> None:
        self.max_finished = max_finished
        self.finished_ttl = finished_ttl
        self._lock = threading.Lock()
        self._uploads: dict[str, UploadProgress] = {}

    def create(self, upload_id: str | None = None) -> UploadProgress:
        progress = UploadProgress(upload_id)
        with self._lock:
            self._evict()
            self._uploads[progress.upload_id] = progress
        return progress

    def get(self, upload_id: str) -> UploadProgress | None:
        with self._lock:
            return self._uploads.get(upload_id)

    def discard(self, upload_id: str) -> None:
        with self._lock:
            self._uploads.pop(upload_id, None)

    def _evict(self) -> None:
        # Caller holds the lock
        now = time.monotonic()
        finished = sorted(
            (finished_at, upload_id)
            for upload_id, progress in self._uploads.items()
            if (finished_at := progress.finished_at) is not None
        )
        expired = [uid for finished_at, uid in finished if now - finished_at >= self.finished_ttl]
        kept = [uid for finished_at, uid in finished if now - finished_at < self.finished_ttl]
        # Leave room for the one being created
        overflow = max(0, len(kept) - self.max_finished + 1)
        for upload_id in expired + kept[:overflow]:
            del self._uploads[upload_id]
        if expired or overflow:
            logger.debug(
                "uploads_evicted",
                expired=len(expired),
                overflow=overflow,
                remaining=len(self._uploads),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._uploads)
