"""Upload progress and result reporting."""

from sheetsink.reporting.progress import (
    ProgressSnapshot,
    UploadProgress,
    UploadRegistry,
    UploadState,
)

__all__ = ["ProgressSnapshot", "UploadProgress", "UploadRegistry", "UploadState"]
