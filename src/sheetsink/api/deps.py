"""FastAPI dependencies."""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request, UploadFile

from sheetsink.core.config import get_settings
from sheetsink.core.connections import ConnectionManager, get_connection_manager
from sheetsink.reporting import UploadRegistry


def get_manager() -> ConnectionManager:
    """Shared sink connection manager."""
    return get_connection_manager()


def get_registry(request: Request) -> UploadRegistry:
    """Progress reporters of the uploads this process has run."""
    registry: UploadRegistry = request.app.state.uploads
    return registry


ManagerDep = Annotated[ConnectionManager, Depends(get_manager)]
RegistryDep = Annotated[UploadRegistry, Depends(get_registry)]


def save_upload(file: UploadFile) -> Path:
    """Materialize an uploaded file under the upload directory.

    The stored name keeps the original extension so the reader can be
    chosen from it. The caller owns the file from here on.
    """
    upload_dir = get_settings().upload_dir
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(file.filename or "").suffix.lower()
    path = upload_dir / f"{uuid.uuid4().hex}{suffix}"
    with open(path, "wb") as out:
        shutil.copyfileobj(file.file, out)
    return path
