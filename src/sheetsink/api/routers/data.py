"""Analyze, create-table and upload endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from sheetsink.api.deps import ManagerDep, RegistryDep, save_upload
from sheetsink.api.schemas import (
    AnalyzeResponse,
    CreateTableRequest,
    CreateTableResponse,
    ErrorResponse,
    UploadResponse,
)
from sheetsink.core.logging import get_logger
from sheetsink.ingest import analyze, create_table, upload
from sheetsink.loading import split_table_name
from sheetsink.reporting import ProgressSnapshot

logger = get_logger(__name__)

router = APIRouter()

_ERRORS: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post("/data/analyze", response_model=AnalyzeResponse, responses=_ERRORS)
def analyze_file(file: Annotated[UploadFile, File()]) -> AnalyzeResponse:
    """Infer the schema of an uploaded file and return a preview.

    The uploaded file is deleted afterwards.
    """
    path = save_upload(file)
    result = analyze(path, format_hint=file.filename, cleanup=True)
    return AnalyzeResponse(**result.model_dump())


@router.post("/data/create-table", response_model=CreateTableResponse, responses=_ERRORS)
def create_destination_table(
    body: CreateTableRequest, manager: ManagerDep
) -> CreateTableResponse:
    """Create the destination table from (possibly edited) column definitions."""
    create_table(manager, body.table_name, body.columns)
    return CreateTableResponse(
        table_name=body.table_name,
        columns=len(body.columns),
        primary_key=[c.name for c in body.columns if c.is_primary_key],
    )


@router.post("/data/upload", response_model=UploadResponse, responses=_ERRORS)
def upload_file(
    file: Annotated[UploadFile, File()],
    table_name: Annotated[str, Form()],
    manager: ManagerDep,
    registry: RegistryDep,
    upload_id: Annotated[str | None, Form()] = None,
) -> UploadResponse:
    """Stream an uploaded file into an existing table.

    Progress can be polled at /data/uploads/{upload_id} while this runs.
    """
    split_table_name(table_name)
    progress = registry.create(upload_id)
    path = save_upload(file)
    result = upload(
        path,
        table_name,
        manager,
        format_hint=file.filename,
        progress=progress,
        cleanup=True,
    )
    return UploadResponse(
        upload_id=progress.upload_id,
        message=f"Successfully processed {result.rows_processed} rows.",
        rows_processed=result.rows_processed,
        rows_written=result.rows_written,
        batches=result.batches,
    )


@router.get("/data/uploads/{upload_id}", response_model=ProgressSnapshot)
def get_upload(upload_id: str, registry: RegistryDep) -> ProgressSnapshot:
    """Current state of an upload."""
    progress = registry.get(upload_id)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"Upload {upload_id} not found")
    return progress.snapshot()
