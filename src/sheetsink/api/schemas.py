"""Request and response models for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from sheetsink.core.models import ColumnDefinition


class AnalyzeResponse(BaseModel):
    headers: list[str]
    columns: list[ColumnDefinition]
    preview_rows: list[dict[str, Any]]


class CreateTableRequest(BaseModel):
    table_name: str
    columns: list[ColumnDefinition] = Field(min_length=1)


class CreateTableResponse(BaseModel):
    table_name: str
    columns: int
    primary_key: list[str]


class UploadResponse(BaseModel):
    upload_id: str
    message: str
    rows_processed: int
    rows_written: int
    batches: int


class ErrorResponse(BaseModel):
    error: str
    rows_processed: int = 0
