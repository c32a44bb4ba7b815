"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import csv
from collections.abc import Callable, Iterator, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
import structlog
from openpyxl import Workbook

from sheetsink.analysis.temporal import get_date_format_config
from sheetsink.core.config import get_settings
from sheetsink.core.connections import (
    ConnectionConfig,
    ConnectionManager,
    close_default_manager,
)
from sheetsink.core.logging import configure_logging
from sheetsink.core.models import ColumnDefinition
from sheetsink.loading import create_table


@pytest.fixture(autouse=True)
def default_logging() -> Iterator[None]:
    """Undo logging configured by a test (CLI runs, JSON capture tests)."""
    yield
    structlog.reset_defaults()
    configure_logging()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point every test at its own upload dir and an in-memory sink."""
    monkeypatch.setenv("SHEETSINK_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("SHEETSINK_DATABASE_URL", "sqlite:///:memory:")
    get_settings.cache_clear()
    get_date_format_config.cache_clear()
    yield
    close_default_manager()
    get_settings.cache_clear()


@pytest.fixture
def manager() -> Iterator[ConnectionManager]:
    """Create an in-memory SQLite sink for testing.

    Creates a fresh database for each test function.
    """
    connection_manager = ConnectionManager(ConnectionConfig.in_memory())
    connection_manager.initialize()
    yield connection_manager
    connection_manager.close()


PRODUCT_COLUMNS = [
    ColumnDefinition(name="sku", sql_type="VARCHAR(50)", is_primary_key=True),
    ColumnDefinition(name="name", sql_type="VARCHAR(255)"),
    ColumnDefinition(name="price", sql_type="DECIMAL(10,2)"),
    ColumnDefinition(name="stock", sql_type="INTEGER"),
]


@pytest.fixture
def products_table(manager: ConnectionManager) -> str:
    """A products(sku PK, name, price, stock) table in the sink."""
    create_table(manager, "products", PRODUCT_COLUMNS)
    return "products"


def _product_rows(count: int, start: int = 1) -> list[list[Any]]:
    return [
        [f"SKU-{i:05d}", f"Product {i}", f"{i * 1.5:.2f}", str(i * 10)]
        for i in range(start, start + count)
    ]


@pytest.fixture
def product_rows() -> Callable[..., list[list[Any]]]:
    """Factory for sku,name,price,stock data rows with unique SKUs."""
    return _product_rows


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a CSV file under tmp_path."""

    def _write(
        rows: Sequence[Sequence[Any]],
        name: str = "data.csv",
        header: Sequence[str] | None = ("sku", "name", "price", "stock"),
        encoding: str = "utf-8",
    ) -> Path:
        path = tmp_path / name
        with open(path, "w", encoding=encoding, newline="") as f:
            writer = csv.writer(f)
            if header is not None:
                writer.writerow(header)
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def write_xlsx(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a single-sheet workbook under tmp_path."""

    def _write(rows: Sequence[Sequence[Any]], name: str = "data.xlsx") -> Path:
        workbook = Workbook()
        sheet = workbook.active
        assert sheet is not None
        for row in rows:
            sheet.append(list(row))
        path = tmp_path / name
        workbook.save(path)
        return path

    return _write


@pytest.fixture
def write_xls(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a legacy single-sheet .xls workbook under tmp_path."""
    xlwt = pytest.importorskip("xlwt")

    def _write(rows: Sequence[Sequence[Any]], name: str = "data.xls") -> Path:
        workbook = xlwt.Workbook()
        sheet = workbook.add_sheet("Sheet1")
        date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD HH:MM:SS")
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is None:
                    continue
                if isinstance(value, datetime):
                    sheet.write(r, c, value, date_style)
                else:
                    sheet.write(r, c, value)
        path = tmp_path / name
        workbook.save(str(path))
        return path

    return _write
