"""Tests for CREATE TABLE from column definitions."""

import pytest
from sqlalchemy import inspect

from sheetsink.core.exceptions import InvalidColumnType, InvalidTableName, SinkRejected
from sheetsink.core.models import ColumnDefinition
from sheetsink.loading import build_table, create_table


class TestCreateTable:
    """Tests for create_table()."""

    def test_columns_and_types(self, manager):
        create_table(
            manager,
            "orders",
            [
                ColumnDefinition(name="order_id", sql_type="INTEGER", is_primary_key=True),
                ColumnDefinition(name="amount", sql_type="DECIMAL(10,2)"),
                ColumnDefinition(name="phone", sql_type="VARCHAR(50)"),
                ColumnDefinition(name="ordered_at", sql_type="DATETIME"),
            ],
        )

        inspector = inspect(manager.engine)
        columns = {c["name"]: c for c in inspector.get_columns("orders")}
        assert list(columns) == ["order_id", "amount", "phone", "ordered_at"]
        assert str(columns["amount"]["type"]) == "NUMERIC(10, 2)"
        assert str(columns["phone"]["type"]) == "VARCHAR(50)"
        assert inspector.get_pk_constraint("orders")["constrained_columns"] == ["order_id"]

    def test_composite_primary_key(self, manager):
        create_table(
            manager,
            "order_lines",
            [
                ColumnDefinition(name="order_no", sql_type="INTEGER", is_primary_key=True),
                ColumnDefinition(name="line_no", sql_type="INTEGER", is_primary_key=True),
                ColumnDefinition(name="sku", sql_type="VARCHAR(20)"),
            ],
        )

        pk = inspect(manager.engine).get_pk_constraint("order_lines")["constrained_columns"]
        assert pk == ["order_no", "line_no"]

    def test_without_primary_key(self, manager):
        create_table(manager, "notes", [ColumnDefinition(name="body", sql_type="VARCHAR(255)")])

        assert manager.table_exists("notes")

    def test_existing_table_rejected(self, manager, products_table):
        with pytest.raises(SinkRejected):
            create_table(manager, "products", [ColumnDefinition(name="a", sql_type="INTEGER")])


class TestBuildTable:
    """Validation happens before anything reaches the database."""

    def test_invalid_type(self):
        with pytest.raises(InvalidColumnType):
            build_table("t", [ColumnDefinition(name="a", sql_type="TEXT")])

    def test_invalid_table_name(self):
        with pytest.raises(InvalidTableName):
            build_table("drop table", [ColumnDefinition(name="a", sql_type="INTEGER")])

    def test_no_columns(self):
        with pytest.raises(ValueError):
            build_table("t", [])

    def test_schema_prefix(self):
        table = build_table("sales.orders", [ColumnDefinition(name="a", sql_type="INTEGER")])
        assert table.schema == "sales"
        assert table.name == "orders"
