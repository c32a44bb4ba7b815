"""Tests for the typer CLI."""

import json

import pytest
from sqlalchemy import create_engine, text
from typer.testing import CliRunner

from sheetsink.cli.main import app

runner = CliRunner()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _count(database_url, table):
    engine = create_engine(database_url)
    try:
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()
    finally:
        engine.dispose()


class TestAnalyzeCommand:
    def test_json_output(self, write_csv, product_rows):
        path = write_csv(product_rows(3))

        result = runner.invoke(app, ["analyze", str(path), "--json"])

        assert result.exit_code == 0, result.output
        body = json.loads(result.stdout)
        assert [c["name"] for c in body["columns"]] == ["sku", "name", "price", "stock"]
        assert path.exists()

    def test_table_output(self, write_csv, product_rows):
        result = runner.invoke(app, ["analyze", str(write_csv(product_rows(3)))])

        assert result.exit_code == 0, result.output
        assert "DECIMAL(10,2)" in result.output

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        result = runner.invoke(app, ["analyze", str(path)])

        assert result.exit_code == 1
        assert "no data rows" in result.output


class TestCreateTableAndUpload:
    def test_round_trip(self, write_csv, product_rows, database_url):
        path = write_csv(product_rows(30))

        created = runner.invoke(
            app, ["create-table", str(path), "products", "--database-url", database_url]
        )
        assert created.exit_code == 0, created.output
        assert "primary key: sku" in created.output

        first = runner.invoke(
            app, ["upload", str(path), "products", "-d", database_url, "--batch-size", "7"]
        )
        assert first.exit_code == 0, first.output
        assert "Uploaded 30 rows" in first.output

        second = runner.invoke(app, ["upload", str(path), "products", "-d", database_url])
        assert second.exit_code == 0, second.output
        assert "Uploaded 0 rows" in second.output
        assert _count(database_url, "products") == 30
        assert path.exists()

    def test_primary_key_override(self, write_csv, product_rows, database_url):
        path = write_csv(product_rows(3))

        result = runner.invoke(
            app,
            ["create-table", str(path), "items", "-d", database_url, "-k", "sku", "-k", "name"],
        )

        assert result.exit_code == 0, result.output
        assert "primary key: sku, name" in result.output

    def test_unknown_primary_key(self, write_csv, product_rows, database_url):
        result = runner.invoke(
            app,
            ["create-table", str(write_csv(product_rows(3))), "items", "-d", database_url,
             "-k", "nope"],
        )

        assert result.exit_code == 1

    def test_upload_missing_table(self, write_csv, product_rows, database_url):
        result = runner.invoke(
            app, ["upload", str(write_csv(product_rows(3))), "missing", "-d", database_url]
        )

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_upload_delete(self, write_csv, product_rows, database_url):
        path = write_csv(product_rows(3))
        runner.invoke(app, ["create-table", str(path), "products", "-d", database_url])

        result = runner.invoke(
            app, ["upload", str(path), "products", "-d", database_url, "--delete"]
        )

        assert result.exit_code == 0, result.output
        assert not path.exists()


class TestGenerateCommand:
    def test_writes_products_csv(self, tmp_path):
        output = tmp_path / "dummy" / "products_large.csv"

        result = runner.invoke(app, ["generate", str(output), "--rows", "50", "--seed", "7"])

        assert result.exit_code == 0, result.output
        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "sku,name,category,price,stock,warehouse_location"
        assert len(lines) == 51
        assert lines[1].startswith("SKU-1000001,")
