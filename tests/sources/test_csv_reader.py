"""Tests for the CSV row stream."""

import pytest

from sheetsink.core.exceptions import EmptySource, MalformedFile
from sheetsink.sources import CSVRowStream, open_source


class TestCSVRowStream:
    """Tests for CSVRowStream."""

    def test_headers_and_rows(self, write_csv):
        path = write_csv([["A1", "Lamp", "12.50", "3"], ["A2", "Desk", "99", "1"]])

        with open_source(path) as stream:
            assert isinstance(stream, CSVRowStream)
            assert stream.headers == ["sku", "name", "price", "stock"]
            rows = list(stream)

        assert rows == [
            {"sku": "A1", "name": "Lamp", "price": "12.50", "stock": "3"},
            {"sku": "A2", "name": "Desk", "price": "99", "stock": "1"},
        ]

    def test_short_rows_padded_and_long_rows_truncated(self, write_csv):
        path = write_csv([["A1", "Lamp"], ["A2", "Desk", "1", "2", "extra"]])

        with open_source(path) as stream:
            rows = list(stream)

        assert rows[0] == {"sku": "A1", "name": "Lamp", "price": "", "stock": ""}
        assert rows[1] == {"sku": "A2", "name": "Desk", "price": "1", "stock": "2"}

    def test_blank_lines_skipped(self, write_csv):
        path = write_csv([["A1", "x", "1", "1"], [], ["", "", "", ""], ["A2", "y", "2", "2"]])

        with open_source(path) as stream:
            assert [row["sku"] for row in stream] == ["A1", "A2"]

    def test_quoted_fields(self, tmp_path):
        path = tmp_path / "quoted.csv"
        path.write_text('id,note\n1,"hello, world"\n2,"multi\nline"\n', encoding="utf-8")

        with open_source(path) as stream:
            rows = list(stream)

        assert rows[0]["note"] == "hello, world"
        assert rows[1]["note"] == "multi\nline"

    def test_byte_order_mark_stripped(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffid,name\n1,a\n".encode())

        with open_source(path) as stream:
            assert stream.headers == ["id", "name"]

    def test_tsv_uses_tab_delimiter(self, tmp_path):
        path = tmp_path / "data.tsv"
        path.write_text("id\tname\n1\ta b\n", encoding="utf-8")

        with open_source(path) as stream:
            assert list(stream) == [{"id": "1", "name": "a b"}]

    def test_duplicate_and_blank_headers(self, tmp_path):
        path = tmp_path / "headers.csv"
        path.write_text("name,,name\n1,2,3\n", encoding="utf-8")

        with open_source(path) as stream:
            assert stream.headers == ["name", "column_2", "name_2"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        with pytest.raises(EmptySource):
            open_source(path)

    def test_header_only(self, write_csv):
        path = write_csv([])

        with pytest.raises(EmptySource):
            open_source(path)

    def test_invalid_encoding(self, tmp_path):
        path = tmp_path / "latin.csv"
        path.write_bytes(b"id,name\n1,\xff\xfe\xfa\n")

        with pytest.raises(MalformedFile):
            with open_source(path) as stream:
                list(stream)

    def test_stream_closes_when_exhausted(self, write_csv):
        path = write_csv([["A1", "x", "1", "1"]])
        stream = open_source(path)

        list(stream)

        assert stream.closed
        assert stream.rows_read == 1
        assert stream.fraction_read == 1.0

    def test_stream_is_lazy(self, write_csv, product_rows):
        path = write_csv(product_rows(500))

        with open_source(path) as stream:
            first = next(stream)
            assert first["sku"] == "SKU-00001"
            assert stream.rows_read == 1
            assert not stream.closed


class TestResolveFormat:
    """Tests for extension and hint based reader selection."""

    def test_hint_overrides_extension(self, tmp_path):
        from sheetsink.core.models import SourceFormat
        from sheetsink.sources import resolve_format

        assert resolve_format(tmp_path / "upload.bin", "report.xlsx") is SourceFormat.SPREADSHEET
        assert resolve_format(tmp_path / "upload.bin", "csv") is SourceFormat.CSV
        assert resolve_format(tmp_path / "data.TXT") is SourceFormat.CSV

    def test_legacy_xls_is_spreadsheet(self, tmp_path):
        from sheetsink.core.models import SourceFormat
        from sheetsink.sources import resolve_format

        assert resolve_format(tmp_path / "old.xls") is SourceFormat.SPREADSHEET
        assert resolve_format(tmp_path / "upload.bin", "old.XLS") is SourceFormat.SPREADSHEET

    def test_unknown_extension(self, tmp_path):
        from sheetsink.sources import resolve_format

        with pytest.raises(MalformedFile):
            resolve_format(tmp_path / "image.png")
