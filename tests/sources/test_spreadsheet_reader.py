"""Tests for the spreadsheet row stream and header detection."""

from datetime import datetime, time
from types import SimpleNamespace

import pytest
import xlrd

from sheetsink.core.exceptions import EmptySource, MalformedFile
from sheetsink.sources import SpreadsheetRowStream, detect_header_row, open_source
from sheetsink.sources.spreadsheet.legacy import LegacySpreadsheetRowStream, convert_cell
from sheetsink.sources.spreadsheet.reader import OLE2_SIGNATURE


class TestDetectHeaderRow:
    """Tests for the density-based header heuristic."""

    def test_densest_row_wins(self):
        rows = [
            ("Quarterly Report", None, None, None),
            ("Generated", "2024-01-01", None, None),
            ("id", "name", "amount", "date"),
            (1, "a", 10, None),
        ]
        assert detect_header_row(rows) == 2

    def test_tie_goes_to_earliest_row(self):
        rows = [("a", "b"), ("c", "d"), ("e", "f")]
        assert detect_header_row(rows) == 0

    def test_scan_limit(self):
        rows = [("title",)] + [(None,)] * 20 + [("a", "b", "c")]
        assert detect_header_row(rows, scan_limit=15) == 0

    def test_whitespace_cells_are_empty(self):
        rows = [("  ", " ", "x"), ("a", "b", None)]
        assert detect_header_row(rows) == 1


class TestSpreadsheetRowStream:
    """Tests for SpreadsheetRowStream."""

    def test_title_rows_above_header(self, write_xlsx):
        path = write_xlsx(
            [
                ["Quarterly Sales Report"],
                ["Generated", "2024-01-01"],
                ["Order ID", "Customer", "Amount", "Order Date"],
                [1, "Alice", 10.5, datetime(2024, 1, 5)],
                [2, "Bob", 20, datetime(2024, 1, 6, 14, 30)],
            ]
        )

        with open_source(path) as stream:
            assert isinstance(stream, SpreadsheetRowStream)
            assert stream.headers == ["Order ID", "Customer", "Amount", "Order Date"]
            rows = list(stream)

        assert len(rows) == 2
        assert rows[0]["Customer"] == "Alice"
        assert rows[1]["Order Date"] == datetime(2024, 1, 6, 14, 30)

    def test_rows_beyond_scan_window_are_streamed(self, write_xlsx):
        data = [[i, f"item {i}"] for i in range(1, 101)]
        path = write_xlsx([["id", "name"], *data])

        with open_source(path, header_scan_rows=5) as stream:
            rows = list(stream)

        assert len(rows) == 100
        assert rows[-1] == {"id": 100, "name": "item 100"}

    def test_missing_cells_become_empty_strings(self, write_xlsx):
        path = write_xlsx([["id", "name", "note"], [1, None, "x"]])

        with open_source(path) as stream:
            assert list(stream) == [{"id": 1, "name": "", "note": "x"}]

    def test_empty_workbook(self, write_xlsx):
        path = write_xlsx([])

        with pytest.raises(EmptySource):
            open_source(path)

    def test_header_without_data(self, write_xlsx):
        path = write_xlsx([["id", "name"]])

        with pytest.raises(EmptySource):
            open_source(path)

    def test_not_a_workbook(self, tmp_path):
        path = tmp_path / "fake.xlsx"
        path.write_text("id,name\n1,a\n", encoding="utf-8")

        with pytest.raises(MalformedFile):
            open_source(path)

    def test_close_releases_workbook(self, write_xlsx):
        path = write_xlsx([["id"], [1], [2]])
        stream = open_source(path)
        next(stream)
        stream.close()

        assert stream.closed
        with pytest.raises(StopIteration):
            next(stream)


class TestHeaderRowFour:
    """Header on the fourth sheet row (index 3) beneath a title block."""

    def test_index_three_selected(self):
        rows = [
            ("ACME Corp", None, None, None, None),
            ("Inventory export", "v2", None, None, None),
            (None, None, None, None, None),
            ("sku", "name", "category", "price", "stock"),
            ("S1", "Lamp", "Home", 12.5, 3),
        ] + [("S", "x", None, None, None)] * 10
        assert detect_header_row(rows) == 3

    def test_stream_keys_rows_by_fourth_row(self, write_xlsx):
        path = write_xlsx(
            [
                ["ACME Corp"],
                ["Inventory export", "v2"],
                [None],
                ["sku", "name", "category", "price", "stock"],
                ["S1", "Lamp", "Home", 12.5, 3],
            ]
        )

        with open_source(path) as stream:
            assert stream.headers == ["sku", "name", "category", "price", "stock"]
            assert list(stream) == [
                {"sku": "S1", "name": "Lamp", "category": "Home", "price": 12.5, "stock": 3}
            ]


class TestLegacyWorkbook:
    """Tests for .xls workbooks read through xlrd."""

    def test_title_rows_above_header(self, write_xls):
        path = write_xls(
            [
                ["Laporan Stok"],
                [None],
                ["Kode", "Nama", "Harga", "Tanggal"],
                ["B-001", "Kopi", 25000.5, datetime(2024, 8, 17, 9, 30)],
                ["B-002", "Teh", 12000, datetime(2024, 8, 18)],
            ]
        )

        with open_source(path) as stream:
            assert isinstance(stream, LegacySpreadsheetRowStream)
            assert stream.headers == ["Kode", "Nama", "Harga", "Tanggal"]
            rows = list(stream)
            assert stream.fraction_read == 1.0

        assert rows == [
            {
                "Kode": "B-001",
                "Nama": "Kopi",
                "Harga": 25000.5,
                "Tanggal": datetime(2024, 8, 17, 9, 30),
            },
            {"Kode": "B-002", "Nama": "Teh", "Harga": 12000, "Tanggal": datetime(2024, 8, 18)},
        ]

    def test_chosen_by_signature_not_name(self, write_xls, tmp_path):
        stored = tmp_path / "upload-7.xlsx"
        write_xls([["id", "name"], [1, "a"]]).rename(stored)

        with open_source(stored) as stream:
            assert isinstance(stream, LegacySpreadsheetRowStream)
            assert list(stream) == [{"id": 1, "name": "a"}]

    def test_header_without_data(self, write_xls):
        with pytest.raises(EmptySource):
            open_source(write_xls([["id", "name"]]))

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.xls"
        path.write_bytes(OLE2_SIGNATURE + b"\x00" * 10)

        with pytest.raises(MalformedFile):
            open_source(path)


class TestConvertCell:
    """Tests for xlrd cell conversion."""

    @pytest.mark.parametrize(
        ("ctype", "value", "expected"),
        [
            (xlrd.XL_CELL_EMPTY, "", None),
            (xlrd.XL_CELL_BLANK, "", None),
            (xlrd.XL_CELL_ERROR, 42, None),
            (xlrd.XL_CELL_BOOLEAN, 1, True),
            (xlrd.XL_CELL_NUMBER, 3.0, 3),
            (xlrd.XL_CELL_NUMBER, 2.5, 2.5),
            (xlrd.XL_CELL_TEXT, "Kopi", "Kopi"),
            (xlrd.XL_CELL_DATE, 45521.0, datetime(2024, 8, 17)),
            (xlrd.XL_CELL_DATE, 0.5, time(12, 0)),
        ],
    )
    def test_values(self, ctype, value, expected):
        cell = SimpleNamespace(ctype=ctype, value=value)
        assert convert_cell(cell, datemode=0) == expected
