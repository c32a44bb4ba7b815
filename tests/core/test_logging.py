"""Tests for structured logging helpers."""

import io
import json
import sys

from sheetsink.core.logging import (
    configure_logging,
    end_ingest_metrics,
    get_logger,
    log_context,
    record_batch_written,
    start_ingest_metrics,
)


class TestLogContext:
    """Tests for log_context()."""

    def test_binds_and_restores(self):
        with log_context(upload_id="u1", table="products") as outer:
            assert outer == {"upload_id": "u1", "table": "products"}
            with log_context(table="orders", batch=None) as inner:
                assert inner == {"upload_id": "u1", "table": "orders"}
            with log_context() as restored:
                assert restored == outer
        with log_context() as empty:
            assert empty == {}

    def test_context_reaches_json_output(self, capsys):
        configure_logging(log_level="INFO", log_format="json")
        with log_context(upload_id="u42"):
            get_logger("test").info("batch_written", rows=10)
        line = capsys.readouterr().err.strip().splitlines()[-1]

        event = json.loads(line)
        assert event["event"] == "batch_written"
        assert event["upload_id"] == "u42"
        assert event["rows"] == 10


class TestIngestMetrics:
    """Tests for per-ingestion metrics."""

    def test_batches_are_folded(self):
        start_ingest_metrics("products.csv")
        record_batch_written(1000, 990, 0.5)
        record_batch_written(200, 200, 0.1)

        metrics = end_ingest_metrics()

        assert metrics is not None
        assert metrics.batches == 2
        assert (metrics.rows_processed, metrics.rows_written) == (1200, 1190)
        assert metrics.slowest_batch_seconds == 0.5
        assert round(metrics.timings["write"], 3) == 0.6
        assert metrics.to_dict()["source"] == "products.csv"

    def test_recording_outside_ingestion_is_noop(self):
        record_batch_written(10, 10, 0.1)
        assert end_ingest_metrics() is None


class TestOutputStream:
    """Loggers follow sys.stderr instead of the stream seen at configure time."""

    def test_stream_closed_after_configure(self, capsys):
        original, temporary = sys.stderr, io.StringIO()
        sys.stderr = temporary
        try:
            configure_logging(log_level="INFO", log_format="json")
        finally:
            sys.stderr = original
        temporary.close()

        get_logger("test").warning("upload_failed", rows_processed=3)

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["event"] == "upload_failed"

    def test_module_logger_survives_cli_run(self, write_csv, product_rows, capsys):
        from typer.testing import CliRunner

        from sheetsink.cli.main import app
        from sheetsink.ingest import analyze

        path = write_csv(product_rows(3))
        result = CliRunner().invoke(app, ["analyze", str(path), "-v"])
        assert result.exit_code == 0

        # -v left INFO enabled; the event must reach the current stderr
        analyze(path)
        assert "file_analyzed" in capsys.readouterr().err
