"""
Unit tests for structured logging helpers.
"""

import io
import json
import logging

from hazardwatch.monitoring.logging import emit_event, setup_logging, with_context


def _configure(json_logs):
    stream = io.StringIO()
    setup_logging(level="DEBUG", json_logs=json_logs, stream=stream)
    return stream, logging.getLogger("hazardwatch.test")


class TestLogging:
    """Tests for setup_logging, context injection and emit_event."""

    def test_json_lines_carry_context(self):
        stream, logger = _configure(json_logs=True)
        log = with_context(logger, run_id="abc123", endpoint="floods")

        log.info("fetched 3 features")

        record = json.loads(stream.getvalue().strip())
        assert record["msg"] == "fetched 3 features"
        assert record["level"] == "INFO"
        assert record["logger"] == "hazardwatch.test"
        assert record["run_id"] == "abc123"
        assert record["endpoint"] == "floods"

    def test_text_format(self):
        stream, logger = _configure(json_logs=False)
        with_context(logger, run_id="r1", stage="fetch").warning("slow endpoint")
        assert stream.getvalue().strip() == "WARNING hazardwatch.test [run=r1 stage=fetch] slow endpoint"

    def test_nested_context_is_merged(self):
        stream, logger = _configure(json_logs=True)
        log = with_context(with_context(logger, run_id="r1"), category="floods")
        log.info("x")
        record = json.loads(stream.getvalue())
        assert record["run_id"] == "r1"
        assert record["category"] == "floods"

    def test_emit_event_payload(self):
        stream, logger = _configure(json_logs=True)
        emit_event(with_context(logger, run_id="r1"), "pipeline_run_completed", {"fetched": 7}, stage="publish")
        record = json.loads(stream.getvalue())
        assert record["event"] == "pipeline_run_completed"
        assert record["payload"] == {"fetched": 7}
        assert record["stage"] == "publish"
        assert record["run_id"] == "r1"

    def test_setup_is_idempotent(self):
        setup_logging()
        root = setup_logging(level="warning")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
