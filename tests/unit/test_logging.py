"""
Unit tests for logging setup.
"""

import json
import logging

import pytest
import structlog

from scrollshot.logging import capture_context, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_sets_level(self):
        setup_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING

    def test_json_file(self, tmp_path):
        log_file = tmp_path / "logs" / "scrollshot.jsonl"
        setup_logging(level="INFO", log_file=log_file)

        logging.getLogger("scrollshot.test").info("Frame captured")
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "Frame captured"
        assert entry["level"] == "info"


class TestCaptureContext:
    """Tests for capture_context()."""

    def test_binds_run_id(self):
        with capture_context(display=2) as run_id:
            bound = structlog.contextvars.get_contextvars()
            assert bound["run_id"] == run_id
            assert bound["display"] == 2
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_unique_ids(self):
        with capture_context() as first:
            pass
        with capture_context() as second:
            pass
        assert first != second
        assert len(first) == 8

    def test_get_logger(self):
        assert get_logger(__name__) is not None
