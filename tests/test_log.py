"""
Tests for logging setup and trace ids.
"""

import logging
import os
import tempfile

from ai_writing_assistant.core.log import (
    get_logger,
    get_trace_id,
    set_trace_id,
    setup_logging,
    trace_ctx,
)


def _assistant_handlers():
    return [h for h in logging.getLogger().handlers if getattr(h, "_is_assistant_handler", False)]


class TestTraceId:

    def test_trace_ctx_restores_previous(self):
        set_trace_id("outer")
        with trace_ctx("inner") as tid:
            assert tid == "inner"
            assert get_trace_id() == "inner"
        assert get_trace_id() == "outer"

    def test_generated_when_missing(self):
        tid = set_trace_id(None)
        assert len(tid) == 8
        assert get_trace_id() == tid

    def test_truncated(self):
        assert set_trace_id("x" * 40) == "x" * 16


class TestSetupLogging:

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        import shutil
        root = logging.getLogger()
        for handler in _assistant_handlers():
            root.removeHandler(handler)
            handler.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_file_handler_and_idempotence(self):
        log_file = os.path.join(self.temp_dir, "logs", "app.log")

        setup_logging("INFO", log_file)
        setup_logging("DEBUG", log_file)

        handlers = _assistant_handlers()
        assert len(handlers) == 2
        assert all(h.level == logging.DEBUG for h in handlers)

        with trace_ctx("req-42"):
            get_logger("tests.log").info("event=test.logged | value=%s", 1)
        for handler in handlers:
            handler.flush()

        with open(log_file, encoding="utf-8") as f:
            content = f.read()
        assert "[req-42]" in content
        assert "event=test.logged | value=1" in content
