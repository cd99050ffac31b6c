"""
Tests for logging setup.
"""

import logging

from ops.logging import setup_logging


class TestSetupLogging:
    def teardown_method(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)

    def test_writes_log_file(self, tmp_path):
        log_path = tmp_path / "logs" / "face_detect.log"
        
        setup_logging(str(log_path), "DEBUG")
        logging.debug("scan finished")
        for handler in logging.getLogger().handlers:
            handler.flush()
        
        assert logging.getLogger().level == logging.DEBUG
        assert "scan finished" in log_path.read_text()

    def test_stream_only(self):
        setup_logging(None, "WARNING")
        
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logging.getLogger().level == logging.WARNING
