"""Tests for centralized logging."""

import json
import logging
import sys

from redeploy.infrastructure.logging import configure_logging, level_from_name, JSONFormatter


class TestConfigureLogging:
    def test_default_level(self):
        configure_logging(level=logging.INFO)
        logger = logging.getLogger("redeploy")
        assert logger.level == logging.INFO

    def test_debug_level(self):
        configure_logging(level=logging.DEBUG)
        logger = logging.getLogger("redeploy")
        assert logger.level == logging.DEBUG

    def test_json_format(self):
        configure_logging(level=logging.INFO, json_format=True)
        logger = logging.getLogger("redeploy")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_human_format(self):
        configure_logging(level=logging.INFO, json_format=False)
        logger = logging.getLogger("redeploy")
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_replaces_handlers(self):
        configure_logging(level=logging.INFO)
        configure_logging(level=logging.DEBUG)
        logger = logging.getLogger("redeploy")
        assert len(logger.handlers) == 1


class TestLevelFromName:
    def test_known_names(self):
        assert level_from_name("info") == logging.INFO
        assert level_from_name("DEBUG") == logging.DEBUG

    def test_unknown_falls_back(self):
        assert level_from_name("chatty") == logging.WARNING
        assert level_from_name("", default=logging.ERROR) == logging.ERROR


class TestJSONFormatter:
    def test_format_basic(self):
        record = logging.LogRecord(
            name="redeploy.test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="copied %d files",
            args=(3,),
            exc_info=None,
        )
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "copied 3 files"
        assert data["level"] == "INFO"
        assert data["logger"] == "redeploy.test"
        assert "timestamp" in data

    def test_format_with_exception(self):
        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="error occurred",
            args=(),
            exc_info=exc_info,
        )
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError" in data["exception"]
