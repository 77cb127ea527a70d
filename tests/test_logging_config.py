"""
Tests for structured logging configuration.
"""

import json
import sys
import logging

import pytest

from paramcast.config_manager import ConfigManager
from paramcast.logging_config import (
    StructuredFormatter,
    build_logging_config,
    configure_from_settings,
    get_logger,
    log_with_context,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    """Undo setup_logging so other tests keep propagating to the root logger."""
    logger = logging.getLogger("paramcast")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers, logger.level, logger.propagate = saved


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestStructuredFormatter:
    """Test JSON log formatting."""

    def test_format(self):
        """Test core fields."""
        formatter = StructuredFormatter(service_name="svc", version="9.9")
        record = logging.makeLogRecord({
            "name": "paramcast.validator",
            "levelname": "INFO",
            "levelno": logging.INFO,
            "msg": "hello %s",
            "args": ("world",),
        })
        entry = json.loads(formatter.format(record))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "paramcast.validator"
        assert entry["service"] == "svc"
        assert entry["version"] == "9.9"
        assert "timestamp" in entry

    def test_extra_fields(self):
        """Test fields passed through ``extra``."""
        formatter = StructuredFormatter()
        logger = logging.getLogger("paramcast.test_extra")
        record = logger.makeRecord(logger.name, logging.INFO, "", 0, "msg", (), None, extra={"route": "GET /"})
        entry = json.loads(formatter.format(record))

        assert entry["route"] == "GET /"
        assert "args" not in entry

    def test_exception(self):
        """Test exception info is rendered."""
        formatter = StructuredFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.makeLogRecord({"msg": "failed", "exc_info": sys.exc_info()})
        entry = json.loads(formatter.format(record))
        assert "ValueError: boom" in entry["exception"]


class TestLoggingSetup:
    """Test logging setup."""

    def test_logger_creation(self):
        """Test that loggers are created correctly."""
        logger = get_logger("paramcast.test_logger")
        assert logger.name == "paramcast.test_logger"

    def test_setup_logging_without_file(self, restore_logging):
        """Test logging setup without file logging."""
        setup_logging(log_level="debug", enable_file_logging=False)
        logger = logging.getLogger("paramcast")

        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_setup_logging_with_file(self, restore_logging, tmp_path):
        """Test file logging writes JSON lines."""
        log_file = tmp_path / "logs" / "paramcast.log"
        setup_logging(enable_file_logging=True, log_file_path=str(log_file))
        get_logger("paramcast.test_file").info("written to file")
        for handler in logging.getLogger("paramcast").handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written to file"


    def test_build_logging_config(self):
        """Test the generated dictConfig mapping."""
        config = build_logging_config("warning", "svc", "2.0", enable_file_logging=True, log_file_path="x/y.log")

        assert config["loggers"]["paramcast"]["level"] == "WARNING"
        assert config["loggers"]["paramcast"]["handlers"] == ["console", "file"]
        assert config["handlers"]["file"]["filename"] == "x/y.log"
        assert config["formatters"]["structured"]["service_name"] == "svc"

    def test_build_logging_config_default_file(self):
        """Test the default log file location."""
        config = build_logging_config(enable_file_logging=True)
        assert config["handlers"]["file"]["filename"].endswith("paramcast.log")

    def test_configure_from_settings(self, restore_logging, monkeypatch):
        """Test logging set up from configuration."""
        monkeypatch.setenv("PARAMCAST_LOG_LEVEL", "error")
        configure_from_settings(ConfigManager(enable_hot_reload=False))

        logger = logging.getLogger("paramcast")
        assert logger.level == logging.ERROR
        assert logger.handlers[0].formatter.service_name == "paramcast"


class TestLogWithContext:
    """Test context-aware logging."""

    def test_context_fields(self):
        """Test that context lands on the record."""
        logger = logging.getLogger("paramcast.test_context")
        handler = _ListHandler()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            log_with_context(logger, "info", "Rejected GET /", route="GET /", error_count=2)
        finally:
            logger.removeHandler(handler)

        record = handler.records[0]
        assert record.getMessage() == "Rejected GET /"
        assert record.route == "GET /"
        assert record.error_count == 2

    def test_disabled_level(self):
        """Test nothing is emitted below the logger level."""
        logger = logging.getLogger("paramcast.test_disabled")
        handler = _ListHandler()
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)
        try:
            log_with_context(logger, "debug", "ignored", route="x")
        finally:
            logger.removeHandler(handler)

        assert handler.records == []
