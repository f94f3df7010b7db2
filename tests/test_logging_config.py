"""
Tests for structured logging configuration and JSON formatter.
"""
import json
import logging
import sys
from unittest.mock import patch

from adaptive_testing.core.config import Settings
from adaptive_testing.core.logging_config import (
    JSONFormatter,
    get_logger,
    setup_logging,
)


def _record(level=logging.INFO, msg="Test message", **extra):
    record = logging.LogRecord(
        name="adaptive_testing.core.cat.engine",
        level=level,
        pathname="engine.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for the JSONFormatter class."""

    def test_basic_log_entry(self):
        log_entry = json.loads(JSONFormatter().format(_record()))

        assert "timestamp" in log_entry
        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "adaptive_testing.core.cat.engine"
        assert log_entry["message"] == "Test message"
        assert "source" not in log_entry

    def test_session_fields_included(self):
        record = _record(session_id="s-1", item_id=12, theta=0.5, standard_error=0.42)
        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["session_id"] == "s-1"
        assert log_entry["item_id"] == 12
        assert log_entry["theta"] == 0.5
        assert log_entry["standard_error"] == 0.42

    def test_unserializable_fields_stringified(self):
        record = _record(reason=object())
        log_entry = json.loads(JSONFormatter().format(record))
        assert log_entry["reason"].startswith("<object object")

    def test_error_includes_source(self):
        log_entry = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))
        assert log_entry["source"] == "engine.py:42"

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        log_entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in log_entry["exception"]


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_development_uses_plain_format(self):
        config = Settings(_env_file=None, ENV="development", LOG_LEVEL="DEBUG")
        with patch("logging.config.dictConfig") as mock_config:
            setup_logging(config)

        logging_config = mock_config.call_args[0][0]
        assert logging_config["handlers"]["console"]["formatter"] == "default"
        assert logging_config["root"]["level"] == logging.DEBUG

    def test_production_uses_json(self):
        config = Settings(_env_file=None, ENV="production", LOG_LEVEL="WARNING")
        with patch("logging.config.dictConfig") as mock_config:
            setup_logging(config)

        logging_config = mock_config.call_args[0][0]
        assert logging_config["handlers"]["console"]["formatter"] == "json"
        assert logging_config["loggers"]["adaptive_testing"]["level"] == logging.WARNING

    def test_estimator_follows_debug_level(self):
        config = Settings(_env_file=None, LOG_LEVEL="DEBUG")
        with patch("logging.config.dictConfig") as mock_config:
            setup_logging(config)

        loggers = mock_config.call_args[0][0]["loggers"]
        assert (
            loggers["adaptive_testing.core.cat.ability_estimation"]["level"]
            == logging.DEBUG
        )

    def test_unknown_level_falls_back_to_info(self):
        config = Settings(_env_file=None, LOG_LEVEL="chatty")
        with patch("logging.config.dictConfig") as mock_config:
            setup_logging(config)

        assert mock_config.call_args[0][0]["root"]["level"] == logging.INFO


def test_get_logger():
    logger = get_logger("adaptive_testing.test")
    assert logger.name == "adaptive_testing.test"
