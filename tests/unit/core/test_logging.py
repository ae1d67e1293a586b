"""Unit tests for logging setup."""

import logging

import orjson
import pytest

from formlogic.core.logging import (
    ConsoleFormatter,
    JSONFormatter,
    LogConfig,
    ROOT_LOGGER_NAME,
    LoggerMixin,
    get_logger,
    setup_logging,
)


def make_record(**extra):
    record = logging.LogRecord(
        name="formlogic.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Rejected formula %s",
        args=("f1",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_format(self):
        """Test records render as JSON objects."""
        data = orjson.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "WARNING"
        assert data["logger"] == "formlogic.test"
        assert data["message"] == "Rejected formula f1"
        assert "extra" not in data

    def test_extra_fields(self):
        """Test values passed through extra are kept."""
        data = orjson.loads(JSONFormatter().format(make_record(cycle=["a", "b", "a"])))
        assert data["extra"] == {"cycle": ["a", "b", "a"]}


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_colours_level(self):
        """Test the level name is coloured and restored afterwards."""
        record = make_record()
        output = ConsoleFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[33m" in output
        assert record.levelname == "WARNING"


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.fixture
    def package_logger(self):
        """The package logger, restored after the test."""
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
        yield logger
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate

    def test_json_handler(self, package_logger):
        """Test JSON logging installs the JSON formatter."""
        logger = setup_logging(LogConfig(log_level="debug", json_logs=True))
        assert logger is package_logger
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_console_handler(self, package_logger):
        """Test console logging is the default."""
        setup_logging(LogConfig())
        assert isinstance(package_logger.handlers[0].formatter, ConsoleFormatter)
        assert package_logger.propagate is False

    def test_repeated_setup_replaces_handler(self, package_logger):
        """Test handlers do not pile up."""
        setup_logging(LogConfig())
        setup_logging(LogConfig(propagate=True))
        assert len(package_logger.handlers) == 1
        assert package_logger.propagate is True

    def test_root_logger_untouched(self, package_logger):
        """Test the embedding application's root handlers are left alone."""
        root_handlers = logging.getLogger().handlers[:]
        setup_logging(LogConfig())
        assert logging.getLogger().handlers == root_handlers

    def test_get_logger(self):
        """Test loggers are named."""
        assert get_logger("formlogic.x").name == "formlogic.x"

    def test_logger_mixin(self):
        """Test the mixin names the logger after the class."""

        class Widget(LoggerMixin):
            pass

        assert Widget().logger.name.endswith(".Widget")
