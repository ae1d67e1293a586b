"""
Logging configuration for formlogic.

The engine only ever logs through loggers under the ``formlogic``
namespace. Embedding applications either let records propagate to their
own handlers or call :func:`setup_logging` to attach one: JSON lines for
production, coloured text for development.
"""

import logging
import sys
from typing import Any

import orjson
from pydantic import BaseModel

ROOT_LOGGER_NAME = "formlogic"


class LogConfig(BaseModel):
    """Logging configuration model."""

    log_level: str = "INFO"
    log_format: str = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    # Whether to output JSON logs (for production)
    json_logs: bool = False

    # Also hand records to the embedding application's handlers
    propagate: bool = False


# Attributes of a bare LogRecord; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    Render records as single-line JSON objects.

    Values passed through ``extra`` are nested under an ``extra`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return orjson.dumps(payload, default=str).decode("utf-8")


class ConsoleFormatter(logging.Formatter):
    """Console formatter with colored level names."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        plain = record.levelname
        color = self.COLORS.get(plain)
        if color:
            record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def setup_logging(config: LogConfig | None = None) -> logging.Logger:
    """
    Attach a stdout handler to the ``formlogic`` logger.

    Calling it again replaces the handler installed by the previous call.

    Args:
        config: Logging options; defaults are read from settings

    Returns:
        The configured package logger
    """
    if config is None:
        from formlogic.core.config import settings

        config = LogConfig(log_level=settings.log_level, json_logs=settings.json_logs)

    level = config.log_level.upper()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = config.propagate
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if config.json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(config.log_format, datefmt=config.date_format))
    logger.addHandler(handler)

    logger.debug("Logging configured", extra={"log_level": level, "json_logs": config.json_logs})
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LoggerMixin:
    """
    Mixin class that provides a logger attribute.

    Classes that inherit from this mixin get a logger named after the class.
    """

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this class."""
        return logging.getLogger(f"{type(self).__module__}.{type(self).__name__}")
