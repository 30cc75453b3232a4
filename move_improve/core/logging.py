"""Structured logging for the decision service.

Every record is rendered as key=value pairs. Questionnaire context
(version number, version row id) is promoted to top-level fields so a
computation can be traced back to the configuration it was scored against.
"""

import logging
import sys
from typing import Any

# Record attributes promoted into the structured output when present
CONTEXT_FIELDS = ("version", "version_id")


def _format_value(value: Any) -> str:
    text = str(value)
    if " " in text or text == "":
        return '"' + text.replace('"', '\\"') + '"'
    return text


class StructuredFormatter(logging.Formatter):
    """Key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        log_data["message"] = record.getMessage()

        line = " ".join(f"{k}={_format_value(v)}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _resolve_level() -> int:
    """LOG_LEVEL wins; otherwise DEBUG in dev and INFO elsewhere."""
    try:
        from move_improve.core.config import get_settings

        settings = get_settings()
    except Exception:
        # Settings unavailable (e.g. store credentials unset)
        return logging.INFO

    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if settings.MI_ENGINE_ENV == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_resolve_level())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with questionnaire context and additional fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Context fields (version, version_id) and any extra key/values
    """
    extra: dict[str, Any] = {
        field: kwargs.pop(field) for field in CONTEXT_FIELDS if field in kwargs
    }
    extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
