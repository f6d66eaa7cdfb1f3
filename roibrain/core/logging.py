"""Structured logging configuration for the ROI Brain engine."""

import logging
import re
import sys
from typing import Any

# Context keys that never reach the log stream
PII_FIELDS = frozenset(
    {
        "email",
        "phone",
        "phonenumber",
        "firstname",
        "lastname",
        "fullname",
        "address",
        "ssn",
        "dob",
        "birthdate",
    }
)

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"^[\d\s\-\+\(\)\.]{10,}$")


def redact_pii(value: Any) -> Any:
    """
    Recursively redact PII from a log context value.

    Keys listed in PII_FIELDS are masked outright; free-text strings that look
    like an email address or phone number are masked as well.
    """
    if isinstance(value, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in PII_FIELDS else redact_pii(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_pii(v) for v in value]
    if isinstance(value, str):
        if _EMAIL_RE.search(value):
            return "[REDACTED_EMAIL]"
        if _PHONE_RE.match(value):
            return "[REDACTED_PHONE]"
    return value


class StructuredFormatter(logging.Formatter):
    """JSON-like structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        # Add session_id if present in extra
        if hasattr(record, "session_id"):
            log_data["session_id"] = record.session_id

        # Add any other extra fields
        if hasattr(record, "extra_data"):
            log_data.update(redact_pii(record.extra_data))

        # Format as key=value pairs for readability
        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        # Set level based on environment
        try:
            from roibrain.core.config import get_settings

            settings = get_settings()
            if settings.ROI_BRAIN_ENV == "dev":
                logger.setLevel(logging.DEBUG)
            else:
                logger.setLevel(logging.INFO)
        except Exception:
            # Default to INFO if settings not available
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (e.g., session_id)
    """
    extra = {"extra_data": kwargs}
    if "session_id" in kwargs:
        extra["session_id"] = kwargs.pop("session_id")
        extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
