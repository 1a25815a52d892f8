"""
Logging configuration for caldav-tasks.

This module provides:
- Structured JSON logging with python-json-logger
- Configurable log formats (JSON or text)
- Log level configuration per component
- Redaction of HTTP credentials from log output
"""

import logging
import re
import sys

from pythonjsonlogger.json import JsonFormatter

_CREDENTIAL_PATTERN = re.compile(
    r"(authorization['\"]?\s*[:=]\s*['\"]?(?:basic|bearer)\s+)[A-Za-z0-9+/=._~-]+",
    re.IGNORECASE,
)


class CredentialRedactionFilter(logging.Filter):
    """
    Logging filter that masks Authorization header values.

    Request logging dumps headers at DEBUG level; this keeps Basic
    credentials out of the log stream regardless of formatter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Rewrite the record message with credentials masked.

        Args:
            record: LogRecord instance

        Returns:
            Always True, records are never dropped
        """
        message = record.getMessage()
        redacted = _CREDENTIAL_PATTERN.sub(r"\1[redacted]", message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def setup_logging(log_format: str = "text", log_level: str = "INFO") -> None:
    """
    Configure logging for caldav-tasks.

    Args:
        log_format: "json" for JSON logging, "text" for human-readable text (default: "text")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) (default: "INFO")
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Logs go to stderr so command output on stdout stays machine readable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(CredentialRedactionFilter())

    if log_format.lower() == "json":
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(levelname)s [%(asctime)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    configure_component_loggers(log_level)

    root_logger.debug(f"Logging configured: format={log_format}, level={log_level}")


def configure_component_loggers(default_level: str = "INFO") -> None:
    """
    Configure log levels for specific components.

    Args:
        default_level: Default log level for application loggers
    """
    logger_levels = {
        "caldav_tasks": default_level,
        "caldav_tasks.client": default_level,
        # HTTP client loggers (less verbose by default)
        "httpx": "WARNING",
        "httpcore": "WARNING",
    }

    for logger_name, level in logger_levels.items():
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
