"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from shared.config import get_settings

# Context fields copied from `extra=` into the JSON payload when present
CONTEXT_FIELDS = (
    "user_id",
    "appointment_id",
    "email",
    "request_path",
    "error_code",
    "trace_id",
)


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Outputs logs as JSON with consistent fields:
    - timestamp (ISO 8601)
    - level (INFO, ERROR, etc.)
    - logger (module name)
    - message
    - user_id / appointment_id / email / request_path / error_code / trace_id
      (if available in extra)
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON string.

        Args:
            record: Python log record

        Returns:
            JSON-formatted log string
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging() -> None:
    """
    Configure application logging with JSON formatter.

    Reads LOG_LEVEL from settings (default: INFO).
    Outputs to stderr (captured by Docker logs).
    """
    settings = get_settings()

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())

    root_logger.addHandler(console_handler)

    root_logger.info(
        f"Logging configured: level={settings.LOG_LEVEL}, format=JSON"
    )
