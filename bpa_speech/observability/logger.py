"""Structured JSON logger for the speech stage.

Outputs one JSON object per line to stdout with severity, timestamp, and
message fields, plus the pipeline context passed through `extra`.
"""

import json
import logging
import sys
from datetime import UTC, datetime

EXTRA_FIELDS = (
    "bpa_id",
    "audio_file",
    "stage",
    "attempt",
    "status_code",
    "duration_seconds",
    "error",
)


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    SEVERITY_MAP: dict[int, str] = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON string with severity, timestamp, message, and extra fields.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Create a structured JSON logger.

    Args:
        name: Logger name, typically the module name.

    Returns:
        Configured logger that outputs JSON to stdout.
    """
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if called multiple times
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredJsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

    return logger


def setup_logging(level: int = logging.INFO) -> None:
    """Route the root logger through the structured JSON formatter."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(
        isinstance(h.formatter, StructuredJsonFormatter) for h in root.handlers
    ):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)
