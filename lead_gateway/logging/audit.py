"""Structured JSON audit logging for the lead gateway.

Every submission outcome (forwarded, rate limited, rejected, bot) is
written to stdout as a single JSON line, with optional file output via
the AUDIT_LOG_FILE env var. Applicant personal data stays out of the
log: entries carry field names, counts and statuses only.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

from lead_gateway.config.settings import get_settings

AUDIT_LOGGER_NAME = "leadgateway.audit"

# Request-scoped context for correlating log entries
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        if hasattr(record, "audit_data"):
            log_entry.update(record.audit_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging() -> None:
    """Configure the audit logger with JSON output."""
    settings = get_settings()

    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    formatter = JSONFormatter()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if settings.audit_log_file:
        file_handler = logging.FileHandler(settings.audit_log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger (avoids duplicate output)
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)


def audit_event(message: str, level: int = logging.INFO, exc_info: bool = False, **fields) -> None:
    """Write one audit entry with ``fields`` merged into the JSON object."""
    get_audit_logger().log(level, message, exc_info=exc_info, extra={"audit_data": fields})
