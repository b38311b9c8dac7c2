"""Tests for lead_gateway/logging/audit.py — JSON audit logging."""

import json
import logging
import sys

from lead_gateway.logging.audit import (
    AUDIT_LOGGER_NAME,
    JSONFormatter,
    audit_event,
    get_audit_logger,
    request_id_var,
    setup_logging,
)


def _record(msg: str = "test", level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="leadgateway.audit", level=level, pathname="",
        lineno=0, msg=msg, args=(), exc_info=exc_info,
    )


class TestJSONFormatter:

    def test_single_line_json(self):
        output = JSONFormatter().format(_record("Submission forwarded"))
        assert "\n" not in output
        parsed = json.loads(output)
        assert parsed["message"] == "Submission forwarded"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "leadgateway.audit"
        assert "timestamp" in parsed

    def test_includes_request_id(self):
        token = request_id_var.set("abc123def456")
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["request_id"] == "abc123def456"
        finally:
            request_id_var.reset(token)

    def test_request_id_defaults_to_empty(self):
        parsed = json.loads(JSONFormatter().format(_record()))
        assert parsed["request_id"] == ""

    def test_merges_audit_data(self):
        record = _record("Rate limit exceeded", logging.WARNING)
        record.audit_data = {"client_ip": "1.2.3.4", "form": "lead_form", "retry_after": 42}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["client_ip"] == "1.2.3.4"
        assert parsed["form"] == "lead_form"
        assert parsed["retry_after"] == 42

    def test_includes_exception_traceback(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("Unhandled error", logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestAuditEvent:

    def test_fields_become_audit_data(self, caplog):
        logger = get_audit_logger()
        logger.addHandler(caplog.handler)
        previous_level = logger.level
        logger.setLevel(logging.DEBUG)
        try:
            audit_event("Rate limit sweep", logging.DEBUG, removed=3, tracked=7)
        finally:
            logger.removeHandler(caplog.handler)
            logger.setLevel(previous_level)

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.getMessage() == "Rate limit sweep"
        assert record.audit_data == {"removed": 3, "tracked": 7}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["removed"] == 3


class TestSetupLogging:

    def test_stdout_only_by_default(self, override_settings):
        override_settings(AUDIT_LOG_FILE="")
        setup_logging()
        logger = get_audit_logger()
        assert logger.name == AUDIT_LOGGER_NAME
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.propagate is False

    def test_adds_file_handler(self, override_settings, tmp_path):
        log_file = tmp_path / "audit.log"
        override_settings(AUDIT_LOG_FILE=str(log_file), LOG_LEVEL="debug")
        setup_logging()
        logger = get_audit_logger()
        try:
            assert logger.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
