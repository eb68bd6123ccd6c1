"""Tests for request logging and sensitive data redaction."""

import json
import logging
import sys
from unittest.mock import patch

from wellness_api.core.logging import JSONFormatter, get_logger, setup_logging
from wellness_api.middleware.request_logger import REDACTED, sanitize_sensitive_data


class TestSanitizeSensitiveData:
    """Tests for sanitize_sensitive_data function."""

    def test_redacts_top_level_fields(self):
        data = {"username": "alice", "password": "hunter2", "token": "abc"}
        assert sanitize_sensitive_data(data) == {
            "username": "alice",
            "password": REDACTED,
            "token": REDACTED,
        }

    def test_case_insensitive(self):
        data = {"Authorization": "Bearer x", "APIKEY": "k", "csrfToken": "t"}
        assert set(sanitize_sensitive_data(data).values()) == {REDACTED}

    def test_nested_structures(self):
        data = {"user": {"name": "bob", "newPassword": "x"}, "items": [{"_csrf": "t"}, 3]}
        assert sanitize_sensitive_data(data) == {
            "user": {"name": "bob", "newPassword": REDACTED},
            "items": [{"_csrf": REDACTED}, 3],
        }

    def test_input_not_modified(self):
        data = {"password": "hunter2"}
        sanitize_sensitive_data(data)
        assert data == {"password": "hunter2"}

    def test_scalars_pass_through(self):
        assert sanitize_sensitive_data("plain") == "plain"
        assert sanitize_sensitive_data(None) is None


class TestRequestLoggingMiddleware:
    """Tests for RequestLoggingMiddleware."""

    def _logged_extras(self, mock_logger) -> list[tuple[int, dict]]:
        return [(c.args[0], c.kwargs["extra"]) for c in mock_logger.log.call_args_list]

    def test_logs_successful_request(self, client):
        with patch("wellness_api.middleware.request_logger.logger") as mock_logger:
            client.get("/health")

        level, extra = self._logged_extras(mock_logger)[-1]
        assert level == logging.INFO
        assert extra["method"] == "GET"
        assert extra["path"] == "/health"
        assert extra["status"] == 200
        assert extra["duration_ms"] >= 0
        assert extra["user_id"] is None

    def test_client_errors_log_as_warning(self, client):
        with patch("wellness_api.middleware.request_logger.logger") as mock_logger:
            client.get("/api/auth/verify")

        level, extra = self._logged_extras(mock_logger)[-1]
        assert level == logging.WARNING
        assert extra["status"] == 401

    def test_authenticated_user_is_recorded(self, client, admin_headers):
        with patch("wellness_api.middleware.request_logger.logger") as mock_logger:
            client.get("/api/auth/verify", headers=admin_headers)

        _, extra = self._logged_extras(mock_logger)[-1]
        assert extra["user_id"] == "u1"

    def test_query_string_is_redacted(self, client):
        with patch("wellness_api.middleware.request_logger.logger") as mock_logger:
            client.get("/health", params={"token": "secret-value", "page": "2"})

        _, extra = self._logged_extras(mock_logger)[-1]
        assert extra["query"] == {"token": REDACTED, "page": "2"}


class TestJSONFormatter:
    """Tests for structured log output."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.makeLogRecord(
            {"name": "wellness_api.test", "levelname": "INFO", "msg": "hello %s", "args": ("you",)}
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter(environment="production").format(self._record()))
        assert entry["message"] == "hello you"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "wellness_api.test"
        assert entry["service"] == "wellness-api"
        assert entry["environment"] == "production"
        assert "timestamp" in entry

    def test_extra_fields_are_top_level(self):
        record = self._record(method="POST", status=403, duration_ms=1.5)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["method"] == "POST"
        assert entry["status"] == 403
        assert entry["duration_ms"] == 1.5

    def test_exception_is_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = self._record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_structured_installs_json_formatter(self):
        setup_logging(level="WARNING", format_type="structured", environment="production")
        try:
            assert isinstance(logging.root.handlers[0].formatter, JSONFormatter)
            assert logging.root.level == logging.WARNING
        finally:
            setup_logging(level="INFO", format_type="dev")

    def test_dev_format(self):
        setup_logging(level="DEBUG", format_type="dev")
        try:
            assert not isinstance(logging.root.handlers[0].formatter, JSONFormatter)
            assert logging.root.level == logging.DEBUG
        finally:
            setup_logging(level="INFO", format_type="dev")

    def test_get_logger_prefix(self):
        assert get_logger("main").name == "wellness_api.main"
