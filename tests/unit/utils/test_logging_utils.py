"""Tests for logging utilities."""

import json
import logging
import uuid

import pytest

from flowdesk.config.logging_config import LoggingConfig, configure_logging
from flowdesk.errors import ValidationError
from flowdesk.utils.logging_utils import (
    LogContext,
    _ContextFilter,
    generate_correlation_id,
    get_correlation_id,
    get_log_context,
    log_function_call,
    redact_database_url,
    sanitize_sensitive_data,
)


def _record(message: str = "test") -> logging.LogRecord:
    return logging.LogRecord("flowdesk.test", logging.INFO, __file__, 1, message, None, None)


class TestCorrelationId:
    """Test correlation ID helpers."""

    def test_generate_correlation_id_is_uuid(self):
        """Test generated IDs are valid, distinct UUIDs."""
        first = generate_correlation_id()
        second = generate_correlation_id()

        assert str(uuid.UUID(first)) == first
        assert first != second

    def test_no_correlation_id_outside_context(self):
        """Test no correlation ID is set by default."""
        assert get_correlation_id() is None

    def test_correlation_id_inside_context(self):
        """Test the correlation ID is visible inside a LogContext."""
        with LogContext(correlation_id="run-1"):
            assert get_correlation_id() == "run-1"

        assert get_correlation_id() is None


class TestLogContext:
    """Test LogContext context manager."""

    def test_nested_contexts_merge_and_restore(self):
        """Test nested contexts merge fields and restore on exit."""
        with LogContext(correlation_id="run-1"):
            with LogContext(project_id=7):
                assert get_log_context() == {"correlation_id": "run-1", "project_id": 7}
            assert get_log_context() == {"correlation_id": "run-1"}

        assert get_log_context() == {}

    def test_context_restored_after_exception(self):
        """Test fields are removed even when the block raises."""
        with pytest.raises(RuntimeError):
            with LogContext(project_id=3):
                raise RuntimeError("boom")

        assert "project_id" not in get_log_context()

    def test_filter_copies_fields_to_record(self):
        """Test the context filter attaches fields to log records."""
        record = _record()

        with LogContext(project_id=7, correlation_id="run-1"):
            assert _ContextFilter().filter(record) is True

        assert record.project_id == 7
        assert record.correlation_id == "run-1"

    def test_json_output_includes_context(self, tmp_path):
        """Test JSON logs carry the context fields."""
        log_file = tmp_path / "context.log"
        configure_logging(
            LoggingConfig(
                log_format="json",
                console=False,
                log_file=str(log_file),
            )
        )

        with LogContext(correlation_id="run-42"):
            logging.getLogger("flowdesk.test").warning("Billing group skipped")
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_entry = json.loads(log_file.read_text().strip())
        assert log_entry["correlation_id"] == "run-42"
        assert log_entry["message"] == "Billing group skipped"


class TestSanitizeSensitiveData:
    """Test sanitize_sensitive_data."""

    def test_sensitive_keys_redacted(self):
        """Test secret-looking keys are redacted."""
        data = {"password": "hunter2", "api_key": "abc", "name": "Ana", "token": None}

        sanitized = sanitize_sensitive_data(data)

        assert sanitized["password"] == "***REDACTED***"
        assert sanitized["api_key"] == "***REDACTED***"
        assert sanitized["name"] == "Ana"
        assert sanitized["token"] is None

    def test_nested_dictionaries(self):
        """Test nested dictionaries are sanitized recursively."""
        data = {"database": {"secret": "x", "host": "db"}}

        sanitized = sanitize_sensitive_data(data)

        assert sanitized == {"database": {"secret": "***REDACTED***", "host": "db"}}

    def test_database_url_password_masked(self):
        """Test keys ending in url have their password masked."""
        data = {"database_url": "postgresql://app:s3cret@db/flowdesk"}

        sanitized = sanitize_sensitive_data(data)

        assert sanitized["database_url"] == "postgresql://app:***@db/flowdesk"

    def test_non_dict_returned_unchanged(self):
        """Test non-dictionary input is passed through."""
        assert sanitize_sensitive_data("plain") == "plain"


class TestRedactDatabaseUrl:
    """Test redact_database_url."""

    def test_password_masked(self):
        assert (
            redact_database_url("postgresql://app:s3cret@db/flowdesk")
            == "postgresql://app:***@db/flowdesk"
        )

    def test_url_without_password_unchanged(self):
        assert redact_database_url("sqlite:///flowdesk.db") == "sqlite:///flowdesk.db"

    def test_non_url_string_unchanged(self):
        assert redact_database_url("not a url") == "not a url"


class TestLogFunctionCall:
    """Test log_function_call decorator."""

    def test_logs_entry_and_exit(self, caplog):
        """Test entry and exit messages are logged."""

        @log_function_call
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG):
            assert add(2, 3) == 5

        messages = [r.getMessage() for r in caplog.records]
        assert "Entering add" in messages
        assert any(m.startswith("Exiting add (") and m.endswith(" ms)") for m in messages)

    def test_include_args(self, caplog):
        """Test arguments are included when requested."""

        @log_function_call(include_args=True, level="INFO")
        def bill(project_id, entries=None):
            return project_id

        with caplog.at_level(logging.INFO):
            bill(7, entries=[1, 2])

        assert any(
            "Entering bill with args: 7, entries=[1, 2]" in r.getMessage()
            for r in caplog.records
        )

    def test_exception_logged_and_reraised(self, caplog):
        """Test exceptions are logged at ERROR and re-raised."""

        @log_function_call
        def fail():
            raise ValueError("bad input")

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(ValueError, match="bad input"):
                fail()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "ValueError: bad input" in errors[0].getMessage()

    def test_preserves_function_metadata(self):
        """Test functools.wraps keeps the name and docstring."""

        @log_function_call
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."

    def test_method_args_leave_out_self(self, caplog):
        """Test the bound instance is not part of the logged arguments."""

        class Engine:
            @log_function_call(include_args=True)
            def generate(self, project_id, entry_ids):
                return project_id

        with caplog.at_level(logging.DEBUG):
            Engine().generate(7, [1, 2])

        assert "Entering generate with args: 7, [1, 2]" in [
            r.getMessage() for r in caplog.records
        ]

    def test_domain_error_logged_as_warning(self, caplog):
        """Test FlowDeskError subclasses are warnings without traceback."""

        @log_function_call
        def bill():
            raise ValidationError("Time entry 4 is already billed", entity_id=4)

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(ValidationError):
                bill()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert [r.getMessage() for r in warnings] == [
            "bill rejected: ValidationError: Time entry 4 is already billed"
        ]
        assert warnings[0].exc_info is None
        assert not any(r.levelno == logging.ERROR for r in caplog.records)
