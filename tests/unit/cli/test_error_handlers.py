"""
Tests for CLI error handling.
"""

import click
import pytest

from flowdesk.cli.error_handlers import (
    EXIT_CANCELLED,
    EXIT_CONFIGURATION,
    EXIT_CONFLICT,
    EXIT_NOT_FOUND,
    EXIT_STORAGE,
    EXIT_UNEXPECTED,
    EXIT_VALIDATION,
    ConfigurationError,
    handle_cli_error,
    with_error_handling,
)
from flowdesk.errors import ConflictError, NotFoundError, StorageError, ValidationError


class TestHandleCliError:
    """Test exit codes and messages per error class."""

    @pytest.mark.parametrize(
        "error,code,title",
        [
            (ConfigurationError("bad env"), EXIT_CONFIGURATION, "Configuration Error"),
            (ValidationError("Time entry 3 is not billable", entity_id=3), EXIT_VALIDATION, "Validation Error"),
            (ConflictError("2 of 2 time entries were billed", entity_ids=[2, 1]), EXIT_CONFLICT, "Conflict"),
            (NotFoundError("Project", 9), EXIT_NOT_FOUND, "Not Found"),
            (StorageError("disk full"), EXIT_STORAGE, "Storage Error"),
            (RuntimeError("boom"), EXIT_UNEXPECTED, "Unexpected Error"),
        ],
    )
    def test_exit_codes(self, capsys, error, code, title):
        assert handle_cli_error(error) == code

        assert title in capsys.readouterr().err

    def test_validation_hint_names_entity(self, capsys):
        handle_cli_error(ValidationError("Time entry 3 is not billable", entity_id=3))

        assert "Check record 3" in capsys.readouterr().err

    def test_storage_hint_depends_on_retryable(self, capsys):
        handle_cli_error(StorageError("locked", retryable=True))
        assert "temporarily unavailable" in capsys.readouterr().err

        handle_cli_error(StorageError("no such table", retryable=False))
        assert "flowdesk init-db" in capsys.readouterr().err

    def test_cancelled(self, capsys):
        assert handle_cli_error(click.Abort()) == EXIT_CANCELLED

    def test_debug_prints_traceback(self, capsys):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            handle_cli_error(e, debug=True)

        assert "Full stack trace" in capsys.readouterr().err


class TestWithErrorHandling:
    def test_converts_errors_to_exit(self):
        with pytest.raises(SystemExit) as exc_info:
            with with_error_handling():
                raise NotFoundError("Invoice", 1)

        assert exc_info.value.code == EXIT_NOT_FOUND

    def test_system_exit_passes_through(self):
        with pytest.raises(SystemExit) as exc_info:
            with with_error_handling():
                raise SystemExit(7)

        assert exc_info.value.code == 7

    def test_no_error(self):
        with with_error_handling():
            value = 1

        assert value == 1
