"""Error handling for CLI commands."""

import sys
import traceback
from typing import Optional

import click

from flowdesk.cli.utils.formatters import format_error, format_warning
from flowdesk.errors import ConflictError, NotFoundError, StorageError, ValidationError

# Exit codes
EXIT_CONFIGURATION = 1
EXIT_VALIDATION = 3
EXIT_CONFLICT = 4
EXIT_NOT_FOUND = 5
EXIT_STORAGE = 6
EXIT_BILLING_FAILURES = 7
EXIT_CANCELLED = 130
EXIT_UNEXPECTED = 255


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize CLI error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to configuration issues."""

    pass


def _report(title: str, message: str, hint: Optional[str]) -> None:
    click.echo(format_error(f"{title}: {message}"), err=True)
    if hint:
        click.echo(format_warning(f"Hint: {hint}"), err=True)


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Handle CLI errors with user-friendly messages.

    Args:
        error: The exception that occurred
        debug: Whether to show full stack trace

    Returns:
        Exit code, distinct per error class
    """
    if isinstance(error, ConfigurationError):
        _report("Configuration Error", error.message, error.recovery_hint)
        return EXIT_CONFIGURATION

    elif isinstance(error, ValidationError):
        hint = None
        if error.entity_id is not None:
            hint = f"Check record {error.entity_id}; run 'flowdesk unbilled' for billable entries"
        _report("Validation Error", error.message, hint)
        return EXIT_VALIDATION

    elif isinstance(error, ConflictError):
        _report(
            "Conflict",
            error.message,
            "Another request billed these entries; refresh with 'flowdesk unbilled' and retry",
        )
        return EXIT_CONFLICT

    elif isinstance(error, NotFoundError):
        _report("Not Found", error.message, "Verify the id you passed")
        return EXIT_NOT_FOUND

    elif isinstance(error, StorageError):
        if error.retryable:
            hint = "The database is temporarily unavailable; retry in a moment"
        else:
            hint = "Check DATABASE_URL and run 'flowdesk init-db' to create the schema"
        _report("Storage Error", error.message, hint)
        return EXIT_STORAGE

    # Handle click.Abort (user cancellation)
    elif isinstance(error, (click.Abort, KeyboardInterrupt)):
        click.echo(format_warning("\nOperation cancelled by user"), err=True)
        return EXIT_CANCELLED

    else:
        click.echo(format_error(f"Unexpected Error: {type(error).__name__}"), err=True)
        click.echo(str(error), err=True)

        if debug:
            click.echo("\nFull stack trace:", err=True)
            click.echo(traceback.format_exc(), err=True)
        else:
            click.echo(format_warning("\nRun with --debug flag for full stack trace"), err=True)

        return EXIT_UNEXPECTED


def with_error_handling(debug: bool = False):
    """
    Context manager adding standardized error handling to CLI commands.

    Args:
        debug: Whether to show full stack traces

    Example:
        @click.command()
        @pass_app
        def my_command(app):
            with with_error_handling(app.debug):
                ...
    """

    class ErrorHandler:
        """Context manager for error handling."""

        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is None or isinstance(exc_val, (click.exceptions.Exit, SystemExit)):
                return False
            exit_code = handle_cli_error(exc_val, self.show_debug)
            sys.exit(exit_code)

    return ErrorHandler(debug)
