"""Structured logging utilities with context support."""

import functools
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from flowdesk.errors import FlowDeskError

_thread_local = threading.local()

REDACTED = "***REDACTED***"

# Substrings of setting names whose values must never reach a log
SENSITIVE_FIELDS = (
    "password",
    "passwd",
    "token",
    "api_key",
    "secret",
    "private_key",
    "credentials",
    "authorization",
)


def _current_context() -> Dict[str, Any]:
    context = getattr(_thread_local, "context", None)
    if context is None:
        context = _thread_local.context = {}
    return context


def generate_correlation_id() -> str:
    """Generate an id that ties together the log records of one billing run."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    return _current_context().get("correlation_id")


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently attached to log records."""
    return dict(_current_context())


class LogContext:
    """
    Context manager for adding structured fields to log records.

    Fields live in thread-local storage and are copied onto every record by
    the filter ``configure_logging`` installs on each handler. Nested
    contexts add to the enclosing one; leaving a context restores exactly
    what was there before, also when the block raises.

    Example:
        with LogContext(correlation_id=generate_correlation_id()):
            with LogContext(project_id=7):
                logger.info("Generating invoice")
                # record carries correlation_id and project_id
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._saved: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        context = _current_context()
        self._saved = dict(context)
        context.update(self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _thread_local.context = self._saved


class _ContextFilter(logging.Filter):
    """Copy the current LogContext fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _current_context().items():
            setattr(record, key, value)
        return True


def redact_database_url(url: str) -> str:
    """Mask the password of a database URL, leaving other strings untouched.

    Example:
        >>> redact_database_url("postgresql://app:s3cret@db/flowdesk")
        'postgresql://app:***@db/flowdesk'
    """
    try:
        parsed = make_url(url)
    except ArgumentError:
        return url
    return parsed.render_as_string(hide_password=True)


def sanitize_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Make a settings dump safe to log.

    Secret-looking keys are replaced with a marker, nested dictionaries are
    processed recursively and ``*_url`` values lose their password.

    Args:
        data: Dictionary to sanitize, typically ``config.model_dump()``

    Returns:
        A new dictionary; the input is not modified
    """
    if not isinstance(data, dict):
        return data

    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        lowered = key.lower()
        if any(marker in lowered for marker in SENSITIVE_FIELDS):
            sanitized[key] = None if value is None else REDACTED
        elif isinstance(value, dict):
            sanitized[key] = sanitize_sensitive_data(value)
        elif lowered.endswith("url") and isinstance(value, str):
            sanitized[key] = redact_database_url(value)
        else:
            sanitized[key] = value
    return sanitized


def _is_method(f: Callable) -> bool:
    parts = f.__qualname__.split(".")
    return len(parts) > 1 and parts[-2] != "<locals>"


def log_function_call(
    func: Optional[Callable] = None, *, include_args: bool = False, level: str = "DEBUG"
) -> Callable:
    """
    Log entry to and exit from a function, with the time it took.

    Domain errors (``FlowDeskError``) are expected outcomes such as a
    rejected entry selection and are logged at WARNING; anything else is
    logged at ERROR with its traceback. Both are re-raised unchanged.

    Args:
        func: Function to decorate (when used without arguments)
        include_args: Log the call arguments; ``self`` is left out for methods
        level: Level for the entry and exit records

    Example:
        @log_function_call
        def list_unbilled_entries(self):
            ...

        @log_function_call(include_args=True, level="INFO")
        def generate_invoice(self, project_id, time_entry_ids):
            ...
    """

    def decorator(f: Callable) -> Callable:
        log_level = getattr(logging, level.upper())
        skip_first = _is_method(f)

        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(f.__module__)

            if include_args:
                shown = args[1:] if skip_first else args
                signature = ", ".join(
                    [repr(a) for a in shown] + [f"{k}={v!r}" for k, v in kwargs.items()]
                )
                logger.log(log_level, f"Entering {f.__name__} with args: {signature}")
            else:
                logger.log(log_level, f"Entering {f.__name__}")

            started = time.perf_counter()
            try:
                result = f(*args, **kwargs)
            except FlowDeskError as e:
                logger.warning(f"{f.__name__} rejected: {type(e).__name__}: {e}")
                raise
            except Exception as e:
                logger.error(
                    f"Exception in {f.__name__}: {type(e).__name__}: {e}", exc_info=True
                )
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.log(log_level, f"Exiting {f.__name__} ({elapsed_ms:.1f} ms)")
            return result

        return wrapper

    if func is None:
        return decorator
    return decorator(func)
