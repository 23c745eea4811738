"""
Error classification for database failures.

A retryable failure left no trace in the database (connection lost, lock
timeout, pool exhausted), so the caller may try the same operation again.
A fatal one will fail the same way every time until the data or the schema
changes.
"""

from enum import Enum

from sqlalchemy import exc as sa_exc

RETRYABLE_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
)

FATAL_ERRORS = (
    sa_exc.IntegrityError,
    sa_exc.DataError,
    sa_exc.ProgrammingError,
    sa_exc.InvalidRequestError,
    sa_exc.ArgumentError,
)


class ErrorType(Enum):
    """Classification of error types."""

    RETRYABLE = "retryable"
    FATAL = "fatal"
    UNKNOWN = "unknown"


class ErrorClassifier:
    """
    Classifies SQLAlchemy exceptions into retryable and fatal errors.

    Example:
        >>> classifier = ErrorClassifier()
        >>> classifier.is_retryable(error)
        True
    """

    def classify(self, exception: Exception) -> ErrorType:
        """
        Classify an exception into retryable, fatal, or unknown.

        A DBAPI error whose connection was invalidated is retryable
        whatever its class.
        """
        if isinstance(exception, sa_exc.DBAPIError) and exception.connection_invalidated:
            return ErrorType.RETRYABLE
        if isinstance(exception, RETRYABLE_ERRORS):
            return ErrorType.RETRYABLE
        if isinstance(exception, FATAL_ERRORS):
            return ErrorType.FATAL
        return ErrorType.UNKNOWN

    def is_retryable(self, exception: Exception) -> bool:
        return self.classify(exception) == ErrorType.RETRYABLE

    def get_error_description(self, exception: Exception) -> str:
        """
        Get a human-readable error description.

        The DBAPI message is used without the SQL statement and parameters
        SQLAlchemy appends to its own string form.

        Args:
            exception: The exception to describe

        Returns:
            Description ending with the classification, e.g.
            ``"Database unavailable: database is locked - retryable"``
        """
        error_type = self.classify(exception)

        if isinstance(exception, sa_exc.DBAPIError) and exception.orig is not None:
            detail = str(exception.orig).strip()
        else:
            detail = str(exception).strip()

        if isinstance(exception, sa_exc.IntegrityError):
            return f"Constraint violation: {detail} - {error_type.value}"
        if isinstance(exception, sa_exc.OperationalError):
            return f"Database unavailable: {detail} - {error_type.value}"
        if isinstance(exception, sa_exc.TimeoutError):
            return f"Connection pool timeout - {error_type.value}"

        return f"{type(exception).__name__}: {detail} - {error_type.value}"
