"""
Unit tests for ErrorClassifier.
"""

import pytest
from sqlalchemy import exc as sa_exc

from flowdesk.db.error_classifier import ErrorClassifier, ErrorType


def dbapi_error(cls, message="boom", connection_invalidated=False):
    return cls("INSERT INTO invoices ...", {}, Exception(message), connection_invalidated=connection_invalidated)


@pytest.fixture
def classifier():
    return ErrorClassifier()


class TestClassify:
    """Test exception classification."""

    @pytest.mark.parametrize(
        "error",
        [
            dbapi_error(sa_exc.OperationalError, "database is locked"),
            sa_exc.DisconnectionError("connection lost"),
            sa_exc.TimeoutError("pool exhausted"),
            dbapi_error(sa_exc.DBAPIError, connection_invalidated=True),
        ],
    )
    def test_retryable(self, classifier, error):
        assert classifier.classify(error) == ErrorType.RETRYABLE
        assert classifier.is_retryable(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            dbapi_error(sa_exc.IntegrityError, "UNIQUE constraint failed"),
            dbapi_error(sa_exc.DataError),
            dbapi_error(sa_exc.ProgrammingError),
            sa_exc.InvalidRequestError("bad request"),
        ],
    )
    def test_fatal(self, classifier, error):
        assert classifier.classify(error) == ErrorType.FATAL
        assert classifier.is_retryable(error) is False

    def test_unknown(self, classifier):
        assert classifier.classify(ValueError("x")) == ErrorType.UNKNOWN

    def test_invalidated_connection_wins(self, classifier):
        error = dbapi_error(sa_exc.IntegrityError, connection_invalidated=True)

        assert classifier.classify(error) == ErrorType.RETRYABLE


class TestDescriptions:
    """Test human-readable descriptions."""

    def test_integrity_error_without_statement(self, classifier):
        error = dbapi_error(sa_exc.IntegrityError, "UNIQUE constraint failed: invoices.invoice_number")

        description = classifier.get_error_description(error)

        assert description == (
            "Constraint violation: UNIQUE constraint failed: invoices.invoice_number - fatal"
        )
        assert "INSERT" not in description

    def test_operational_error(self, classifier):
        error = dbapi_error(sa_exc.OperationalError, "database is locked")

        assert classifier.get_error_description(error) == (
            "Database unavailable: database is locked - retryable"
        )

    def test_timeout(self, classifier):
        assert classifier.get_error_description(sa_exc.TimeoutError("x")) == (
            "Connection pool timeout - retryable"
        )

    def test_other(self, classifier):
        assert classifier.get_error_description(ValueError("bad")) == "ValueError: bad - unknown"

