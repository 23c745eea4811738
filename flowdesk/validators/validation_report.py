"""Validation report for collecting and formatting billing validation issues."""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional

from flowdesk.errors import ValidationError


class ValidationSeverity(IntEnum):
    """Severity levels for validation issues."""

    WARNING = 2
    ERROR = 3


@dataclass
class ValidationIssue:
    """Represents a single validation issue.

    Attributes:
        severity: The severity level of the issue
        field: The field name that has the issue
        message: Human-readable description of the issue
        entity_id: Id of the offending record, if the issue concerns one
    """

    severity: ValidationSeverity
    field: str
    message: str
    entity_id: Optional[int] = None

    def __str__(self) -> str:
        target = f" (id={self.entity_id})" if self.entity_id is not None else ""
        return f"[{self.severity.name}] {self.field}: {self.message}{target}"


class ValidationReport:
    """Collects validation issues for one billing request.

    Errors block the request; warnings are informational. Errors are
    reported in ascending entity id order, issues without an id first.

    Example:
        >>> report = ValidationReport()
        >>> report.add_error("time_entry_ids", "Time entry 7 is already billed", entity_id=7)
        >>> report.is_valid()
        False
        >>> report.raise_if_invalid()
        Traceback (most recent call last):
        ...
        flowdesk.errors.ValidationError: Time entry 7 is already billed
    """

    def __init__(self) -> None:
        self.issues: List[ValidationIssue] = []

    @property
    def error_count(self) -> int:
        return len(self.get_errors())

    @property
    def warning_count(self) -> int:
        return len(self.get_warnings())

    def is_valid(self) -> bool:
        """Check if validation passed (no errors).

        Returns:
            True if no errors are present, False otherwise
        """
        return self.error_count == 0

    def add_error(self, field: str, message: str, entity_id: Optional[int] = None) -> None:
        self.issues.append(
            ValidationIssue(ValidationSeverity.ERROR, field, message, entity_id)
        )

    def add_warning(self, field: str, message: str, entity_id: Optional[int] = None) -> None:
        self.issues.append(
            ValidationIssue(ValidationSeverity.WARNING, field, message, entity_id)
        )

    def get_errors(self) -> List[ValidationIssue]:
        """Get all error-level issues, lowest entity id first.

        Returns:
            List of error issues
        """
        errors = [i for i in self.issues if i.severity == ValidationSeverity.ERROR]
        return sorted(
            errors,
            key=lambda i: (i.entity_id is not None, i.entity_id or 0),
        )

    def get_warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    def offending_ids(self) -> List[int]:
        """Ids named by error issues, ascending and without duplicates."""
        return sorted({i.entity_id for i in self.get_errors() if i.entity_id is not None})

    def raise_if_invalid(self) -> None:
        """
        Raise the first error as a ValidationError.

        Raises:
            ValidationError: Carrying the message and entity id of the
                first error in report order
        """
        errors = self.get_errors()
        if errors:
            first = errors[0]
            raise ValidationError(first.message, entity_id=first.entity_id)

    def summary(self) -> str:
        """Get a summary of the validation report.

        Returns:
            Summary string with counts of errors and warnings
        """
        parts = []
        if self.error_count > 0:
            parts.append(f"{self.error_count} error(s)")
        if self.warning_count > 0:
            parts.append(f"{self.warning_count} warning(s)")

        if not parts:
            return "No issues found"

        return ", ".join(parts)
