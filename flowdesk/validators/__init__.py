"""Validation layer for billing business rules."""

from flowdesk.validators.billing_validators import BillingRuleValidators
from flowdesk.validators.validation_report import (
    ValidationIssue,
    ValidationReport,
    ValidationSeverity,
)

__all__ = [
    "BillingRuleValidators",
    "ValidationReport",
    "ValidationIssue",
    "ValidationSeverity",
]
