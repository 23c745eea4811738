"""
Unit tests for billing rule validators and the validation report.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from flowdesk.errors import ValidationError
from flowdesk.validators.billing_validators import BillingRuleValidators
from flowdesk.validators.validation_report import ValidationReport


def entry(entry_id, project_id=1, billable=True, invoice_id=None):
    return SimpleNamespace(
        id=entry_id, project_id=project_id, billable=billable, invoice_id=invoice_id
    )


def validate(project_id, ids, entries):
    report = ValidationReport()
    BillingRuleValidators.validate_entry_selection(
        project_id, ids, {e.id: e for e in entries}, report
    )
    return report


class TestValidateEntrySelection:
    """Test entry selection rules."""

    def test_valid_selection(self):
        report = validate(1, [1, 2], [entry(1), entry(2)])

        assert report.is_valid()
        assert report.issues == []

    def test_empty_selection(self):
        report = validate(1, [], [])

        assert not report.is_valid()
        assert report.get_errors()[0].message == "At least one time entry is required"

    def test_missing_entry(self):
        report = validate(1, [5], [])

        assert report.get_errors()[0].message == "Time entry 5 does not exist"
        assert report.offending_ids() == [5]

    def test_wrong_project(self):
        report = validate(1, [3], [entry(3, project_id=2)])

        assert report.get_errors()[0].message == (
            "Time entry 3 belongs to project 2, not project 1"
        )

    def test_not_billable(self):
        report = validate(1, [3], [entry(3, billable=False)])

        assert report.get_errors()[0].message == "Time entry 3 is not billable"

    def test_already_billed(self):
        report = validate(1, [3], [entry(3, invoice_id=9)])

        assert report.get_errors()[0].message == "Time entry 3 is already billed on invoice 9"

    def test_duplicates_are_warnings(self):
        report = validate(1, [4, 4], [entry(4)])

        assert report.is_valid()
        assert report.get_warnings()[0].message == "Time entry 4 is listed 2 times"

    def test_errors_in_ascending_id_order(self):
        report = validate(1, [9, 2], [entry(9, invoice_id=1), entry(2, billable=False)])

        assert report.offending_ids() == [2, 9]
        with pytest.raises(ValidationError) as exc_info:
            report.raise_if_invalid()
        assert exc_info.value.entity_id == 2


class TestValidateInvoiceAmount:
    def test_zero_amount_warns(self):
        report = ValidationReport()

        BillingRuleValidators.validate_invoice_amount(Decimal("0.00"), report)

        assert report.is_valid()
        assert report.warning_count == 1

    def test_positive_amount_silent(self):
        report = ValidationReport()

        BillingRuleValidators.validate_invoice_amount(Decimal("10.00"), report)

        assert report.issues == []


class TestValidationReport:
    """Test ValidationReport helpers."""

    def test_summary(self):
        report = ValidationReport()
        assert report.summary() == "No issues found"

        report.add_error("hours", "Too many hours", entity_id=1)
        report.add_warning("amount", "Invoice amount rounds to 0.00")

        assert report.summary() == "1 error(s), 1 warning(s)"

    def test_issues_without_id_first(self):
        report = ValidationReport()
        report.add_error("time_entry_ids", "Entry problem", entity_id=3)
        report.add_error("project_id", "Project problem")

        assert [i.message for i in report.get_errors()] == ["Project problem", "Entry problem"]

    def test_raise_if_valid_does_nothing(self):
        ValidationReport().raise_if_invalid()

    def test_issue_str(self):
        report = ValidationReport()
        report.add_error("billable", "Time entry 3 is not billable", entity_id=3)
        report.add_warning("amount", "Invoice amount rounds to 0.00")

        assert [str(i) for i in report.issues] == [
            "[ERROR] billable: Time entry 3 is not billable (id=3)",
            "[WARNING] amount: Invoice amount rounds to 0.00",
        ]
