"""Business rule validators for invoice generation.

These checks run inside the invoice transaction, against the entries as
loaded there, before anything is written.
"""

from collections import Counter
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Protocol

from flowdesk.validators.validation_report import ValidationReport


class EntryState(Protocol):
    id: int
    project_id: int
    billable: bool
    invoice_id: Optional[int]


class BillingRuleValidators:
    """Collection of billing rule validation methods."""

    @staticmethod
    def validate_entry_selection(
        project_id: int,
        requested_ids: Iterable[int],
        entries: Mapping[int, EntryState],
        report: ValidationReport,
    ) -> None:
        """Validate the time entries requested for one invoice.

        Every requested id must reference an existing, billable and
        currently unbilled entry of the project. Ids listed more than once
        are billed once and reported as a warning.

        Args:
            project_id: Project being invoiced
            requested_ids: Time entry ids as requested by the caller
            entries: Entries loaded for those ids, keyed by id
            report: ValidationReport to collect issues
        """
        counts = Counter(requested_ids)
        if not counts:
            report.add_error("time_entry_ids", "At least one time entry is required")
            return

        for entry_id in sorted(counts):
            if counts[entry_id] > 1:
                report.add_warning(
                    "time_entry_ids",
                    f"Time entry {entry_id} is listed {counts[entry_id]} times",
                    entry_id,
                )

            entry = entries.get(entry_id)
            if entry is None:
                report.add_error(
                    "time_entry_ids", f"Time entry {entry_id} does not exist", entry_id
                )
            elif entry.project_id != project_id:
                report.add_error(
                    "project_id",
                    f"Time entry {entry_id} belongs to project {entry.project_id}, "
                    f"not project {project_id}",
                    entry_id,
                )
            elif not entry.billable:
                report.add_error(
                    "billable", f"Time entry {entry_id} is not billable", entry_id
                )
            elif entry.invoice_id is not None:
                report.add_error(
                    "invoice_id",
                    f"Time entry {entry_id} is already billed on invoice {entry.invoice_id}",
                    entry_id,
                )

    @staticmethod
    def validate_invoice_amount(
        amount: Decimal,
        report: ValidationReport,
    ) -> None:
        """Warn about invoices that round to nothing.

        Zero-amount invoices are still valid; they consume their entries.
        """
        if amount == 0:
            report.add_warning("amount", "Invoice amount rounds to 0.00")
