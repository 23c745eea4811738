"""Billing settings and billing operation results.

``BillingSettings`` configures the engine: how hourly rates resolve, how
long invoices stay open, how invoice numbers look and what happens when a
project group fails during automatic billing. The remaining models are the
results of the engine's operations.
"""

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator

from flowdesk.models.base import BaseDataModel, ResponseModel
from flowdesk.models.entities import InvoiceStatus

FailurePolicy = Literal["skip", "abort"]


class HourlyRates(BaseDataModel):
    """Hourly rates keyed by project with a global fallback.

    Example:
        >>> rates = HourlyRates(default_rate="85", project_rates={2: "80"})
        >>> rates.rate_for(2), rates.rate_for(9)
        (Decimal('80'), Decimal('85'))
    """

    default_rate: Decimal = Field(..., gt=0)
    project_rates: Dict[int, Decimal] = Field(default_factory=dict)

    @field_validator("project_rates")
    @classmethod
    def validate_positive(cls, v: Dict[int, Decimal]) -> Dict[int, Decimal]:
        for project_id, rate in v.items():
            if rate <= 0:
                raise ValueError(
                    f"Hourly rate for project {project_id} must be positive, got {rate}"
                )
        return v

    def rate_for(self, project_id: int) -> Decimal:
        return self.project_rates.get(project_id, self.default_rate)


class BillingSettings(BaseDataModel):
    """Configuration of the billing engine.

    Attributes:
        rates: Hourly rate resolution
        invoice_due_days: Days between issue date and due date
        invoice_number_prefix: Prefix of generated invoice numbers
        failure_policy: 'skip' continues past a failing project group,
            'abort' rolls back the whole automatic billing run
        minimum_invoice_amount: Groups billing less than this are left
            unbilled; None disables the check
    """

    rates: HourlyRates
    invoice_due_days: int = Field(30, ge=0)
    invoice_number_prefix: str = Field("INV", min_length=1)
    failure_policy: FailurePolicy = "skip"
    minimum_invoice_amount: Optional[Decimal] = Field(None, ge=0)


class UnbilledEntry(ResponseModel):
    """A billable time entry not attached to any invoice, ready for display."""

    id: int
    project_id: int
    project_name: str
    client_id: int
    client_name: str
    task_id: Optional[int] = None
    user_name: str
    description: Optional[str] = None
    hours: Decimal
    hourly_rate: Decimal
    total_cost: Decimal
    date: dt.date


class BillingStats(ResponseModel):
    """Aggregate figures for the billing dashboard."""

    total_unbilled_hours: Decimal = Decimal("0.00")
    total_unbilled_amount: Decimal = Decimal("0.00")
    total_billed_this_month: Decimal = Decimal("0.00")
    average_hourly_rate: Decimal = Decimal("0.00")


class InvoiceSummary(ResponseModel):
    """An invoice as returned by the engine."""

    id: int
    invoice_number: str
    client_id: int
    project_id: Optional[int] = None
    amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    status: InvoiceStatus
    issue_date: dt.date
    due_date: dt.date
    paid_date: Optional[dt.date] = None
    description: Optional[str] = None
    is_auto_generated: bool = False
    time_entry_ids: List[int] = Field(default_factory=list)


class BillingGroupFailure(ResponseModel):
    """A project group that automatic billing could not invoice."""

    project_id: int
    time_entry_ids: List[int]
    error_type: str
    message: str


class SkippedBillingGroup(ResponseModel):
    """A project group left unbilled because it is below the minimum amount."""

    project_id: int
    time_entry_ids: List[int]
    amount: Decimal


class AutomaticBillingResult(ResponseModel):
    """Outcome of one automatic billing run.

    ``invoices_generated`` and ``total_amount`` cover the invoices actually
    created; failed and skipped groups are reported separately.
    """

    invoices_generated: int = 0
    total_amount: Decimal = Decimal("0.00")
    invoices: List[InvoiceSummary] = Field(default_factory=list)
    failures: List[BillingGroupFailure] = Field(default_factory=list)
    skipped: List[SkippedBillingGroup] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
