"""Report writers for FlowDesk."""

from flowdesk.writers.billing_report import BillingReportGenerator

__all__ = ["BillingReportGenerator"]
