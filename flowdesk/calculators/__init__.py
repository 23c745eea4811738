"""Calculator modules for FlowDesk billing."""

from flowdesk.calculators.billing_calculator import (
    BillingTotals,
    aggregate_unbilled,
    calculate_entry_cost,
    calculate_invoice_amount,
    group_entries_by_project,
    money,
)

__all__ = [
    "BillingTotals",
    "aggregate_unbilled",
    "calculate_entry_cost",
    "calculate_invoice_amount",
    "group_entries_by_project",
    "money",
]
