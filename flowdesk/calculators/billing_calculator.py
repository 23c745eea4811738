"""Billing calculator for time-entry invoicing.

This module implements the arithmetic behind invoice generation:
- Cost of a single time entry (hours × hourly rate)
- Invoice amount for a set of entries
- Grouping of entries by project
- Aggregation of unbilled entries into dashboard figures

All amounts are Decimal and rounded half-up to cents. The functions are
pure; rates are resolved by the caller through ``HourlyRates``.
"""

from collections import OrderedDict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Protocol, TypeVar

from flowdesk.models.billing import HourlyRates

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


class BillableItem(Protocol):
    project_id: int
    hours: Decimal


ItemT = TypeVar("ItemT", bound=BillableItem)


@dataclass
class BillingTotals:
    """Aggregated figures for a set of unbilled entries.

    Attributes:
        total_hours: Sum of entry hours
        total_amount: Sum of entry costs
        average_hourly_rate: Mean of the entries' hourly rates
        entry_count: Number of entries aggregated

    Example:
        >>> totals = BillingTotals(
        ...     total_hours=Decimal("9.00"),
        ...     total_amount=Decimal("570.00"),
        ...     average_hourly_rate=Decimal("60.00"),
        ...     entry_count=3,
        ... )
        >>> totals.total_amount
        Decimal('570.00')
    """

    total_hours: Decimal
    total_amount: Decimal
    average_hourly_rate: Decimal
    entry_count: int


def money(value: Decimal) -> Decimal:
    """Round a Decimal half-up to cents.

    Example:
        >>> money(Decimal("10.005"))
        Decimal('10.01')
    """
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_entry_cost(hours: Decimal, hourly_rate: Decimal) -> Decimal:
    """Calculate the cost of one time entry.

    Args:
        hours: Hours worked
        hourly_rate: Rate for the entry's project

    Returns:
        hours × hourly_rate, rounded to cents

    Example:
        >>> calculate_entry_cost(Decimal("2.5"), Decimal("85.00"))
        Decimal('212.50')
    """
    return money(hours * hourly_rate)


def calculate_invoice_amount(entries: Iterable[BillableItem], rates: HourlyRates) -> Decimal:
    """Calculate the amount of an invoice covering the given entries.

    The unrounded products are summed first and the total is rounded once,
    so the invoice amount is exactly Σ hours × rate to the cent.

    Args:
        entries: Time entries (anything with project_id and hours)
        rates: Hourly rate resolution

    Returns:
        Invoice amount rounded to cents; 0.00 for no entries

    Example:
        >>> rates = HourlyRates(default_rate="50")
        >>> entries = [Entry(project_id=1, hours=Decimal("2")),
        ...            Entry(project_id=1, hours=Decimal("3"))]
        >>> calculate_invoice_amount(entries, rates)
        Decimal('250.00')
    """
    raw_total = sum(
        (entry.hours * rates.rate_for(entry.project_id) for entry in entries),
        Decimal("0"),
    )
    return money(raw_total)


def group_entries_by_project(entries: Iterable[ItemT]) -> "OrderedDict[int, List[ItemT]]":
    """Group entries by project id, in ascending project order.

    Entry order inside each group is preserved.

    Args:
        entries: Time entries to group

    Returns:
        Ordered mapping of project_id to its entries
    """
    groups: Dict[int, List[ItemT]] = {}
    for entry in entries:
        groups.setdefault(entry.project_id, []).append(entry)

    return OrderedDict((project_id, groups[project_id]) for project_id in sorted(groups))


def aggregate_unbilled(entries: Iterable[BillableItem], rates: HourlyRates) -> BillingTotals:
    """Aggregate unbilled entries into dashboard figures.

    ``total_amount`` is the sum of the per-entry costs as listed to the
    user, and ``average_hourly_rate`` is the plain mean of the rates the
    entries resolve to (not weighted by hours).

    Args:
        entries: Unbilled time entries
        rates: Hourly rate resolution

    Returns:
        BillingTotals; all zeros for no entries
    """
    entries = list(entries)
    if not entries:
        return BillingTotals(
            total_hours=ZERO,
            total_amount=ZERO,
            average_hourly_rate=ZERO,
            entry_count=0,
        )

    entry_rates = [rates.rate_for(entry.project_id) for entry in entries]
    total_hours = sum((entry.hours for entry in entries), Decimal("0"))
    total_amount = sum(
        (calculate_entry_cost(entry.hours, rate) for entry, rate in zip(entries, entry_rates)),
        Decimal("0"),
    )
    average_rate = sum(entry_rates, Decimal("0")) / len(entry_rates)

    return BillingTotals(
        total_hours=money(total_hours),
        total_amount=money(total_amount),
        average_hourly_rate=money(average_rate),
        entry_count=len(entries),
    )
