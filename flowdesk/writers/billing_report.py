"""Billing report generator for unbilled time.

Builds pandas DataFrames from the engine's unbilled entry listing:
- Unbilled entries, one row per time entry
- Project summary, one row per project with hours and amount to invoice

Money and hours stay Decimal in both frames, so totals add up to the cent
exactly as the engine computes them. Both can be exported to CSV for use
outside the back office.
"""

from decimal import Decimal
from pathlib import Path
from typing import List, Union

import pandas as pd

from flowdesk.models.billing import UnbilledEntry

ENTRY_COLUMNS = [
    "Entry",
    "Date",
    "Project ID",
    "Project",
    "Client",
    "User",
    "Description",
    "Hours",
    "Rate",
    "Total",
]

SUMMARY_COLUMNS = [
    "Project ID",
    "Project",
    "Client",
    "Entries",
    "Hours",
    "Amount",
    "First date",
    "Last date",
]


def _decimal_sum(values: pd.Series) -> Decimal:
    return sum(values, Decimal("0.00"))


class BillingReportGenerator:
    """Generate unbilled time reports as pandas DataFrames.

    Example:
        >>> generator = BillingReportGenerator(engine.list_unbilled_entries())
        >>> generator.project_summary()[["Project", "Amount"]]
                 Project  Amount
        0  Website Corporativo  250.00
        1           App Mobile  320.00
    """

    def __init__(self, entries: List[UnbilledEntry]):
        """Initialize with unbilled entries.

        Args:
            entries: Entries as returned by BillingEngine.list_unbilled_entries
        """
        self.entries = entries

    def entries_frame(self) -> pd.DataFrame:
        """One row per unbilled entry, in listing order."""
        if not self.entries:
            return pd.DataFrame(columns=ENTRY_COLUMNS)

        rows = [
            {
                "Entry": entry.id,
                "Date": entry.date,
                "Project ID": entry.project_id,
                "Project": entry.project_name,
                "Client": entry.client_name,
                "User": entry.user_name,
                "Description": entry.description or "",
                "Hours": entry.hours,
                "Rate": entry.hourly_rate,
                "Total": entry.total_cost,
            }
            for entry in self.entries
        ]
        return pd.DataFrame(rows, columns=ENTRY_COLUMNS)

    def project_summary(self) -> pd.DataFrame:
        """Hours and amount to invoice per project, by ascending project id."""
        df = self.entries_frame()
        if len(df) == 0:
            return pd.DataFrame(columns=SUMMARY_COLUMNS)

        grouped = df.groupby(["Project ID", "Project", "Client"], as_index=False).agg(
            Entries=("Entry", "count"),
            Hours=("Hours", _decimal_sum),
            Amount=("Total", _decimal_sum),
            **{"First date": ("Date", "min"), "Last date": ("Date", "max")},
        )

        return grouped.sort_values("Project ID").reset_index(drop=True)[SUMMARY_COLUMNS]

    def export_csv(self, path: Union[str, Path], summary: bool = False) -> Path:
        """Write the entries (or the project summary) to a CSV file.

        Args:
            path: Destination file; parent directories are created
            summary: Export the project summary instead of the entries

        Returns:
            Path of the written file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        df = self.project_summary() if summary else self.entries_frame()
        df.to_csv(path, index=False)
        return path
