"""Billing commands: unbilled time, statistics and invoice generation."""

import sys
from typing import Optional, Tuple

import click

from flowdesk.cli.context import AppContext, pass_app
from flowdesk.cli.error_handlers import EXIT_BILLING_FAILURES, with_error_handling
from flowdesk.cli.utils.formatters import (
    format_info,
    format_json,
    format_money,
    format_success,
    format_table,
    format_warning,
)
from flowdesk.writers.billing_report import BillingReportGenerator


@click.command(name="unbilled")
@click.option("--project", "project_id", type=int, default=None, help="Only this project id")
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Also write the entries to this CSV file",
)
@click.option(
    "--summary",
    is_flag=True,
    default=False,
    help="Show (and export) one row per project instead of one per entry",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@pass_app
def unbilled(
    app: AppContext,
    project_id: Optional[int],
    export_path: Optional[str],
    summary: bool,
    as_json: bool,
):
    """List billable time entries that are not on any invoice.

    Example:
        flowdesk unbilled
        flowdesk unbilled --project 2 --export unbilled.csv
    """
    with with_error_handling(app.debug):
        entries = app.billing_engine().list_unbilled_entries(project_id=project_id)
        report = BillingReportGenerator(entries)

        if export_path:
            path = report.export_csv(export_path, summary=summary)
            if not as_json:
                click.echo(format_success(f"Exported to {path}"))

        if as_json:
            click.echo(format_json(entries))
            return

        if not entries:
            click.echo(format_info("No unbilled time entries."))
            return

        if summary:
            df = report.project_summary()
            rows = [
                [r["Project ID"], r["Project"], r["Client"], r["Entries"],
                 f"{r['Hours']:.2f}", format_money(r["Amount"])]
                for r in df.to_dict("records")
            ]
            click.echo(
                format_table(
                    ["Project ID", "Project", "Client", "Entries", "Hours", "Amount"],
                    rows,
                    align_right=(0, 3, 4, 5),
                )
            )
        else:
            rows = [
                [e.id, e.date.isoformat(), e.project_name, e.client_name, e.user_name,
                 f"{e.hours:.2f}", format_money(e.hourly_rate), format_money(e.total_cost)]
                for e in entries
            ]
            click.echo(
                format_table(
                    ["ID", "Date", "Project", "Client", "User", "Hours", "Rate", "Total"],
                    rows,
                    align_right=(0, 5, 6, 7),
                )
            )

        total = sum(e.total_cost for e in entries)
        click.echo(format_success(f"{len(entries)} unbilled entries, {format_money(total)} to invoice"))


@click.command(name="stats")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@pass_app
def stats(app: AppContext, as_json: bool):
    """Show unbilled totals and this month's invoicing.

    Example:
        flowdesk stats --json
    """
    with with_error_handling(app.debug):
        billing_stats = app.billing_engine().compute_billing_stats()

        if as_json:
            click.echo(format_json(billing_stats))
            return

        rows = [
            ["Unbilled hours", f"{billing_stats.total_unbilled_hours:.2f}"],
            ["Unbilled amount", format_money(billing_stats.total_unbilled_amount)],
            ["Billed this month", format_money(billing_stats.total_billed_this_month)],
            ["Average hourly rate", format_money(billing_stats.average_hourly_rate)],
        ]
        click.echo(format_table(["Metric", "Value"], rows, align_right=(1,)))


@click.command(name="generate-invoice")
@click.argument("project_id", type=int)
@click.argument("entry_ids", type=int, nargs=-1, required=True)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@pass_app
def generate_invoice(
    app: AppContext, project_id: int, entry_ids: Tuple[int, ...], as_json: bool
):
    """Invoice the given time entries of a project.

    Example:
        flowdesk generate-invoice 1 4 5 6
    """
    with with_error_handling(app.debug):
        invoice = app.billing_engine().generate_invoice(project_id, list(entry_ids))

        if as_json:
            click.echo(format_json(invoice))
            return

        click.echo(
            format_success(
                f"Invoice {invoice.invoice_number} created: "
                f"{format_money(invoice.total_amount)} due {invoice.due_date.isoformat()} "
                f"({len(invoice.time_entry_ids)} time entries)"
            )
        )


@click.command(name="run-billing")
@click.option(
    "--policy",
    type=click.Choice(["skip", "abort"]),
    default=None,
    help="What to do when a project fails (default: BILLING_FAILURE_POLICY)",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@pass_app
def run_billing(app: AppContext, policy: Optional[str], as_json: bool):
    """Invoice all unbilled time, one invoice per project.

    Exits with status 7 when some projects could not be invoiced.

    Example:
        flowdesk run-billing
        flowdesk run-billing --policy abort --json
    """
    with with_error_handling(app.debug):
        result = app.billing_engine().run_automatic_billing(failure_policy=policy)

        if as_json:
            click.echo(format_json(result))
        elif result.invoices_generated == 0 and not result.has_failures and not result.skipped:
            click.echo(format_info("No unbilled time entries to invoice."))
        else:
            if result.invoices:
                rows = [
                    [i.invoice_number, i.project_id, len(i.time_entry_ids), format_money(i.amount)]
                    for i in result.invoices
                ]
                click.echo(
                    format_table(["Invoice", "Project", "Entries", "Amount"], rows, align_right=(1, 2, 3))
                )
            for skipped in result.skipped:
                click.echo(
                    format_info(
                        f"Project {skipped.project_id} left unbilled: "
                        f"{format_money(skipped.amount)} is below the minimum"
                    )
                )
            for failure in result.failures:
                click.echo(
                    format_warning(f"Project {failure.project_id} failed: {failure.message}")
                )
            click.echo(
                format_success(
                    f"{result.invoices_generated} invoices generated, "
                    f"total {format_money(result.total_amount)}"
                )
            )

        if result.has_failures:
            sys.exit(EXIT_BILLING_FAILURES)
