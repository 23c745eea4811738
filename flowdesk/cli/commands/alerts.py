"""Alert commands."""

import time
from typing import Optional

import click

from flowdesk.cli.context import AppContext, pass_app
from flowdesk.cli.error_handlers import with_error_handling
from flowdesk.cli.utils.formatters import (
    format_info,
    format_json,
    format_success,
    format_table,
    format_warning,
)
from flowdesk.models.alerts import DashboardAlerts
from flowdesk.services.alert_refresher import AlertRefresher


def _echo_alerts(alerts: DashboardAlerts, as_json: bool) -> None:
    if as_json:
        click.echo(format_json(alerts))
        return

    click.echo(format_info(f"Alerts at {alerts.generated_at:%Y-%m-%d %H:%M:%S}"))
    click.echo(
        format_table(
            ["Urgent", "Upcoming", "Overdue"],
            [[alerts.urgent, alerts.upcoming, alerts.overdue]],
            align_right=(0, 1, 2),
        )
    )
    for suggestion in alerts.suggestions:
        click.echo(format_warning(suggestion))


@click.command(name="alerts")
@click.option(
    "--notifications",
    "show_notifications",
    is_flag=True,
    default=False,
    help="List derived notifications instead of the alert summary",
)
@click.option(
    "--sync",
    is_flag=True,
    default=False,
    help="Store new notifications in the notification inbox",
)
@click.option(
    "--watch",
    is_flag=True,
    default=False,
    help="Keep refreshing the alert summary",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between refreshes (default: ALERT_REFRESH_SECONDS)",
)
@click.option(
    "--iterations",
    type=click.IntRange(min=1),
    default=None,
    help="Stop watching after this many refreshes",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@pass_app
def alerts(
    app: AppContext,
    show_notifications: bool,
    sync: bool,
    watch: bool,
    interval: Optional[float],
    iterations: Optional[int],
    as_json: bool,
):
    """Show urgent, upcoming and overdue counts with suggestions.

    Example:
        flowdesk alerts
        flowdesk alerts --notifications --sync
        flowdesk alerts --watch --interval 60
    """
    with with_error_handling(app.debug):
        service = app.alert_service()

        if sync:
            created = service.sync_notifications()
            click.echo(format_success(f"{created} new notifications stored"))

        if show_notifications:
            notifications = service.generate_notifications()
            if as_json:
                click.echo(format_json(notifications))
            elif not notifications:
                click.echo(format_info("No notifications."))
            else:
                rows = [[n.priority, n.type, n.title, n.message] for n in notifications]
                click.echo(
                    format_table(["Priority", "Type", "Title", "Message"], rows, max_width=60)
                )
            return

        if not watch:
            _echo_alerts(service.dashboard_alerts(), as_json)
            return

        refresher = AlertRefresher(
            service, interval_seconds=interval or app.config.alert_refresh_seconds
        )
        count = 0
        while iterations is None or count < iterations:
            if count:
                time.sleep(refresher.interval_seconds)
            _echo_alerts(refresher.latest(), as_json)
            count += 1
