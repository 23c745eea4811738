"""Database setup command."""

import click

from flowdesk.cli.context import AppContext, pass_app
from flowdesk.cli.error_handlers import with_error_handling
from flowdesk.cli.utils.formatters import format_info, format_success
from flowdesk.db.seed import seed_sample_data
from flowdesk.utils.logging_utils import redact_database_url


@click.command(name="init-db")
@click.option(
    "--sample-data",
    is_flag=True,
    default=False,
    help="Insert two sample clients with projects, tasks and time entries",
)
@click.option(
    "--drop",
    is_flag=True,
    default=False,
    help="Drop existing tables first (destroys all data)",
)
@pass_app
def init_db(app: AppContext, sample_data: bool, drop: bool):
    """Create the database schema.

    Example:
        flowdesk init-db
        flowdesk init-db --sample-data
    """
    with with_error_handling(app.debug):
        click.echo(
            format_info(f"Initializing database {redact_database_url(app.config.database_url)}")
        )

        if drop:
            click.confirm("Drop all tables and data?", abort=True)
            app.store.drop_schema()

        app.store.create_schema()
        click.echo(format_success("Schema created"))

        if sample_data:
            counts = seed_sample_data(app.store)
            summary = ", ".join(f"{count} {name.replace('_', ' ')}" for name, count in counts.items())
            click.echo(format_success(f"Sample data inserted: {summary}"))
