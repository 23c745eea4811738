"""FlowDesk CLI.

This module provides a command-line interface for the back office billing
engine and alert surface: database setup, unbilled time, billing
statistics, invoice generation and dashboard alerts.
"""

import logging
from typing import Optional

import click
from pydantic import ValidationError as PydanticValidationError

from flowdesk import __version__
from flowdesk.cli.commands import (
    alerts,
    generate_invoice,
    init_db,
    run_billing,
    stats,
    unbilled,
)
from flowdesk.cli.context import AppContext
from flowdesk.cli.error_handlers import ConfigurationError, handle_cli_error
from flowdesk.config.logging_config import LoggingConfig, configure_logging
from flowdesk.config.settings import reload_config
from flowdesk.utils.logging_utils import sanitize_sensitive_data

logger = logging.getLogger(__name__)


@click.group(help="FlowDesk CLI - Bill unbilled time and review back office alerts")
@click.version_option(version=__version__)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Load settings from this .env file",
)
@click.option("--debug", is_flag=True, default=False, help="Show full stack traces")
@click.pass_context
def cli(ctx: click.Context, env_file: Optional[str], debug: bool):
    """FlowDesk CLI main entry point."""
    try:
        config = reload_config(env_file)
        configure_logging(LoggingConfig.from_config(config))
    except (PydanticValidationError, ValueError) as e:
        error = ConfigurationError(
            str(e), recovery_hint="Check your environment variables and .env file"
        )
        ctx.exit(handle_cli_error(error, debug))

    logger.debug(f"Loaded configuration: {sanitize_sensitive_data(config.model_dump())}")

    app = AppContext(config, debug=debug or config.debug)
    ctx.obj = app
    ctx.call_on_close(app.close)


# Register commands
cli.add_command(init_db)
cli.add_command(unbilled)
cli.add_command(stats)
cli.add_command(generate_invoice)
cli.add_command(run_billing)
cli.add_command(alerts)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
