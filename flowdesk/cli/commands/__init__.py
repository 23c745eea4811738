"""CLI commands."""

from flowdesk.cli.commands.alerts import alerts
from flowdesk.cli.commands.billing import generate_invoice, run_billing, stats, unbilled
from flowdesk.cli.commands.db import init_db

__all__ = ["alerts", "generate_invoice", "init_db", "run_billing", "stats", "unbilled"]
