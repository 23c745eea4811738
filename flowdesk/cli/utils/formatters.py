"""Output formatting utilities for CLI."""

import json
from decimal import Decimal
from typing import Any, List, Sequence

import click

from flowdesk.models.base import ResponseModel


def format_success(message: str) -> str:
    """Format a success message with green color."""
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    """Format an error message with red color."""
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    """Format a warning message with yellow color."""
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    return click.style(f"ℹ {message}", fg="blue")


def format_money(amount: Decimal) -> str:
    """Format an amount with two decimals and thousands separators.

    Example:
        >>> format_money(Decimal("15000"))
        '15,000.00'
    """
    return f"{amount:,.2f}"


def format_json(payload: Any) -> str:
    """Render response models (or lists of them) as indented camelCase JSON.

    Args:
        payload: A ResponseModel, a list of ResponseModels, or plain data

    Returns:
        JSON string
    """
    if isinstance(payload, ResponseModel):
        payload = payload.to_api()
    elif isinstance(payload, list):
        payload = [p.to_api() if isinstance(p, ResponseModel) else p for p in payload]
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def format_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    max_width: int = 40,
    align_right: Sequence[int] = (),
) -> str:
    """Format data as a plain-text table.

    Args:
        headers: Column headers
        rows: Data rows; cells are converted with str()
        max_width: Cells longer than this are truncated
        align_right: Indices of columns to right-align (numbers)

    Returns:
        Formatted table as a string
    """
    if not headers:
        return ""

    cells: List[List[str]] = [[str(c)[:max_width] for c in row] for row in rows]
    widths = [
        max([len(h)] + [len(row[i]) for row in cells if i < len(row)])
        for i, h in enumerate(headers)
    ]

    def render(values: Sequence[str]) -> str:
        parts = []
        for i, width in enumerate(widths):
            value = values[i] if i < len(values) else ""
            parts.append(value.rjust(width) if i in align_right else value.ljust(width))
        return "| " + " | ".join(parts) + " |"

    separator = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    lines = [separator, render(list(headers)), separator]
    if cells:
        lines.extend(render(row) for row in cells)
        lines.append(separator)
    return "\n".join(lines)
