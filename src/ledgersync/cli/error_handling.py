"""CLI error rendering."""

import click

from ledgersync.domain.errors import BalanceError, DomainError, ParseError, UnbalancedJournalError
from ledgersync.utils.amount_parser import from_cents


def format_error(error: Exception) -> str:
    """One-line message for an error raised while running a command."""
    if isinstance(error, ParseError) and error.line_number > 0:
        return f"Malformed ledger at line {error.line_number}: {error.message}"
    if isinstance(error, BalanceError) and error.line_number is not None:
        return f"Unbalanced transaction at line {error.line_number}: {error.message}"
    if isinstance(error, UnbalancedJournalError):
        return f"Journal is unbalanced: debits minus credits is {from_cents(error.net_cents):,.2f}"
    return str(error)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError | OSError) -> None:
    """Render an error on stderr and exit with failure."""
    click.echo(f"Error: {format_error(error)}", err=True)
    ctx.exit(1)
