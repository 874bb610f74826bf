"""Plain-text ledger commands."""

from typing import Sequence

import click
from ledgersync.cli.date_filters import resolve_cli_date_range
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.domain.balancer import validate_ledger
from ledgersync.domain.entities import LedgerEntry
from ledgersync.domain.errors import ParseError
from ledgersync.domain.ledger_parser import parse_ledger_file
from ledgersync.domain.unifier import beancount_to_entries


def load_ledger(ctx, ledger_file: str):
    """Parse a ledger file, exiting with an error message if it is malformed."""
    try:
        return parse_ledger_file(ledger_file)
    except (ParseError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)


def echo_entries(entries: Sequence[LedgerEntry]) -> None:
    """Print ledger entries as a table."""
    click.echo(f"\nFound {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}:")
    click.echo("-" * 118)
    click.echo(
        f"{'Date':<12} {'Source':<11} {'Account':<28} {'Sub-account':<20} "
        f"{'Debit':>12} {'Credit':>12}  {'Description':<20}"
    )
    click.echo("-" * 118)
    for entry in entries:
        click.echo(
            f"{str(entry.date):<12} {entry.source.value:<11} {entry.account[:28]:<28} "
            f"{entry.sub_account[:20]:<20} {entry.debit:>12,.2f} {entry.credit:>12,.2f}  "
            f"{entry.description[:20]:<20}"
        )


@click.group()
def ledger_group():
    """Inspect plain-text ledger files."""
    pass


@ledger_group.command("check")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def check_ledger(ctx, ledger_file: str):
    """Parse a ledger file and report every unbalanced transaction.

    Exits with status 1 if the file cannot be parsed or any transaction
    fails to balance.
    """
    ledger = load_ledger(ctx, ledger_file)
    errors = validate_ledger(ledger)

    click.echo(
        f"Parsed {len(ledger.transactions)} transactions, {len(ledger.accounts)} accounts, "
        f"{len(ledger.balances)} balance assertions"
    )
    if errors:
        click.echo(f"Found {len(errors)} balance error(s):", err=True)
        for error in errors:
            click.echo(f"  {error}", err=True)
        ctx.exit(1)

    click.echo("All transactions balance.")


@ledger_group.command("entries")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@click.option("--this-month", is_flag=True, help="Filter to current month")
@click.option("--last-month", is_flag=True, help="Filter to last month")
@click.option("--this-year", is_flag=True, help="Filter to current year")
@click.option("--last-year", is_flag=True, help="Filter to last year")
@click.pass_context
def list_entries(
    ctx,
    ledger_file: str,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    last_month: bool,
    this_year: bool,
    last_year: bool,
):
    """Show a ledger file as canonical debit/credit entries."""
    ledger = load_ledger(ctx, ledger_file)
    validate_ledger(ledger)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "last-month": last_month,
            "this-year": this_year,
            "last-year": last_year,
        },
    )

    entries = [
        entry
        for entry in beancount_to_entries(ledger)
        if (start is None or entry.date >= start) and (end is None or entry.date <= end)
    ]
    if not entries:
        click.echo("No entries found.")
        return

    echo_entries(entries)


def register_commands(cli: click.Group) -> None:
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
