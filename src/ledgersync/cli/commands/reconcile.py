"""Reconciliation commands."""

from datetime import date

import click
from ledgersync.cli.commands.ledger import echo_entries, load_ledger
from ledgersync.cli.date_filters import resolve_cli_date_range
from ledgersync.domain.reconciliation import ReconciliationService
from ledgersync.utils.date_parser import parse_date


@click.group()
def reconcile_group():
    """Compare the plain-text ledger with the journal."""
    pass


@reconcile_group.command("combined")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@click.option("--this-month", is_flag=True, help="Filter to current month")
@click.option("--last-month", is_flag=True, help="Filter to last month")
@click.option("--this-year", is_flag=True, help="Filter to current year")
@click.option("--last-year", is_flag=True, help="Filter to last year")
@click.pass_context
def combined_ledger(
    ctx,
    ledger_file: str,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    last_month: bool,
    this_year: bool,
    last_year: bool,
):
    """Show journal entries merged with non-duplicate ledger entries.

    Defaults to the current month when no range is given.

    Examples:
        ledgersync reconcile combined books.beancount --last-month
        ledgersync reconcile combined books.beancount --start-date 2024-01-01 --end-date 2024-03-31
    """
    db = ctx.obj["db"]
    service = ReconciliationService(db, ctx.obj["settings"])

    today = date.today()
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
        default_range=(today.replace(day=1), today),
    )
    if start is None or end is None:
        click.echo("Error: Both --start-date and --end-date are required", err=True)
        ctx.exit(1)

    ledger = load_ledger(ctx, ledger_file)
    entries = service.combined_ledger(ledger, start, end)
    if not entries:
        click.echo("No entries found.")
        return

    echo_entries(entries)


@reconcile_group.command("report")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", help="Report date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.pass_context
def reconciliation_report(ctx, ledger_file: str, as_of: str | None):
    """Compare cash balances and list possible double-counted receipts."""
    db = ctx.obj["db"]
    service = ReconciliationService(db, ctx.obj["settings"])

    as_of_date = date.today()
    if as_of:
        try:
            as_of_date = parse_date(as_of)
        except ValueError as e:
            click.echo(f"Error: Invalid date: {e}", err=True)
            ctx.exit(1)

    ledger = load_ledger(ctx, ledger_file)
    report = service.reconciliation_report(ledger, as_of_date)

    click.echo(f"\nReconciliation as of {report.as_of_date}")
    click.echo("=" * 50)
    click.echo(f"{'Ledger cash:':<20} ${report.cash_balance_beancount:>14,.2f}")
    click.echo(f"{'Journal cash:':<20} ${report.cash_balance_journal:>14,.2f}")
    click.echo(f"{'Difference:':<20} ${report.difference:>14,.2f}")

    if not report.potential_duplicates:
        click.echo("\nNo potential duplicates found.")
        return

    click.echo(f"\nPotential duplicates ({len(report.potential_duplicates)}):")
    click.echo("-" * 90)
    for duplicate in report.potential_duplicates:
        ledger_entry = duplicate.beancount_entry
        journal_entry = duplicate.journal_entry
        click.echo(
            f"[{duplicate.confidence.value:<6}] ledger {ledger_entry.date} ${ledger_entry.debit:,.2f} "
            f"{ledger_entry.description[:25]!r} ~ journal {journal_entry.date} "
            f"${journal_entry.debit:,.2f} {journal_entry.description[:25]!r}"
        )


def register_commands(cli: click.Group) -> None:
    """Register reconcile commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
