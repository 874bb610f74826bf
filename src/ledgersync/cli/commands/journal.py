"""Journal commands: offline import, review and balance verification."""

from pathlib import Path

import click
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.domain.billing import BillingService
from ledgersync.domain.entities import OfflineJournalStatus
from ledgersync.domain.errors import DomainError
from ledgersync.domain.offline_import import OfflineJournalService
from ledgersync.utils.amount_parser import from_cents
from ledgersync.utils.date_parser import parse_date

STATUS_CHOICES = [status.value for status in OfflineJournalStatus]


@click.group()
def journal_group():
    """Work with the journal and staged offline journal rows."""
    pass


@journal_group.command("import")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_ledger(ctx, ledger_file: str):
    """Stage a plain-text ledger as offline journal rows for review.

    Rows already imported (same date, accounts, description and amounts)
    are skipped.
    """
    db = ctx.obj["db"]
    service = OfflineJournalService(db)

    try:
        result = service.import_ledger(Path(ledger_file).read_bytes())
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {result.imported} rows")
    click.echo(f"  Skipped: {result.skipped} duplicates")
    if result.errors:
        click.echo(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            click.echo(f"    {error}", err=True)


@journal_group.command("offline")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Only rows with this review status")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@click.pass_context
def list_offline(ctx, status: str | None, start_date: str | None, end_date: str | None):
    """List staged offline journal rows."""
    db = ctx.obj["db"]
    service = OfflineJournalService(db)

    start = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    end = None
    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    rows = service.list_offline_journals(
        start_date=start,
        end_date=end,
        status=OfflineJournalStatus(status) if status else None,
    )
    if not rows:
        click.echo("No offline journal rows found.")
        return

    click.echo(f"\nFound {len(rows)} row(s):")
    click.echo("-" * 110)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Status':<15} {'Account':<28} {'Debit':>12} {'Credit':>12}  {'Description':<20}"
    )
    click.echo("-" * 110)
    for row in rows:
        click.echo(
            f"{row.id:<6} {str(row.date):<12} {row.status.value:<15} {row.account[:28]:<28} "
            f"{from_cents(row.debit):>12,.2f} {from_cents(row.credit):>12,.2f}  {row.description[:20]:<20}"
        )


@journal_group.command("review")
@click.argument("row_ids", nargs=-1, type=int, required=True)
@click.option("--status", type=click.Choice(STATUS_CHOICES), required=True, help="New review status")
@click.option("--notes", help="Reviewer notes")
@click.pass_context
def review_offline(ctx, row_ids: tuple[int, ...], status: str, notes: str | None):
    """Set the review status of offline journal rows."""
    db = ctx.obj["db"]
    service = OfflineJournalService(db)

    try:
        updated = service.update_status(list(row_ids), OfflineJournalStatus(status), notes)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated {updated} row(s) to {status}")


@journal_group.command("post")
@click.argument("row_ids", nargs=-1, type=int, required=True)
@click.pass_context
def post_offline(ctx, row_ids: tuple[int, ...]):
    """Book approved offline journal rows into the journal.

    Every row must be approved and mapped to a journal account.
    """
    db = ctx.obj["db"]
    service = OfflineJournalService(db)

    try:
        journal_ids = service.post_to_general_ledger(list(row_ids))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Posted {len(journal_ids)} journal leg(s)")


@journal_group.command("verify")
@click.pass_context
def verify_journal(ctx):
    """Check that journal debits equal credits."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        service.verify_journal_balance()
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("Journal is balanced.")


def register_commands(cli: click.Group) -> None:
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
