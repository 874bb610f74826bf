"""Main CLI entry point."""

import logging

import click
from ledgersync.database.factories import DB_PATH_ENV, create_sqlite_database
from ledgersync.domain.reconciliation import DEFAULT_CHECKING_ACCOUNT, ReconciliationSettings

# Import and register all commands at module level
from ledgersync.cli.commands import (
    bill,
    invoice,
    journal,
    ledger,
    reconcile,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERSYNC_DB_PATH environment variable)",
    envvar=DB_PATH_ENV,
)
@click.option(
    "--checking-account",
    default=DEFAULT_CHECKING_ACCOUNT,
    show_default=True,
    envvar="LEDGERSYNC_CHECKING_ACCOUNT",
    help="Ledger account holding the business checking balance",
)
@click.option("--verbose", "-v", is_flag=True, help="Log reconciliation and billing decisions")
@click.pass_context
def cli(ctx, db_path: str | None, checking_account: str, verbose: bool):
    """Ledgersync - Billing and ledger reconciliation.

    Turn time entries into invoices and reconcile the plain-text ledger
    against the journal booked by billing.
    """
    ctx.ensure_object(dict)

    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    ctx.obj["settings"] = ReconciliationSettings(checking_account=checking_account)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
ledger.register_commands(cli)
reconcile.register_commands(cli)
invoice.register_commands(cli)
journal.register_commands(cli)
bill.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
