"""Invoice lifecycle commands."""

from datetime import date

import click
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.domain.billing import BillingService
from ledgersync.domain.errors import DomainError
from ledgersync.utils.date_parser import parse_date


@click.group()
def invoice_group():
    """Create invoices and move them through their lifecycle."""
    pass


@invoice_group.command("create")
@click.argument("project_id", type=int)
@click.option("--date", "on_date", help="Any date in the billing period (defaults to today)")
@click.pass_context
def create_invoice(ctx, project_id: int, on_date: str | None):
    """Roll a project over to a new billing period.

    Current Draft invoices become Pending and new Draft AR and AP invoices
    are created.
    """
    db = ctx.obj["db"]
    service = BillingService(db)

    period_date = date.today()
    if on_date:
        try:
            period_date = parse_date(on_date)
        except ValueError as e:
            click.echo(f"Error: Invalid date: {e}", err=True)
            ctx.exit(1)

    try:
        invoice_ids = service.create_invoice(project_id, period_date)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created invoices {', '.join(str(i) for i in invoice_ids)} for project {project_id}")


@invoice_group.command("list")
@click.argument("project_id", type=int)
@click.pass_context
def list_invoices(ctx, project_id: int):
    """List a project's invoices."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        invoices = service.list_invoices(project_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo(f"\nFound {len(invoices)} invoice(s):")
    click.echo("-" * 100)
    click.echo(f"{'ID':<6} {'Type':<4} {'State':<10} {'Start':<12} {'End':<12} {'Amount':>12}  {'Name':<30}")
    click.echo("-" * 100)
    for invoice in invoices:
        click.echo(
            f"{invoice.id:<6} {invoice.type.name:<4} {invoice.state.name:<10} "
            f"{invoice.period_start:%Y-%m-%d}   {invoice.period_end:%Y-%m-%d}   "
            f"{invoice.total_amount:>12,.2f}  {invoice.name[:30]:<30}"
        )


@invoice_group.command("approve")
@click.argument("invoice_id", type=int)
@click.pass_context
def approve_invoice(ctx, invoice_id: int):
    """Approve a Pending invoice and book the accrual."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        invoice = service.approve_invoice(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Approved invoice {invoice.id} ({invoice.total_amount:,.2f})")


@invoice_group.command("send")
@click.argument("invoice_id", type=int)
@click.pass_context
def send_invoice(ctx, invoice_id: int):
    """Mark an Approved invoice as sent."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        invoice = service.send_invoice(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Sent invoice {invoice.id}")


@invoice_group.command("pay")
@click.argument("invoice_id", type=int)
@click.pass_context
def pay_invoice(ctx, invoice_id: int):
    """Mark a Sent invoice as paid."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        invoice = service.mark_invoice_paid(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Marked invoice {invoice.id} as paid")


@invoice_group.command("void")
@click.argument("invoice_id", type=int)
@click.pass_context
def void_invoice(ctx, invoice_id: int):
    """Void an invoice and its entries."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        invoice = service.void_invoice(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Voided invoice {invoice.id}")


def register_commands(cli: click.Group) -> None:
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
