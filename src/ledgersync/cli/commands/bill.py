"""Payroll bill commands."""

from datetime import date

import click
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.domain.billing import BillingService
from ledgersync.domain.errors import DomainError
from ledgersync.utils.date_parser import parse_date


@click.group()
def bill_group():
    """Collect entries onto payroll bills and pay them."""
    pass


@bill_group.command("generate")
@click.argument("invoice_id", type=int)
@click.pass_context
def generate_bills(ctx, invoice_id: int):
    """Put an invoice's unbilled entries on one bill per employee."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        bill_ids = service.generate_bills(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not bill_ids:
        click.echo(f"No unbilled entries on invoice {invoice_id}.")
        return
    click.echo(f"Updated bills {', '.join(str(i) for i in bill_ids)}")


@bill_group.command("list")
@click.option("--employee", "employee_id", type=int, help="Only bills for this employee")
@click.pass_context
def list_bills(ctx, employee_id: int | None):
    """List payroll bills."""
    db = ctx.obj["db"]
    service = BillingService(db)

    bills = service.list_bills(employee_id)
    if not bills:
        click.echo("No bills found.")
        return

    click.echo(f"\nFound {len(bills)} bill(s):")
    click.echo("-" * 90)
    click.echo(f"{'ID':<6} {'Employee':<9} {'State':<9} {'Hours':>8} {'Amount':>12}  {'Name':<40}")
    click.echo("-" * 90)
    for bill in bills:
        click.echo(
            f"{bill.id:<6} {bill.employee_id:<9} {bill.state.name:<9} "
            f"{bill.total_hours:>8,.2f} {bill.total_amount:>12,.2f}  {bill.name[:40]:<40}"
        )


@bill_group.command("accept")
@click.argument("bill_id", type=int)
@click.pass_context
def accept_bill(ctx, bill_id: int):
    """Accept a Draft bill."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        bill = service.accept_bill(bill_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Accepted bill {bill.id} ({bill.total_amount:,.2f})")


@bill_group.command("pay")
@click.argument("bill_id", type=int)
@click.option("--date", "paid_date", help="Payment date (defaults to today)")
@click.pass_context
def pay_bill(ctx, bill_id: int, paid_date: str | None):
    """Mark a bill as paid and book the payment."""
    db = ctx.obj["db"]
    service = BillingService(db)

    paid_on = date.today()
    if paid_date:
        try:
            paid_on = parse_date(paid_date)
        except ValueError as e:
            click.echo(f"Error: Invalid date: {e}", err=True)
            ctx.exit(1)

    try:
        bill = service.mark_bill_paid(bill_id, paid_on)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Paid bill {bill.id} ({bill.total_amount:,.2f}) on {paid_on}")


@bill_group.command("void")
@click.argument("bill_id", type=int)
@click.pass_context
def void_bill(ctx, bill_id: int):
    """Void an unpaid bill and release its entries."""
    db = ctx.obj["db"]
    service = BillingService(db)

    try:
        bill = service.void_bill(bill_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Voided bill {bill.id}")


def register_commands(cli: click.Group) -> None:
    """Register bill commands with main CLI."""
    cli.add_command(bill_group, name="bill")
