"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: string state columns become enums
and numeric columns become Decimal on the way out.
"""

from decimal import Decimal
from typing import Optional

from ledgersync.domain import entities as domain
from ledgersync.database.models import (
    Rate as ORMRate,
    Project as ORMProject,
    BillingCode as ORMBillingCode,
    Entry as ORMEntry,
    Bill as ORMBill,
    Invoice as ORMInvoice,
    Journal as ORMJournal,
    OfflineJournal as ORMOfflineJournal,
)


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _optional_decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def rate_to_domain(orm_rate: ORMRate) -> domain.Rate:
    """Convert SQLAlchemy Rate model to domain Rate entity."""
    return domain.Rate(
        id=orm_rate.id,
        name=orm_rate.name,
        amount=_decimal(orm_rate.amount),
        internal_only=orm_rate.internal_only,
    )


def project_to_domain(orm_project: ORMProject) -> domain.Project:
    """Convert SQLAlchemy Project model to domain Project entity."""
    return domain.Project(
        id=orm_project.id,
        name=orm_project.name,
        active_start=orm_project.active_start,
        active_end=orm_project.active_end,
        billing_frequency=domain.BillingFrequency(orm_project.billing_frequency),
        internal=orm_project.internal,
    )


def billing_code_to_domain(orm_code: ORMBillingCode) -> domain.BillingCode:
    """Convert SQLAlchemy BillingCode model to domain BillingCode entity."""
    return domain.BillingCode(
        id=orm_code.id,
        code=orm_code.code,
        name=orm_code.name,
        project_id=orm_code.project_id,
        rate_id=orm_code.rate_id,
        internal_rate_id=orm_code.internal_rate_id,
        rounded_to=orm_code.rounded_to,
        budget_period=domain.BudgetPeriod(orm_code.budget_period),
        budget_hours=_optional_decimal(orm_code.budget_hours),
        active_start=orm_code.active_start,
        active_end=orm_code.active_end,
    )


def entry_to_domain(orm_entry: ORMEntry) -> domain.Entry:
    """Convert SQLAlchemy Entry model to domain Entry entity."""
    return domain.Entry(
        id=orm_entry.id,
        project_id=orm_entry.project_id,
        employee_id=orm_entry.employee_id,
        billing_code_id=orm_entry.billing_code_id,
        start=orm_entry.start,
        end=orm_entry.end,
        state=domain.EntryState(orm_entry.state),
        internal=orm_entry.internal,
        invoice_id=orm_entry.invoice_id,
        bill_id=orm_entry.bill_id,
        staffing_assignment_id=orm_entry.staffing_assignment_id,
        duration_minutes=_decimal(orm_entry.duration_minutes),
        fee=orm_entry.fee,
        notes=orm_entry.notes,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        name=orm_invoice.name,
        project_id=orm_invoice.project_id,
        period_start=orm_invoice.period_start,
        period_end=orm_invoice.period_end,
        type=domain.InvoiceType(orm_invoice.type),
        state=domain.InvoiceState(orm_invoice.state),
        total_hours=_decimal(orm_invoice.total_hours),
        total_fees=_decimal(orm_invoice.total_fees),
        total_adjustments=_decimal(orm_invoice.total_adjustments),
        total_amount=_decimal(orm_invoice.total_amount),
        accepted_at=orm_invoice.accepted_at,
        sent_at=orm_invoice.sent_at,
        closed_at=orm_invoice.closed_at,
    )


def journal_to_domain(orm_journal: ORMJournal) -> domain.Journal:
    """Convert SQLAlchemy Journal model to domain Journal entity."""
    return domain.Journal(
        id=orm_journal.id,
        account=orm_journal.account,
        sub_account=orm_journal.sub_account,
        memo=orm_journal.memo,
        debit=orm_journal.debit,
        credit=orm_journal.credit,
        created_at=orm_journal.created_at,
        invoice_id=orm_journal.invoice_id,
        bill_id=orm_journal.bill_id,
        recurring_bill_line_item_id=orm_journal.recurring_bill_line_item_id,
    )


def offline_journal_to_domain(orm_offline: ORMOfflineJournal) -> domain.OfflineJournal:
    """Convert SQLAlchemy OfflineJournal model to domain OfflineJournal entity."""
    return domain.OfflineJournal(
        id=orm_offline.id,
        date=orm_offline.date,
        account=orm_offline.account,
        sub_account=orm_offline.sub_account,
        description=orm_offline.description,
        debit=orm_offline.debit,
        credit=orm_offline.credit,
        content_hash=orm_offline.content_hash,
        source=orm_offline.source,
        status=domain.OfflineJournalStatus(orm_offline.status),
        imported_at=orm_offline.imported_at,
        reviewed_at=orm_offline.reviewed_at,
        notes=orm_offline.notes,
    )


def bill_to_domain(orm_bill: ORMBill) -> domain.Bill:
    """Convert SQLAlchemy Bill model to domain Bill entity."""
    return domain.Bill(
        id=orm_bill.id,
        name=orm_bill.name,
        employee_id=orm_bill.employee_id,
        period_start=orm_bill.period_start,
        period_end=orm_bill.period_end,
        state=domain.BillState(orm_bill.state),
        total_hours=_decimal(orm_bill.total_hours),
        total_fees=_decimal(orm_bill.total_fees),
        total_amount=_decimal(orm_bill.total_amount),
        accepted_at=orm_bill.accepted_at,
        closed_at=orm_bill.closed_at,
    )
