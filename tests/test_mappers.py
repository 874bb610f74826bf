"""Tests for database mappers."""

import pytest
from datetime import datetime, date
from decimal import Decimal

from ledgersync.database.models import (
    Bill as ORMBill,
    BillingCode as ORMBillingCode,
    Entry as ORMEntry,
    Invoice as ORMInvoice,
    Journal as ORMJournal,
    OfflineJournal as ORMOfflineJournal,
    Project as ORMProject,
    Rate as ORMRate,
)
from ledgersync.database.mappers import (
    bill_to_domain,
    billing_code_to_domain,
    entry_to_domain,
    invoice_to_domain,
    journal_to_domain,
    offline_journal_to_domain,
    project_to_domain,
    rate_to_domain,
)
from ledgersync.domain.entities import (
    Bill,
    BillState,
    BillingCode,
    BillingFrequency,
    BudgetPeriod,
    Entry,
    EntryState,
    Invoice,
    InvoiceState,
    InvoiceType,
    Journal,
    OfflineJournal,
    OfflineJournalStatus,
    Project,
    Rate,
)


class TestReferenceMappers:
    """Tests for rate, project and billing code mappers."""

    def test_rate_to_domain(self):
        """Test converting ORM Rate to domain Rate."""
        rate = rate_to_domain(ORMRate(id=1, name="Standard", amount=150.5, internal_only=True))

        assert isinstance(rate, Rate)
        assert rate.amount == Decimal("150.5")
        assert rate.internal_only is True

    def test_project_to_domain(self):
        """Test converting ORM Project to domain Project."""
        orm_project = ORMProject(
            id=3,
            name="Fixed Fee",
            active_start=datetime(2024, 1, 1),
            active_end=datetime(2024, 7, 1),
            billing_frequency="BILLING_TYPE_PROJECT",
            internal=False,
        )

        project = project_to_domain(orm_project)

        assert isinstance(project, Project)
        assert project.billing_frequency == BillingFrequency.PROJECT
        assert project.active_end == datetime(2024, 7, 1)

    def test_billing_code_to_domain(self):
        """Test converting ORM BillingCode with and without a budget."""
        orm_code = ORMBillingCode(
            id=4,
            code="ACME-DEV",
            name="Development",
            project_id=3,
            rate_id=1,
            internal_rate_id=None,
            rounded_to=6,
            budget_period="BUDGET_PERIOD_PROJECT",
            budget_hours=Decimal("40.00"),
            active_start=datetime(2024, 1, 1),
            active_end=datetime(2024, 7, 1),
        )

        billing_code = billing_code_to_domain(orm_code)

        assert isinstance(billing_code, BillingCode)
        assert billing_code.rounded_to == 6
        assert billing_code.budget_period == BudgetPeriod.PROJECT
        assert billing_code.budget_hours == Decimal("40.00")

        orm_code.budget_hours = None
        assert billing_code_to_domain(orm_code).budget_hours is None


class TestEntryMapper:
    """Tests for Entry mapper."""

    def test_entry_to_domain(self):
        """Test converting ORM Entry to domain Entry."""
        orm_entry = ORMEntry(
            id=7,
            project_id=3,
            employee_id=12,
            billing_code_id=4,
            start=datetime(2024, 1, 10, 9, 0),
            end=datetime(2024, 1, 10, 10, 30),
            internal=True,
            invoice_id=None,
            bill_id=4,
            state="ENTRY_STATE_UNAFFILIATED",
            duration_minutes=90.0,
            fee=15000,
        )

        entry = entry_to_domain(orm_entry)

        assert isinstance(entry, Entry)
        assert entry.state == EntryState.UNAFFILIATED
        assert entry.duration_minutes == Decimal("90")
        assert isinstance(entry.duration_minutes, Decimal)
        assert entry.internal is True
        assert entry.fee == 15000
        assert entry.bill_id == 4
        assert entry.duration.total_seconds() == 5400

    def test_unknown_state_rejected(self):
        """Test an unrecognised state string raises."""
        orm_entry = ORMEntry(
            id=1,
            project_id=1,
            employee_id=1,
            billing_code_id=1,
            start=datetime(2024, 1, 1),
            end=datetime(2024, 1, 1, 1),
            state="bogus",
        )

        with pytest.raises(ValueError):
            entry_to_domain(orm_entry)


class TestInvoiceMapper:
    """Tests for Invoice mapper."""

    def test_invoice_to_domain(self):
        """Test converting ORM Invoice to domain Invoice."""
        orm_invoice = ORMInvoice(
            id=9,
            name="Acme Rollout: 01.01.2024-01.31.2024",
            project_id=3,
            period_start=datetime(2024, 1, 1),
            period_end=datetime(2024, 2, 1),
            type="INVOICE_TYPE_ACCOUNTS_PAYABLE",
            state="INVOICE_STATE_SENT",
            total_hours=Decimal("12.50"),
            total_fees=Decimal("1250.00"),
            total_adjustments=None,
            total_amount=Decimal("1250.00"),
            sent_at=datetime(2024, 2, 2, 8, 0),
        )

        invoice = invoice_to_domain(orm_invoice)

        assert isinstance(invoice, Invoice)
        assert invoice.type == InvoiceType.AP
        assert invoice.state == InvoiceState.SENT
        assert invoice.total_hours == Decimal("12.50")
        assert invoice.total_adjustments == Decimal("0")
        assert invoice.sent_at == datetime(2024, 2, 2, 8, 0)
        assert invoice.accepted_at is None

    def test_bill_to_domain(self):
        """Test converting ORM Bill to domain Bill."""
        orm_bill = ORMBill(
            id=4,
            name="Payroll employee 12: 01.01.2024-01.31.2024",
            employee_id=12,
            period_start=datetime(2024, 1, 1),
            period_end=datetime(2024, 2, 1),
            state="BILL_STATE_ACCEPTED",
            total_hours=Decimal("3.00"),
            total_fees=Decimal("120.00"),
            total_amount=Decimal("120.00"),
            accepted_at=datetime(2024, 2, 1, 9, 0),
        )

        bill = bill_to_domain(orm_bill)

        assert isinstance(bill, Bill)
        assert bill.state == BillState.ACCEPTED
        assert bill.total_amount == Decimal("120.00")
        assert bill.accepted_at == datetime(2024, 2, 1, 9, 0)
        assert bill.closed_at is None


class TestJournalMappers:
    """Tests for Journal and OfflineJournal mappers."""

    def test_journal_to_domain(self):
        """Test converting ORM Journal to domain Journal."""
        orm_journal = ORMJournal(
            id=5,
            account="CASH",
            sub_account="Acme",
            memo="Acme (paid)",
            debit=10000,
            credit=0,
            invoice_id=9,
            created_at=datetime(2024, 3, 1, 12, 0),
        )

        journal = journal_to_domain(orm_journal)

        assert isinstance(journal, Journal)
        assert journal.debit == 10000
        assert journal.invoice_id == 9
        assert journal.bill_id is None

    def test_offline_journal_to_domain(self):
        """Test converting ORM OfflineJournal to domain OfflineJournal."""
        orm_offline = ORMOfflineJournal(
            id=2,
            date=date(2024, 1, 5),
            account="CASH",
            sub_account="ChaseBusiness",
            description="Deposit",
            debit=0,
            credit=2550,
            content_hash="f" * 64,
            source="beancount",
            status="excluded",
            imported_at=datetime(2024, 1, 6),
        )

        offline = offline_journal_to_domain(orm_offline)

        assert isinstance(offline, OfflineJournal)
        assert offline.status == OfflineJournalStatus.EXCLUDED
        assert offline.credit == 2550
        assert offline.reviewed_at is None
