"""Billing domain service: invoice lifecycle, entry association, fees and payroll bills."""

import logging
import threading
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Optional, Sequence

from ledgersync.database.base import Database
from ledgersync.domain.budget import BudgetService
from ledgersync.domain.entities import (
    AssociationResult,
    Bill,
    BillState,
    BillingCode,
    BillingFrequency,
    Entry,
    EntryState,
    Invoice,
    InvoiceState,
    InvoiceType,
    JournalAccount,
    Project,
)
from ledgersync.domain.errors import (
    DomainError,
    NotFoundError,
    OverlapError,
    RangeError,
    StateTransitionError,
    UnbalancedJournalError,
    billing_code_not_found,
    bill_not_found,
    entry_not_found,
    entry_out_of_range,
    invoice_not_found,
    invoice_overlap,
    project_not_found,
)
from ledgersync.utils.amount_parser import CENT, from_cents, to_cents
from ledgersync.utils.date_parser import month_window

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal("60")

# (invoice type, state reached) -> (debit account, credit account)
JOURNAL_BOOKINGS = {
    (InvoiceType.AR, InvoiceState.APPROVED): (
        JournalAccount.ACCRUED_RECEIVABLES,
        JournalAccount.REVENUE,
    ),
    (InvoiceType.AR, InvoiceState.SENT): (
        JournalAccount.ACCOUNTS_RECEIVABLE,
        JournalAccount.ACCRUED_RECEIVABLES,
    ),
    (InvoiceType.AR, InvoiceState.PAID): (
        JournalAccount.CASH,
        JournalAccount.ACCOUNTS_RECEIVABLE,
    ),
    (InvoiceType.AP, InvoiceState.APPROVED): (
        JournalAccount.PAYROLL_EXPENSE,
        JournalAccount.ACCRUED_PAYROLL,
    ),
}

# Accrued payroll leaves through paid bills, not AP invoices.
BILL_PAYMENT = (JournalAccount.ACCRUED_PAYROLL, JournalAccount.CASH)


def compute_fee(duration_minutes: Decimal, rounded_to: int, hourly_rate: Decimal) -> Decimal:
    """Fee for a duration, rounded down to whole billing units.

    Args:
        duration_minutes: Worked minutes
        rounded_to: Billing unit in minutes; zero or less bills exact minutes
        hourly_rate: Rate per hour

    Returns:
        Fee in major units, quantized to cents
    """
    minutes = Decimal(duration_minutes)
    if minutes <= 0:
        return Decimal("0.00")

    if rounded_to > 0:
        units = (minutes / rounded_to).to_integral_value(rounding=ROUND_FLOOR)
        minutes = units * rounded_to

    hours = minutes / MINUTES_PER_HOUR
    return (hours * Decimal(hourly_rate)).quantize(CENT, rounding=ROUND_HALF_UP)


def duration_in_minutes(start: datetime, end: datetime) -> Decimal:
    """Length of [start, end) in minutes."""
    return Decimal(str((end - start).total_seconds())) / MINUTES_PER_HOUR


class BillingService:
    """Service driving invoices and entries through the billing lifecycle."""

    # Shared across instances so every caller in the process serializes on a project.
    _project_locks: dict[int, threading.RLock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, db: Database):
        """Initialize billing service.

        Args:
            db: Database instance
        """
        self.db = db

    def _project_lock(self, project_id: int) -> threading.RLock:
        with self._locks_guard:
            return self._project_locks.setdefault(project_id, threading.RLock())

    def _get_project(self, project_id: int) -> Project:
        project = self.db.get_project(project_id)
        if project is None:
            raise NotFoundError(project_not_found(project_id))
        return project

    def _get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        return invoice

    def _get_entry(self, entry_id: int) -> Entry:
        entry = self.db.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def _get_billing_code(self, billing_code_id: int) -> BillingCode:
        billing_code = self.db.get_billing_code(billing_code_id)
        if billing_code is None:
            raise NotFoundError(billing_code_not_found(billing_code_id))
        return billing_code

    def list_invoices(self, project_id: int) -> list[Invoice]:
        """List a project's invoices, oldest period first.

        Raises:
            NotFoundError: If the project doesn't exist
        """
        self._get_project(project_id)
        return self.db.list_invoices(project_id)

    # Invoice creation

    def invoice_period(self, project: Project, on_date: date) -> tuple[datetime, datetime]:
        """Half-open billing period for a project containing on_date."""
        if project.billing_frequency == BillingFrequency.PROJECT:
            return project.active_start, project.active_end
        return month_window(on_date)

    def create_invoice(self, project_id: int, on_date: date) -> list[int]:
        """Roll a project over to a new billing period.

        Every Draft invoice of the project (and its entries) moves to
        Pending, then a Draft AR and a Draft AP invoice are created for the
        period containing on_date. Both steps commit together.

        Args:
            project_id: Project ID
            on_date: Any date inside the new period

        Returns:
            IDs of the new AR and AP invoices

        Raises:
            NotFoundError: If the project doesn't exist
            OverlapError: If the latest Draft invoice ends after the new period starts
        """
        with self._project_lock(project_id):
            project = self._get_project(project_id)
            start, end = self.invoice_period(project, on_date)

            drafts = self.db.list_invoices(project_id, states=[InvoiceState.DRAFT])
            if drafts:
                latest = max(drafts, key=lambda invoice: invoice.period_end)
                if latest.period_end > start:
                    raise OverlapError(invoice_overlap(project_id, latest.period_end, start))

            ar_start = start
            if not self.db.list_invoices(project_id) and project.active_start < start:
                # First invoice of a new project also catches entries dated before this period.
                ar_start = project.active_start

            new_invoices = [
                self._invoice_values(project, ar_start, end, InvoiceType.AR),
                self._invoice_values(project, start, end, InvoiceType.AP),
            ]
            ids = self.db.rollover_invoices([d.id for d in drafts], new_invoices)

        logger.info(
            "Project %s rolled over: %d invoices to pending, created %s",
            project_id,
            len(drafts),
            ids,
        )
        return ids

    def _invoice_values(
        self, project: Project, start: datetime, end: datetime, invoice_type: InvoiceType
    ) -> dict:
        last_day = end - timedelta(microseconds=1)
        return {
            "name": f"{project.name}: {start:%m.%d.%Y}-{last_day:%m.%d.%Y}",
            "project_id": project.id,
            "period_start": start,
            "period_end": end,
            "type": invoice_type,
            "state": InvoiceState.DRAFT,
        }

    # State transitions

    def _transition(
        self,
        invoice_id: int,
        required_state: Optional[InvoiceState],
        target_state: InvoiceState,
        entry_state: Optional[EntryState],
        timestamp_field: Optional[str] = None,
    ) -> Invoice:
        invoice = self._get_invoice(invoice_id)
        if required_state is not None and invoice.state != required_state:
            raise StateTransitionError(invoice_id, invoice.state.name, required_state.name)

        self.db.transition_invoice(
            invoice_id,
            target_state,
            entry_state=entry_state,
            timestamp_field=timestamp_field,
        )
        logger.info("Invoice %s: %s -> %s", invoice_id, invoice.state.name, target_state.name)
        return self._get_invoice(invoice_id)

    def approve_invoice(self, invoice_id: int) -> Invoice:
        """Approve a Pending invoice and its entries.

        Totals are recalculated before approval so the booked accrual matches
        the entries.

        Raises:
            NotFoundError: If the invoice doesn't exist
            StateTransitionError: If the invoice is not Pending
        """
        invoice = self._get_invoice(invoice_id)
        if invoice.state != InvoiceState.PENDING:
            raise StateTransitionError(invoice_id, invoice.state.name, InvoiceState.PENDING.name)

        self.update_invoice_totals(invoice_id)
        invoice = self._transition(
            invoice_id,
            InvoiceState.PENDING,
            InvoiceState.APPROVED,
            EntryState.APPROVED,
            "accepted_at",
        )
        self._book(invoice)
        return invoice

    def send_invoice(self, invoice_id: int) -> Invoice:
        """Mark an Approved invoice as Sent. Entries keep their state.

        Raises:
            NotFoundError: If the invoice doesn't exist
            StateTransitionError: If the invoice is not Approved
        """
        invoice = self._transition(
            invoice_id, InvoiceState.APPROVED, InvoiceState.SENT, None, "sent_at"
        )
        self._book(invoice)
        return invoice

    def mark_invoice_paid(self, invoice_id: int) -> Invoice:
        """Mark a Sent invoice and its entries as Paid.

        Raises:
            NotFoundError: If the invoice doesn't exist
            StateTransitionError: If the invoice is not Sent
        """
        invoice = self._transition(
            invoice_id, InvoiceState.SENT, InvoiceState.PAID, EntryState.PAID, "closed_at"
        )
        self._book(invoice)
        return invoice

    def void_invoice(self, invoice_id: int) -> Invoice:
        """Void an invoice from any state, voiding its entries.

        Raises:
            NotFoundError: If the invoice doesn't exist
        """
        return self._transition(invoice_id, None, InvoiceState.VOID, EntryState.VOID, "closed_at")

    # Journal

    def _book(self, invoice: Invoice) -> list[int]:
        accounts = JOURNAL_BOOKINGS.get((invoice.type, invoice.state))
        if accounts is None:
            return []

        amount = to_cents(invoice.total_amount)
        if amount == 0:
            logger.info("Invoice %s has no amount; nothing booked", invoice.id)
            return []

        debit_account, credit_account = accounts
        ids = self._post_pair(
            debit_account,
            credit_account,
            amount,
            memo=f"{invoice.name} ({invoice.state.name.lower()})",
            sub_account=invoice.name,
            invoice_id=invoice.id,
        )
        logger.info(
            "Booked invoice %s: DR %s / CR %s %s",
            invoice.id,
            debit_account.value,
            credit_account.value,
            from_cents(amount),
        )
        return ids

    def _post_pair(
        self,
        debit_account: JournalAccount,
        credit_account: JournalAccount,
        amount: int,
        memo: str,
        sub_account: str,
        invoice_id: Optional[int] = None,
        bill_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> list[int]:
        return [
            self.db.create_journal(
                account=debit_account.value,
                debit=amount,
                credit=0,
                memo=memo,
                sub_account=sub_account,
                invoice_id=invoice_id,
                bill_id=bill_id,
                created_at=created_at,
            ),
            self.db.create_journal(
                account=credit_account.value,
                debit=0,
                credit=amount,
                memo=memo,
                sub_account=sub_account,
                invoice_id=invoice_id,
                bill_id=bill_id,
                created_at=created_at,
            ),
        ]

    def verify_journal_balance(self) -> int:
        """Check that journal debits and credits net to zero.

        Returns:
            Net balance in cents (always 0 when no error is raised)

        Raises:
            UnbalancedJournalError: If debits and credits differ
        """
        debits, credits = self.db.get_journal_totals()
        net = debits - credits
        logger.info(
            "Journal balance: debits=%s credits=%s net=%s",
            from_cents(debits),
            from_cents(credits),
            from_cents(net),
        )
        if net != 0:
            raise UnbalancedJournalError(net)
        return net

    # Entries

    def entry_fee(self, billing_code: BillingCode, duration_minutes: Decimal, internal: bool = False) -> Decimal:
        """Fee for a duration under a billing code.

        Internal entries use the billing code's internal rate when one is set.
        """
        rate_id = billing_code.rate_id
        if internal and billing_code.internal_rate_id is not None:
            rate_id = billing_code.internal_rate_id

        rate = self.db.get_rate(rate_id)
        if rate is None:
            raise NotFoundError(f"Rate {rate_id} not found")
        return compute_fee(duration_minutes, billing_code.rounded_to, rate.amount)

    def compute_internal_fee(self, entry_id: int) -> Decimal:
        """Fee for an entry at the billing code's internal rate (zero when none is set)."""
        entry = self._get_entry(entry_id)
        billing_code = self._get_billing_code(entry.billing_code_id)
        if billing_code.internal_rate_id is None:
            return Decimal("0.00")

        rate = self.db.get_rate(billing_code.internal_rate_id)
        if rate is None:
            raise NotFoundError(f"Rate {billing_code.internal_rate_id} not found")
        return compute_fee(entry.duration_minutes, billing_code.rounded_to, rate.amount)

    def create_entry(
        self,
        project_id: int,
        employee_id: int,
        billing_code_id: int,
        start: datetime,
        end: datetime,
        internal: bool = False,
        notes: Optional[str] = None,
        staffing_assignment_id: Optional[int] = None,
    ) -> tuple[int, AssociationResult]:
        """Record a time entry and associate it with an invoice.

        A warning is logged when the entry pushes its billing code over budget.

        Args:
            project_id: Project ID
            employee_id: Employee ID
            billing_code_id: Billing code ID
            start: Entry start
            end: Entry end
            internal: Whether the time is internal (AP) rather than client billable
            notes: Optional notes
            staffing_assignment_id: Optional staffing assignment link

        Returns:
            Tuple of (entry ID, association result)

        Raises:
            ValueError: If end is not after start
            NotFoundError: If the project, billing code or rate doesn't exist
            RangeError: If the entry starts outside the project window (entry stays Unaffiliated)
        """
        if end <= start:
            raise DomainError("Entry end must be after its start")

        self._get_project(project_id)
        billing_code = self._get_billing_code(billing_code_id)
        if billing_code.project_id != project_id:
            raise DomainError(
                f"Billing code {billing_code.code} does not belong to project {project_id}"
            )

        minutes = duration_in_minutes(start, end)
        fee = self.entry_fee(billing_code, minutes, internal)

        entry_id = self.db.create_entry(
            project_id=project_id,
            employee_id=employee_id,
            billing_code_id=billing_code_id,
            start=start,
            end=end,
            state=EntryState.UNAFFILIATED,
            internal=internal,
            duration_minutes=minutes,
            fee=to_cents(fee),
            staffing_assignment_id=staffing_assignment_id,
            notes=notes,
        )
        result = self.associate_entry(entry_id, project_id)
        if BudgetService(self.db).entry_exceeds_budget(entry_id):
            logger.warning("Entry %s puts billing code %s over budget", entry_id, billing_code.code)
        return entry_id, result

    def _eligible_invoices(
        self, project_id: int, invoice_type: InvoiceType, moment: datetime
    ) -> list[Invoice]:
        return [
            invoice
            for invoice in self.db.list_invoices(project_id, invoice_type, containing=moment)
            if invoice.state != InvoiceState.VOID
        ]

    @staticmethod
    def _select_invoice(invoices: Sequence[Invoice]) -> Optional[Invoice]:
        """Prefer a Pending invoice, else the last Draft one."""
        draft = None
        for invoice in invoices:
            if invoice.state == InvoiceState.PENDING:
                return invoice
            if invoice.state == InvoiceState.DRAFT:
                draft = invoice
        return draft

    def associate_entry(self, entry_id: int, project_id: int) -> AssociationResult:
        """Attach an entry to the invoice covering its start.

        Internal entries go to AP invoices, all others to AR. When no invoice
        covers the entry a rollover is attempted first.

        Args:
            entry_id: Entry ID
            project_id: Project ID

        Returns:
            AssociationResult: associated with an invoice ID, unaffiliated when
            no Draft or Pending invoice is available, or rejected when the
            rollover would overlap an existing Draft invoice

        Raises:
            NotFoundError: If the entry or project doesn't exist
            RangeError: If the entry starts outside the project window
        """
        with self._project_lock(project_id):
            entry = self._get_entry(entry_id)
            project = self._get_project(project_id)

            if entry.start < project.active_start or entry.start > project.active_end:
                raise RangeError(entry_out_of_range(entry_id, project_id))

            invoice_type = InvoiceType.AP if entry.internal else InvoiceType.AR
            candidates = self._eligible_invoices(project_id, invoice_type, entry.start)

            if not candidates:
                try:
                    self.create_invoice(project_id, entry.start)
                except OverlapError as e:
                    logger.warning("Entry %s not associated: %s", entry_id, e)
                    return AssociationResult.rejected(str(e))
                candidates = self._eligible_invoices(project_id, invoice_type, entry.start)

            invoice = self._select_invoice(candidates)
            if invoice is None:
                self.db.update_entry_association(entry_id, None, EntryState.UNAFFILIATED)
                logger.warning("Entry %s has no open invoice; marked unaffiliated", entry_id)
                return AssociationResult.unaffiliated()

            self.db.update_entry_association(entry_id, invoice.id, EntryState.DRAFT)
            logger.info("Entry %s associated with invoice %s", entry_id, invoice.id)
            return AssociationResult.associated(invoice.id)

    def update_invoice_totals(self, invoice_id: int) -> Invoice:
        """Recalculate hours, fees and amount from the invoice's non-void entries.

        Raises:
            NotFoundError: If the invoice doesn't exist
        """
        invoice = self._get_invoice(invoice_id)
        entries = self.db.list_entries(invoice_id=invoice_id, exclude_states=[EntryState.VOID])

        minutes = sum((entry.duration_minutes for entry in entries), Decimal("0"))
        hours = (minutes / MINUTES_PER_HOUR).quantize(CENT, rounding=ROUND_HALF_UP)
        fees = from_cents(sum(entry.fee for entry in entries))
        adjustments = invoice.total_adjustments

        self.db.update_invoice_totals(
            invoice_id,
            total_hours=hours,
            total_fees=fees,
            total_adjustments=adjustments,
            total_amount=fees + adjustments,
        )
        return self._get_invoice(invoice_id)

    # Bills

    def _get_bill(self, bill_id: int) -> Bill:
        bill = self.db.get_bill(bill_id)
        if bill is None:
            raise NotFoundError(bill_not_found(bill_id))
        return bill

    def list_bills(self, employee_id: Optional[int] = None) -> list[Bill]:
        """List bills ordered by period end."""
        return self.db.list_bills(employee_id)

    def payroll_fee(self, entry: Entry) -> Decimal:
        """Amount owed to the employee for an entry, at the internal rate when one is set."""
        billing_code = self._get_billing_code(entry.billing_code_id)
        return self.entry_fee(billing_code, entry.duration_minutes, internal=True)

    def generate_bills(self, invoice_id: int) -> list[int]:
        """Collect an invoice's unbilled entries onto one Draft bill per employee.

        Void entries and entries already on a bill are skipped. An employee's
        latest Draft bill is reused; otherwise a new bill is created for the
        month in which the invoice period ends.

        Args:
            invoice_id: Invoice ID

        Returns:
            IDs of the bills that received entries

        Raises:
            NotFoundError: If the invoice doesn't exist
        """
        invoice = self._get_invoice(invoice_id)
        entries = self.db.list_entries(invoice_id=invoice_id, exclude_states=[EntryState.VOID])

        by_employee: dict[int, list[Entry]] = {}
        for entry in entries:
            if entry.bill_id is not None:
                continue
            by_employee.setdefault(entry.employee_id, []).append(entry)

        if not by_employee:
            logger.info("Invoice %s has no unbilled entries", invoice_id)
            return []

        bill_ids = []
        for employee_id, employee_entries in by_employee.items():
            bill = self.db.get_open_bill(employee_id)
            if bill is None:
                bill = self._get_bill(self._create_bill(employee_id, invoice.period_end))
                logger.info("Created bill %s for employee %s", bill.id, employee_id)

            self.db.assign_entries_to_bill([e.id for e in employee_entries], bill.id)
            self.recalculate_bill_totals(bill.id)
            logger.info(
                "Added %d entries from invoice %s to bill %s",
                len(employee_entries),
                invoice_id,
                bill.id,
            )
            bill_ids.append(bill.id)

        return bill_ids

    def _create_bill(self, employee_id: int, period_end: datetime) -> int:
        start, end = month_window(period_end - timedelta(microseconds=1))
        last_day = end - timedelta(microseconds=1)
        return self.db.create_bill(
            name=f"Payroll employee {employee_id}: {start:%m.%d.%Y}-{last_day:%m.%d.%Y}",
            employee_id=employee_id,
            period_start=start,
            period_end=end,
        )

    def recalculate_bill_totals(self, bill_id: int) -> Bill:
        """Recalculate hours, fees and amount from the bill's non-void entries.

        Raises:
            NotFoundError: If the bill doesn't exist
        """
        self._get_bill(bill_id)
        entries = self.db.list_entries(bill_id=bill_id, exclude_states=[EntryState.VOID])

        minutes = sum((entry.duration_minutes for entry in entries), Decimal("0"))
        hours = (minutes / MINUTES_PER_HOUR).quantize(CENT, rounding=ROUND_HALF_UP)
        fees = sum((self.payroll_fee(entry) for entry in entries), Decimal("0.00"))

        self.db.update_bill_totals(bill_id, total_hours=hours, total_fees=fees, total_amount=fees)
        return self._get_bill(bill_id)

    def accept_bill(self, bill_id: int) -> Bill:
        """Accept a Draft bill so no further entries are added to it.

        Raises:
            NotFoundError: If the bill doesn't exist
            StateTransitionError: If the bill is not Draft
        """
        bill = self._get_bill(bill_id)
        if bill.state != BillState.DRAFT:
            raise StateTransitionError(bill_id, bill.state.name, BillState.DRAFT.name, entity="Bill")

        self.recalculate_bill_totals(bill_id)
        self.db.transition_bill(bill_id, BillState.ACCEPTED, "accepted_at")
        logger.info("Bill %s: DRAFT -> ACCEPTED", bill_id)
        return self._get_bill(bill_id)

    def mark_bill_paid(self, bill_id: int, paid_on: date) -> Bill:
        """Pay a Draft or Accepted bill and book the cash leaving accrued payroll.

        Totals are recalculated first. The payment is booked on paid_on,
        which may be in the past.

        Raises:
            NotFoundError: If the bill doesn't exist
            StateTransitionError: If the bill is Paid or Void
        """
        bill = self._get_bill(bill_id)
        if bill.state not in (BillState.DRAFT, BillState.ACCEPTED):
            raise StateTransitionError(
                bill_id, bill.state.name, BillState.ACCEPTED.name, entity="Bill"
            )

        bill = self.recalculate_bill_totals(bill_id)
        paid_at = datetime.combine(paid_on, datetime.min.time())
        self.db.transition_bill(bill_id, BillState.PAID, "closed_at", paid_at)
        logger.info("Bill %s: %s -> PAID on %s", bill_id, bill.state.name, paid_on)

        amount = to_cents(bill.total_amount)
        if amount == 0:
            logger.info("Bill %s has no amount; nothing booked", bill_id)
        else:
            debit_account, credit_account = BILL_PAYMENT
            self._post_pair(
                debit_account,
                credit_account,
                amount,
                memo=f"{bill.name} (paid)",
                sub_account=bill.name,
                bill_id=bill_id,
                created_at=paid_at,
            )
            logger.info("Booked bill %s payment: %s", bill_id, from_cents(amount))
        return self._get_bill(bill_id)

    def void_bill(self, bill_id: int) -> Bill:
        """Void an unpaid bill and release its entries for billing again.

        Raises:
            NotFoundError: If the bill doesn't exist
            StateTransitionError: If the bill is already Paid
        """
        bill = self._get_bill(bill_id)
        if bill.state == BillState.PAID:
            raise StateTransitionError(
                bill_id, bill.state.name, BillState.ACCEPTED.name, entity="Bill"
            )

        entries = self.db.list_entries(bill_id=bill_id)
        self.db.assign_entries_to_bill([e.id for e in entries], None)
        self.db.transition_bill(bill_id, BillState.VOID, "closed_at")
        logger.info("Bill %s: %s -> VOID, released %d entries", bill_id, bill.state.name, len(entries))
        return self._get_bill(bill_id)
