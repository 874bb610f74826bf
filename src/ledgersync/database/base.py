"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
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


class Database(ABC):
    """Abstract database interface for ledgersync."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Reference data
    @abstractmethod
    def create_rate(self, name: str, amount: Decimal, internal_only: bool = False) -> int:
        """Create a rate. Returns rate ID."""
        pass

    @abstractmethod
    def get_rate(self, rate_id: int) -> Optional[Rate]:
        """Get rate by ID."""
        pass

    @abstractmethod
    def create_project(
        self,
        name: str,
        active_start: datetime,
        active_end: datetime,
        billing_frequency: BillingFrequency = BillingFrequency.MONTHLY,
        internal: bool = False,
    ) -> int:
        """Create a project. Returns project ID."""
        pass

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[Project]:
        """Get project by ID."""
        pass

    @abstractmethod
    def create_billing_code(
        self,
        code: str,
        name: str,
        project_id: int,
        rate_id: int,
        active_start: datetime,
        active_end: datetime,
        internal_rate_id: Optional[int] = None,
        rounded_to: int = 15,
        budget_period: BudgetPeriod = BudgetPeriod.MONTHLY,
        budget_hours: Optional[Decimal] = None,
    ) -> int:
        """Create a billing code. Returns billing code ID."""
        pass

    @abstractmethod
    def get_billing_code(self, billing_code_id: int) -> Optional[BillingCode]:
        """Get billing code by ID."""
        pass

    # Entry operations
    @abstractmethod
    def create_entry(
        self,
        project_id: int,
        employee_id: int,
        billing_code_id: int,
        start: datetime,
        end: datetime,
        state: EntryState = EntryState.DRAFT,
        internal: bool = False,
        duration_minutes: Decimal = Decimal("0"),
        fee: int = 0,
        staffing_assignment_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create an entry. Returns entry ID."""
        pass

    @abstractmethod
    def get_entry(self, entry_id: int) -> Optional[Entry]:
        """Get entry by ID."""
        pass

    @abstractmethod
    def update_entry_association(
        self, entry_id: int, invoice_id: Optional[int], state: EntryState
    ) -> None:
        """Set an entry's invoice link and state."""
        pass

    @abstractmethod
    def list_entries(
        self,
        invoice_id: Optional[int] = None,
        billing_code_id: Optional[int] = None,
        bill_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        exclude_states: Sequence[EntryState] = (),
    ) -> list[Entry]:
        """List entries with optional filters.

        Args:
            invoice_id: Only entries linked to this invoice
            billing_code_id: Only entries for this billing code
            bill_id: Only entries linked to this bill
            start: Only entries starting at or after this instant
            end: Only entries starting before this instant
            exclude_states: Entry states to leave out
        """
        pass

    # Invoice operations
    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def list_invoices(
        self,
        project_id: int,
        invoice_type: Optional[InvoiceType] = None,
        states: Sequence[InvoiceState] = (),
        containing: Optional[datetime] = None,
    ) -> list[Invoice]:
        """List a project's invoices, oldest period first.

        Args:
            project_id: Project ID
            invoice_type: Optional AR/AP filter
            states: Only these states (all states when empty)
            containing: Only invoices whose [start, end) period contains this instant
        """
        pass

    @abstractmethod
    def rollover_invoices(
        self, pending_invoice_ids: Sequence[int], new_invoices: Sequence[dict]
    ) -> list[int]:
        """Move Draft invoices (and their entries) to Pending and create new invoices.

        Runs as a single transaction so the new Draft invoices only become
        visible together with the state cascade. Each dict in new_invoices
        holds name, project_id, period_start, period_end, type and state.

        Returns:
            IDs of the created invoices
        """
        pass

    @abstractmethod
    def transition_invoice(
        self,
        invoice_id: int,
        state: InvoiceState,
        entry_state: Optional[EntryState] = None,
        timestamp_field: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Set invoice state, optionally cascading entry state and stamping a time."""
        pass

    @abstractmethod
    def update_invoice_totals(
        self,
        invoice_id: int,
        total_hours: Decimal,
        total_fees: Decimal,
        total_adjustments: Decimal,
        total_amount: Decimal,
    ) -> None:
        """Persist invoice aggregate totals."""
        pass

    # Bill operations
    @abstractmethod
    def create_bill(
        self,
        name: str,
        employee_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> int:
        """Create a Draft bill. Returns bill ID."""
        pass

    @abstractmethod
    def get_bill(self, bill_id: int) -> Optional[Bill]:
        """Get bill by ID."""
        pass

    @abstractmethod
    def get_open_bill(self, employee_id: int) -> Optional[Bill]:
        """Get the employee's latest Draft bill."""
        pass

    @abstractmethod
    def list_bills(self, employee_id: Optional[int] = None) -> list[Bill]:
        """List bills ordered by period end, optionally for one employee."""
        pass

    @abstractmethod
    def assign_entries_to_bill(self, entry_ids: Sequence[int], bill_id: Optional[int]) -> None:
        """Link entries to a bill, or unlink them when bill_id is None."""
        pass

    @abstractmethod
    def update_bill_totals(
        self,
        bill_id: int,
        total_hours: Decimal,
        total_fees: Decimal,
        total_amount: Decimal,
    ) -> None:
        """Persist bill aggregate totals."""
        pass

    @abstractmethod
    def transition_bill(
        self,
        bill_id: int,
        state: BillState,
        timestamp_field: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Set bill state, optionally stamping accepted_at or closed_at."""
        pass

    # Journal operations
    @abstractmethod
    def create_journal(
        self,
        account: str,
        debit: int,
        credit: int,
        memo: str = "",
        sub_account: str = "",
        invoice_id: Optional[int] = None,
        bill_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create a journal leg. Returns journal ID."""
        pass

    @abstractmethod
    def list_journals(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        account: Optional[str] = None,
        invoice_id: Optional[int] = None,
    ) -> list[Journal]:
        """List journal legs ordered by creation time; bounds are inclusive."""
        pass

    @abstractmethod
    def get_journal_totals(
        self, account: Optional[str] = None, end: Optional[datetime] = None
    ) -> tuple[int, int]:
        """Return (sum of debits, sum of credits) in cents."""
        pass

    # Offline journal operations
    @abstractmethod
    def create_offline_journal(
        self,
        date: date,
        account: str,
        sub_account: str,
        description: str,
        debit: int,
        credit: int,
        content_hash: str,
        source: str = "beancount",
    ) -> int:
        """Create an offline journal row. Returns its ID."""
        pass

    @abstractmethod
    def offline_journal_exists(self, content_hash: str) -> bool:
        """Check whether a row with this content hash exists."""
        pass

    @abstractmethod
    def list_offline_journals(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[OfflineJournalStatus] = None,
    ) -> list[OfflineJournal]:
        """List offline journal rows ordered by date; bounds are inclusive."""
        pass

    @abstractmethod
    def update_offline_journal_status(
        self,
        offline_journal_ids: Sequence[int],
        status: OfflineJournalStatus,
        notes: Optional[str] = None,
    ) -> int:
        """Set review status on rows. Returns number of rows updated."""
        pass

    @abstractmethod
    def post_offline_journals(self, offline_journal_ids: Sequence[int]) -> list[int]:
        """Copy rows into the journal, dated at midnight of their date, and mark them posted.

        Runs as a single transaction.

        Returns:
            IDs of the created journal legs
        """
        pass
