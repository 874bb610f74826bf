"""Domain model entities for ledgersync.

These are pure data classes representing business concepts, independent of
database schema. The ledger-side types (Beancount*, Ledger, LedgerEntry) never
touch the database; the billing types mirror rows owned by the persistence
layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class InvoiceState(str, Enum):
    """Invoice lifecycle states."""

    DRAFT = "INVOICE_STATE_DRAFT"
    PENDING = "INVOICE_STATE_PENDING"
    APPROVED = "INVOICE_STATE_APPROVED"
    SENT = "INVOICE_STATE_SENT"
    PAID = "INVOICE_STATE_PAID"
    VOID = "INVOICE_STATE_VOID"


class EntryState(str, Enum):
    """Entry states; mirror the invoice state once associated."""

    UNAFFILIATED = "ENTRY_STATE_UNAFFILIATED"
    DRAFT = "ENTRY_STATE_DRAFT"
    PENDING = "ENTRY_STATE_PENDING"
    APPROVED = "ENTRY_STATE_APPROVED"
    SENT = "ENTRY_STATE_SENT"
    PAID = "ENTRY_STATE_PAID"
    VOID = "ENTRY_STATE_VOID"


class BillState(str, Enum):
    """Payroll bill states."""

    DRAFT = "BILL_STATE_DRAFT"
    ACCEPTED = "BILL_STATE_ACCEPTED"
    PAID = "BILL_STATE_PAID"
    VOID = "BILL_STATE_VOID"


class InvoiceType(str, Enum):
    """AR is owed by a client, AP is owed internally."""

    AR = "INVOICE_TYPE_ACCOUNTS_RECEIVABLE"
    AP = "INVOICE_TYPE_ACCOUNTS_PAYABLE"


class BillingFrequency(str, Enum):
    MONTHLY = "BILLING_TYPE_MONTHLY"
    PROJECT = "BILLING_TYPE_PROJECT"


class BudgetPeriod(str, Enum):
    MONTHLY = "BUDGET_PERIOD_MONTHLY"
    PROJECT = "BUDGET_PERIOD_PROJECT"


class LedgerSource(str, Enum):
    BEANCOUNT = "beancount"
    JOURNAL_DB = "journal_db"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class AssociationStatus(str, Enum):
    ASSOCIATED = "associated"
    UNAFFILIATED = "unaffiliated"
    REJECTED = "rejected"


class OfflineJournalStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    DUPLICATE = "duplicate"
    EXCLUDED = "excluded"
    POSTED = "posted"


class JournalAccount(str, Enum):
    """Canonical general-ledger account codes."""

    CASH = "CASH"
    ACCRUED_RECEIVABLES = "ACCRUED_RECEIVABLES"
    ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE"
    ACCRUED_PAYROLL = "ACCRUED_PAYROLL"
    ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"
    REVENUE = "REVENUE"
    ADJUSTMENT_REVENUE = "ADJUSTMENT_REVENUE"
    PAYROLL_EXPENSE = "PAYROLL_EXPENSE"
    OWNER_DISTRIBUTIONS = "OWNER_DISTRIBUTIONS"
    EQUIPMENT = "EQUIPMENT"
    EQUITY_POOL = "EQUITY_POOL"
    CREDIT_CARD_PAYABLE = "CREDIT_CARD_PAYABLE"
    EQUITY_OWNERSHIP = "EQUITY_OWNERSHIP"
    EQUIPMENT_EXPENSE = "EQUIPMENT_EXPENSE"
    OPERATING_EXPENSES_FEES = "OPERATING_EXPENSES_FEES"
    OPERATING_EXPENSES_LEGAL = "OPERATING_EXPENSES_LEGAL"
    OPERATING_EXPENSES_SAAS = "OPERATING_EXPENSES_SAAS"
    OPERATING_EXPENSES_TRAVEL = "OPERATING_EXPENSES_TRAVEL"
    OPERATING_EXPENSES_DISCRETIONARY = "OPERATING_EXPENSES_DISCRETIONARY"
    OPERATING_EXPENSES_TAXES = "OPERATING_EXPENSES_TAXES"
    OPERATING_EXPENSES_VENDORS = "OPERATING_EXPENSES_VENDORS"
    OPERATING_EXPENSES_OFFICE = "OPERATING_EXPENSES_OFFICE"
    OTHER_ASSETS = "OTHER_ASSETS"
    OTHER_LIABILITIES = "OTHER_LIABILITIES"
    OTHER_INCOME = "OTHER_INCOME"
    OTHER_EXPENSES = "OTHER_EXPENSES"
    EQUITY = "EQUITY"
    UNCLASSIFIED = "UNCLASSIFIED"


# Plain-text ledger


@dataclass(frozen=True)
class BeancountPosting:
    """One leg of a plain-text transaction. A zero amount means "infer me"."""

    account: str
    amount: Decimal
    currency: str = "USD"


@dataclass
class BeancountTransaction:
    """Parsed transaction header plus its postings.

    Mutable so the balancer can fill in the inferred posting in place.
    """

    date: date
    flag: str
    description: str
    line_number: int
    payee: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    postings: list[BeancountPosting] = field(default_factory=list)


@dataclass(frozen=True)
class BeancountAccount:
    """Account-open directive."""

    date: date
    name: str
    line_number: int
    currencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class BeancountBalance:
    """Point-in-time balance assertion."""

    date: date
    account: str
    amount: Decimal
    currency: str
    line_number: int


@dataclass
class Ledger:
    """Everything the parser recognised in one ledger file."""

    transactions: list[BeancountTransaction] = field(default_factory=list)
    accounts: list[BeancountAccount] = field(default_factory=list)
    balances: list[BeancountBalance] = field(default_factory=list)
    file_path: Optional[str] = None


@dataclass(frozen=True)
class LedgerEntry:
    """Source-agnostic ledger line with non-negative debit/credit."""

    date: date
    account: str
    sub_account: str
    description: str
    debit: Decimal
    credit: Decimal
    source: LedgerSource
    invoice_id: Optional[int] = None
    bill_id: Optional[int] = None
    tags: tuple[str, ...] = ()

    @property
    def net(self) -> Decimal:
        """Debit minus credit."""
        return self.debit - self.credit


# Billing


@dataclass(frozen=True)
class Rate:
    """Hourly rate."""

    id: int
    name: str
    amount: Decimal
    internal_only: bool = False


@dataclass(frozen=True)
class Project:
    """Unit of client work with an active window."""

    id: int
    name: str
    active_start: datetime
    active_end: datetime
    billing_frequency: BillingFrequency = BillingFrequency.MONTHLY
    internal: bool = False


@dataclass(frozen=True)
class BillingCode:
    """Project-scoped rate and rounding configuration."""

    id: int
    code: str
    name: str
    project_id: int
    rate_id: int
    active_start: datetime
    active_end: datetime
    internal_rate_id: Optional[int] = None
    rounded_to: int = 15
    budget_period: BudgetPeriod = BudgetPeriod.MONTHLY
    budget_hours: Optional[Decimal] = None


@dataclass(frozen=True)
class Entry:
    """One unit of billable or internal time."""

    id: int
    project_id: int
    employee_id: int
    billing_code_id: int
    start: datetime
    end: datetime
    state: EntryState
    internal: bool = False
    invoice_id: Optional[int] = None
    bill_id: Optional[int] = None
    staffing_assignment_id: Optional[int] = None
    duration_minutes: Decimal = Decimal("0")
    fee: int = 0
    notes: Optional[str] = None

    @property
    def duration(self):
        """Length of the entry as a timedelta."""
        return self.end - self.start


@dataclass(frozen=True)
class Invoice:
    """AR or AP invoice over a half-open period [period_start, period_end)."""

    id: int
    name: str
    project_id: int
    period_start: datetime
    period_end: datetime
    type: InvoiceType
    state: InvoiceState
    total_hours: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")
    total_adjustments: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    accepted_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    def contains(self, moment: datetime) -> bool:
        """Return True if moment falls in the invoice period."""
        return self.period_start <= moment < self.period_end


@dataclass(frozen=True)
class Bill:
    """Payroll bill collecting one employee's entries; totals in major units."""

    id: int
    name: str
    employee_id: int
    period_start: datetime
    period_end: datetime
    state: BillState
    total_hours: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    accepted_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Journal:
    """One signed leg of a double-entry posting, stored in cents."""

    id: int
    account: str
    sub_account: str
    memo: str
    debit: int
    credit: int
    created_at: datetime
    invoice_id: Optional[int] = None
    bill_id: Optional[int] = None
    recurring_bill_line_item_id: Optional[int] = None


@dataclass(frozen=True)
class OfflineJournal:
    """Ledger-sourced journal row staged for review."""

    id: int
    date: date
    account: str
    sub_account: str
    description: str
    debit: int
    credit: int
    content_hash: str
    source: str
    status: OfflineJournalStatus
    imported_at: datetime
    reviewed_at: Optional[datetime] = None
    notes: Optional[str] = None


# Results


@dataclass(frozen=True)
class AssociationResult:
    """Outcome of associating an entry with an invoice."""

    status: AssociationStatus
    invoice_id: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def associated(cls, invoice_id: int) -> "AssociationResult":
        return cls(AssociationStatus.ASSOCIATED, invoice_id=invoice_id)

    @classmethod
    def unaffiliated(cls) -> "AssociationResult":
        return cls(AssociationStatus.UNAFFILIATED)

    @classmethod
    def rejected(cls, reason: str) -> "AssociationResult":
        return cls(AssociationStatus.REJECTED, reason=reason)


@dataclass(frozen=True)
class PotentialDuplicate:
    """Advisory CASH-receipt pair flagged for human review."""

    beancount_entry: LedgerEntry
    journal_entry: LedgerEntry
    confidence: Confidence


@dataclass(frozen=True)
class ReconciliationReport:
    """Cash balance comparison between the two ledgers."""

    as_of_date: date
    cash_balance_beancount: Decimal
    cash_balance_journal: Decimal
    potential_duplicates: tuple[PotentialDuplicate, ...] = ()

    @property
    def difference(self) -> Decimal:
        """Plain-text balance minus journal balance."""
        return self.cash_balance_beancount - self.cash_balance_journal


@dataclass(frozen=True)
class ImportResult:
    """Offline journal import statistics."""

    imported: int
    skipped: int
    errors: tuple[str, ...] = ()
