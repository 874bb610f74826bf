"""Reconciliation between the plain-text ledger and the journal.

Journal rows are authoritative. Plain-text entries are deduplicated against
them before the two sources are merged, so activity already booked by billing
is not counted twice.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

from ledgersync.database.base import Database
from ledgersync.domain.balancer import validate_ledger
from ledgersync.domain.entities import (
    Confidence,
    JournalAccount,
    Ledger,
    LedgerEntry,
    PotentialDuplicate,
    ReconciliationReport,
)
from ledgersync.domain.offline_import import OfflineJournalService
from ledgersync.domain.unifier import beancount_to_entries, journal_to_entries
from ledgersync.utils.amount_parser import from_cents
from ledgersync.utils.date_parser import days_between, end_of_day

logger = logging.getLogger(__name__)

CASH = JournalAccount.CASH.value
REVENUE_ACCOUNTS = (JournalAccount.REVENUE.value, JournalAccount.ADJUSTMENT_REVENUE.value)
PAYROLL_MATCH_ACCOUNTS = (JournalAccount.PAYROLL_EXPENSE.value, CASH)
DEFAULT_CHECKING_ACCOUNT = "Assets:Checking:ChaseBusiness"


class CashDisposition(str, Enum):
    """What a CASH description says about where the movement is tracked."""

    CREDIT_CARD_PAYMENT = "credit_card_payment"
    BANK_FEE = "bank_fee"
    CLIENT_PAYMENT = "client_payment"
    PAYROLL = "payroll"
    OWNER_TRANSFER = "owner_transfer"
    UNCLASSIFIED = "unclassified"

    @property
    def keep(self) -> Optional[bool]:
        """True to always keep, False to always exclude, None to match against the journal."""
        if self in (CashDisposition.CREDIT_CARD_PAYMENT, CashDisposition.BANK_FEE):
            return True
        if self is CashDisposition.UNCLASSIFIED:
            return None
        return False


@dataclass(frozen=True)
class CashKeywordRule:
    """Case-insensitive substring rule mapping a description to a disposition.

    The rule fires when any keyword is present, none of the ``unless``
    keywords are present and, if ``requires_debit`` is set, the entry is a
    receipt.
    """

    disposition: CashDisposition
    keywords: tuple[str, ...]
    unless: tuple[str, ...] = ()
    requires_debit: bool = False

    def matches(self, description: str, debit: Decimal) -> bool:
        text = description.lower()
        if not any(keyword in text for keyword in self.keywords):
            return False
        if any(keyword in text for keyword in self.unless):
            return False
        return debit > 0 or not self.requires_debit


# First matching rule wins; keep rules come first.
DEFAULT_CASH_RULES: tuple[CashKeywordRule, ...] = (
    CashKeywordRule(
        CashDisposition.CREDIT_CARD_PAYMENT,
        ("payment to chase card", "chase credit", "card payment", "cc payment"),
    ),
    CashKeywordRule(
        CashDisposition.BANK_FEE,
        ("ach pmnts initial fee", "low value fee", "standard ach", "rtp/same day"),
    ),
    CashKeywordRule(
        CashDisposition.CLIENT_PAYMENT,
        ("grid - grid retainer", "twillory parabola", "haberdash"),
    ),
    CashKeywordRule(
        CashDisposition.CLIENT_PAYMENT,
        ("orig co name:",),
        unless=("gusto", "wcg cpas"),
        requires_debit=True,
    ),
    CashKeywordRule(
        CashDisposition.PAYROLL,
        ("basic online payroll payment", "payroll payment", "gusto payroll"),
    ),
    CashKeywordRule(
        CashDisposition.OWNER_TRANSFER,
        ("online transfer to sav", "transfer to savings", "owner draw"),
    ),
)


@dataclass(frozen=True)
class ReconciliationSettings:
    """Tunable matching parameters."""

    checking_account: str = DEFAULT_CHECKING_ACCOUNT
    amount_tolerance: Decimal = Decimal("0.01")
    cash_window_days: int = 7
    payroll_window_days: int = 14
    duplicate_window_days: int = 3
    cash_rules: tuple[CashKeywordRule, ...] = DEFAULT_CASH_RULES


def classify_cash_description(
    description: str,
    debit: Decimal,
    rules: Sequence[CashKeywordRule] = DEFAULT_CASH_RULES,
) -> CashDisposition:
    """Return the disposition of the first matching rule, or UNCLASSIFIED."""
    for rule in rules:
        if rule.matches(description, debit):
            return rule.disposition
    return CashDisposition.UNCLASSIFIED


def amounts_match_within_tolerance(
    amount1: Decimal, amount2: Decimal, tolerance: Decimal
) -> bool:
    """Check |amount1 - amount2| / |amount2| <= tolerance.

    A zero reference amount only matches an exact zero.
    """
    if amount2 == 0:
        return amount1 == 0
    return abs((amount1 - amount2) / amount2) <= tolerance


def dates_within(first: date, second: date, days: int) -> bool:
    """Check the dates are at most ``days`` calendar days apart (inclusive)."""
    return days_between(first, second) <= days


def _gross_amount(entry: LedgerEntry) -> Decimal:
    return entry.credit if entry.credit > 0 else entry.debit


def _should_exclude(
    entry: LedgerEntry,
    journal_entries: Sequence[LedgerEntry],
    settings: ReconciliationSettings,
) -> bool:
    tolerance = settings.amount_tolerance

    if entry.account == CASH:
        disposition = classify_cash_description(entry.description, entry.debit, settings.cash_rules)
        if disposition.keep is True:
            logger.info(
                "Keeping ledger CASH %s on %s: %s", entry.description, entry.date, disposition.value
            )
            return False
        if disposition.keep is False:
            logger.info(
                "Excluding ledger CASH %s on %s: %s tracked in journal",
                entry.description,
                entry.date,
                disposition.value,
            )
            return True

        for journal in journal_entries:
            if journal.account != CASH:
                continue
            if amounts_match_within_tolerance(
                entry.net, journal.net, tolerance
            ) and dates_within(entry.date, journal.date, settings.cash_window_days):
                logger.info(
                    "Duplicate CASH: ledger %s %s on %s matches journal %s",
                    entry.description,
                    entry.net,
                    entry.date,
                    journal.description,
                )
                return True
        logger.info("Keeping ledger CASH %s on %s: unique transaction", entry.description, entry.date)
        return False

    if entry.account in REVENUE_ACCOUNTS:
        logger.info(
            "Excluding ledger %s %s on %s: revenue tracked via invoices",
            entry.account,
            entry.description,
            entry.date,
        )
        return True

    if entry.account == JournalAccount.PAYROLL_EXPENSE.value:
        amount = _gross_amount(entry)
        for journal in journal_entries:
            if journal.account not in PAYROLL_MATCH_ACCOUNTS:
                continue
            journal_amount = _gross_amount(journal)
            if amount == 0 or journal_amount == 0:
                continue
            if amounts_match_within_tolerance(
                amount, journal_amount, tolerance
            ) and dates_within(entry.date, journal.date, settings.payroll_window_days):
                logger.info("Duplicate PAYROLL: ledger %s %s on %s", entry.description, amount, entry.date)
                return True
        return False

    if entry.account == JournalAccount.OWNER_DISTRIBUTIONS.value:
        for journal in journal_entries:
            if journal.account not in PAYROLL_MATCH_ACCOUNTS:
                continue
            if entry.debit == 0 or journal.credit == 0:
                continue
            if amounts_match_within_tolerance(
                entry.debit, journal.credit, tolerance
            ) and dates_within(entry.date, journal.date, settings.payroll_window_days):
                logger.info(
                    "Duplicate DISTRIBUTION: ledger %s %s on %s",
                    entry.description,
                    entry.debit,
                    entry.date,
                )
                return True
        return False

    return False


def deduplicate_beancount_entries(
    beancount_entries: Iterable[LedgerEntry],
    journal_entries: Sequence[LedgerEntry],
    settings: Optional[ReconciliationSettings] = None,
) -> list[LedgerEntry]:
    """Drop plain-text entries that are already represented in the journal.

    Journal entries are never filtered. An entry whose comparison fails is
    logged and kept.
    """
    settings = settings or ReconciliationSettings()
    kept = []

    for entry in beancount_entries:
        try:
            exclude = _should_exclude(entry, journal_entries, settings)
        except ArithmeticError:
            logger.exception("Could not compare ledger entry %s on %s; keeping it", entry.description, entry.date)
            exclude = False
        if not exclude:
            kept.append(entry)

    return kept


def merge_ledger_entries(
    journal_entries: Iterable[LedgerEntry], beancount_entries: Iterable[LedgerEntry]
) -> list[LedgerEntry]:
    """Journal entries first, then plain-text entries, stably sorted by date."""
    combined = list(journal_entries) + list(beancount_entries)
    return sorted(combined, key=lambda entry: entry.date)


def find_potential_duplicates(
    beancount_entries: Iterable[LedgerEntry],
    journal_entries: Sequence[LedgerEntry],
    settings: Optional[ReconciliationSettings] = None,
) -> list[PotentialDuplicate]:
    """Pair CASH receipts that look alike in both sources.

    Advisory only: nothing is removed. Amounts are compared relative to the
    journal debit.
    """
    settings = settings or ReconciliationSettings()
    duplicates = []

    for entry in beancount_entries:
        if entry.account != CASH or entry.debit == 0:
            continue

        for journal in journal_entries:
            if journal.account != CASH or journal.debit == 0:
                continue
            if not dates_within(entry.date, journal.date, settings.duplicate_window_days):
                continue
            if not amounts_match_within_tolerance(entry.debit, journal.debit, settings.amount_tolerance):
                continue

            if entry.date == journal.date and entry.debit == journal.debit:
                confidence = Confidence.HIGH
            else:
                confidence = Confidence.MEDIUM
            duplicates.append(PotentialDuplicate(entry, journal, confidence))

    return duplicates


def checking_balance(ledger: Ledger, checking_account: str, as_of: date) -> Decimal:
    """Sum of postings to the checking account dated on or before as_of."""
    balance = Decimal("0")
    for transaction in ledger.transactions:
        if transaction.date > as_of:
            continue
        for posting in transaction.postings:
            if posting.account == checking_account:
                balance += posting.amount
    return balance


class ReconciliationService:
    """Service combining and comparing the plain-text ledger with the journal."""

    def __init__(self, db: Database, settings: Optional[ReconciliationSettings] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            settings: Matching parameters (defaults apply when omitted)
        """
        self.db = db
        self.settings = settings or ReconciliationSettings()
        self.offline = OfflineJournalService(db)

    def combined_ledger(self, ledger: Ledger, start_date: date, end_date: date) -> list[LedgerEntry]:
        """Build the general ledger for an inclusive date range.

        Validation problems in the plain-text ledger are logged, not raised.

        Args:
            ledger: Parsed plain-text ledger
            start_date: First day included
            end_date: Last day included

        Returns:
            Journal entries (including approved offline rows not yet posted)
            followed by surviving plain-text entries, sorted by date
        """
        validate_ledger(ledger)

        beancount_entries = [
            entry
            for entry in beancount_to_entries(ledger)
            if start_date <= entry.date <= end_date
        ]

        journals = self.db.list_journals(
            start=datetime.combine(start_date, datetime.min.time()),
            end=end_of_day(end_date),
        )
        journals += self.offline.approved_journals(start_date, end_date)
        journal_entries = journal_to_entries(journals)

        kept = deduplicate_beancount_entries(beancount_entries, journal_entries, self.settings)
        logger.info(
            "Ledger deduplication: %d entries -> %d entries (removed %d duplicates)",
            len(beancount_entries),
            len(kept),
            len(beancount_entries) - len(kept),
        )

        return merge_ledger_entries(journal_entries, kept)

    def reconciliation_report(self, ledger: Ledger, as_of: date) -> ReconciliationReport:
        """Compare cash balances of both sources as of a date.

        Approved offline rows not yet posted count toward the journal side.

        Args:
            ledger: Parsed plain-text ledger
            as_of: Last day included

        Returns:
            ReconciliationReport with both balances and advisory duplicate pairs
        """
        validate_ledger(ledger)
        beancount_cash = checking_balance(ledger, self.settings.checking_account, as_of)

        cutoff = end_of_day(as_of)
        approved = self.offline.approved_journals(end_date=as_of)
        debits, credits = self.db.get_journal_totals(account=CASH, end=cutoff)
        debits += sum(row.debit for row in approved if row.account == CASH)
        credits += sum(row.credit for row in approved if row.account == CASH)
        journal_cash = from_cents(debits - credits)

        beancount_entries = [
            entry for entry in beancount_to_entries(ledger) if entry.date <= as_of
        ]
        journal_entries = journal_to_entries(self.db.list_journals(end=cutoff) + approved)
        duplicates = find_potential_duplicates(beancount_entries, journal_entries, self.settings)

        return ReconciliationReport(
            as_of_date=as_of,
            cash_balance_beancount=beancount_cash,
            cash_balance_journal=journal_cash,
            potential_duplicates=tuple(duplicates),
        )
