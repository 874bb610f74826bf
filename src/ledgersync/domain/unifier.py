"""Conversion of both ledger sources into LedgerEntry."""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from ledgersync.domain.account_mapping import (
    CATEGORY_INCOME,
    AccountMapper,
    account_category,
    extract_sub_account,
)
from ledgersync.domain.entities import Journal, Ledger, LedgerEntry, LedgerSource
from ledgersync.utils.amount_parser import from_cents

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def debit_credit_for(account: str, amount: Decimal) -> tuple[Decimal, Decimal]:
    """Split a signed posting amount into (debit, credit).

    Income postings credit on positive amounts; every other category debits,
    Liabilities and Equity included.
    """
    category = account_category(account)
    if category is None:
        logger.warning("Unrecognized account type for %s", account)

    if category == CATEGORY_INCOME:
        return (ZERO, amount) if amount > 0 else (-amount, ZERO)
    return (amount, ZERO) if amount > 0 else (ZERO, -amount)


def beancount_to_entries(
    ledger: Ledger, mapper: Optional[AccountMapper] = None
) -> list[LedgerEntry]:
    """Convert parsed transactions into canonical entries, one per posting.

    Zero-amount postings are skipped, so balance the ledger first if inferred
    postings should be included.
    """
    mapper = mapper or AccountMapper()
    entries = []

    for transaction in ledger.transactions:
        for posting in transaction.postings:
            if posting.amount == 0:
                continue

            debit, credit = debit_credit_for(posting.account, posting.amount)
            entries.append(
                LedgerEntry(
                    date=transaction.date,
                    account=mapper.map_account(posting.account),
                    sub_account=extract_sub_account(posting.account),
                    description=transaction.description,
                    debit=debit,
                    credit=credit,
                    source=LedgerSource.BEANCOUNT,
                    tags=tuple(transaction.tags),
                )
            )

    return entries


def journal_to_entries(journals: Iterable[Journal]) -> list[LedgerEntry]:
    """Convert journal rows (cents) into canonical entries (major units)."""
    return [
        LedgerEntry(
            date=journal.created_at.date(),
            account=journal.account,
            sub_account=journal.sub_account,
            description=journal.memo,
            debit=from_cents(journal.debit),
            credit=from_cents(journal.credit),
            source=LedgerSource.JOURNAL_DB,
            invoice_id=journal.invoice_id,
            bill_id=journal.bill_id,
        )
        for journal in journals
    ]
