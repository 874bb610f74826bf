"""Posting inference and balance validation."""

import logging
from dataclasses import replace
from decimal import Decimal

from ledgersync.domain.entities import BeancountTransaction, Ledger
from ledgersync.domain.errors import BalanceError

logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = Decimal("0.01")


def balance_postings(transaction: BeancountTransaction) -> None:
    """Fill in the one posting whose amount was omitted.

    A zero amount marks a posting for inference. Exactly one such posting is
    set to the negated sum of the others; none leaves the transaction as-is.

    Raises:
        BalanceError: If more than one posting needs an inferred amount
    """
    total = Decimal("0")
    zero_index = None

    for index, posting in enumerate(transaction.postings):
        if posting.amount == 0:
            if zero_index is not None:
                raise BalanceError(
                    "multiple postings with inferred amounts", transaction.line_number
                )
            zero_index = index
        else:
            total += posting.amount

    if zero_index is not None:
        posting = transaction.postings[zero_index]
        transaction.postings[zero_index] = replace(posting, amount=-total)


def validate_transaction(transaction: BeancountTransaction) -> None:
    """Balance a transaction and check its postings net to zero.

    Raises:
        BalanceError: If amounts cannot be inferred or the sum exceeds 0.01
    """
    balance_postings(transaction)

    total = sum((p.amount for p in transaction.postings), Decimal("0"))
    if abs(total) > BALANCE_TOLERANCE:
        raise BalanceError(
            f"transaction does not balance: sum={total:.2f}", transaction.line_number
        )


def validate_ledger(ledger: Ledger) -> list[BalanceError]:
    """Validate every transaction, collecting all errors.

    Returns:
        List of BalanceError, empty when the whole ledger balances
    """
    errors = []
    for transaction in ledger.transactions:
        try:
            validate_transaction(transaction)
        except BalanceError as e:
            errors.append(e)

    if errors:
        logger.warning("%d ledger validation errors found", len(errors))
        for error in errors:
            logger.warning("  - %s", error)
    return errors
