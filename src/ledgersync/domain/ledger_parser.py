"""Plain-text double-entry ledger parser.

This is a permissive line scanner, not a full grammar: it recognises
transaction headers, indented postings, ``open`` and ``balance`` directives,
and silently ignores anything else. The first malformed date, amount or
directive aborts the parse with a line-numbered ParseError.
"""

import logging
import re
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union

from ledgersync.domain.entities import (
    BeancountAccount,
    BeancountBalance,
    BeancountPosting,
    BeancountTransaction,
    Ledger,
)
from ledgersync.domain.errors import ParseError
from ledgersync.utils.amount_parser import parse_amount
from ledgersync.utils.date_parser import parse_ledger_date

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"

TRANSACTION_START = re.compile(r"^\d{4}-\d{2}-\d{2}\s+[*!]")
DATED_DIRECTIVE = re.compile(r"^\d[\d-]*\s+(open|balance|close|commodity|pad|note|event|price|document)\b")
QUOTED_STRING = re.compile(r'"([^"]*)"')
TAG = re.compile(r"#(\w+)")
METADATA_KEY = re.compile(r"^[a-z][\w-]*:$")
IGNORED_KEYWORDS = ("option", "plugin", "include", "pushtag", "poptag")


def parse_ledger(data: Union[bytes, str]) -> Ledger:
    """Parse ledger text into a Ledger.

    Args:
        data: Raw UTF-8 bytes or an already decoded string

    Returns:
        Ledger with transactions, account-open directives and balance assertions

    Raises:
        ParseError: On the first malformed date, amount or directive
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(0, f"ledger is not valid UTF-8: {e}")
    else:
        text = data

    ledger = Ledger()
    current: Optional[BeancountTransaction] = None

    for line_number, line in enumerate(text.splitlines(), start=1):
        trimmed = line.strip()

        if not trimmed or trimmed.startswith(";") or trimmed.startswith("#"):
            continue

        if line[0] in (" ", "\t"):
            if current is None:
                continue
            posting = _parse_posting(trimmed, line_number)
            if posting is not None:
                current.postings.append(posting)
            continue

        # Any non-indented line closes the open transaction
        if current is not None:
            ledger.transactions.append(current)
            current = None

        if TRANSACTION_START.match(trimmed):
            current = _parse_transaction_header(trimmed, line_number)
            continue

        directive = DATED_DIRECTIVE.match(trimmed)
        if directive is not None:
            keyword = directive.group(1)
            if keyword == "open":
                ledger.accounts.append(_parse_account_open(trimmed, line_number))
            elif keyword == "balance":
                ledger.balances.append(_parse_balance(trimmed, line_number))
            continue

        if trimmed.split()[0] in IGNORED_KEYWORDS:
            continue

        logger.debug("Ignoring unrecognised line %d: %s", line_number, trimmed)

    if current is not None:
        ledger.transactions.append(current)

    return ledger


def parse_ledger_file(file_path: Union[str, Path]) -> Ledger:
    """Read and parse a ledger file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ParseError: If the contents are malformed
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Ledger file not found: {file_path}")

    ledger = parse_ledger(path.read_bytes())
    ledger.file_path = str(path)
    logger.info(
        "Parsed %s: %d transactions, %d accounts, %d balance assertions",
        path,
        len(ledger.transactions),
        len(ledger.accounts),
        len(ledger.balances),
    )
    return ledger


def _parse_date(token: str, line_number: int):
    try:
        return parse_ledger_date(token)
    except ValueError as e:
        raise ParseError(line_number, str(e))


def _parse_amount(token: str, line_number: int):
    try:
        return parse_amount(token)
    except ValueError:
        raise ParseError(line_number, f"invalid amount '{token}'")


def _parse_transaction_header(line: str, line_number: int) -> BeancountTransaction:
    parts = line.split()
    txn_date = _parse_date(parts[0], line_number)
    flag = parts[1][0]
    rest = line.split(None, 1)[1][1:]

    quoted = QUOTED_STRING.findall(rest)
    # Two strings are payee and narration; the narration is the description
    payee = quoted[0] if len(quoted) >= 2 else None
    description = quoted[1] if len(quoted) >= 2 else (quoted[0] if quoted else "")

    return BeancountTransaction(
        date=txn_date,
        flag=flag,
        description=description,
        payee=payee,
        tags=TAG.findall(rest),
        line_number=line_number,
    )


def _parse_posting(line: str, line_number: int) -> Optional[BeancountPosting]:
    parts = line.split()
    account = parts[0]

    # Metadata lines ("invoice: 42") are not postings
    if METADATA_KEY.match(account):
        return None

    if len(parts) == 1:
        return BeancountPosting(account=account, amount=Decimal("0"), currency=DEFAULT_CURRENCY)

    amount = _parse_amount(parts[1], line_number)
    currency = parts[2] if len(parts) > 2 else DEFAULT_CURRENCY
    return BeancountPosting(account=account, amount=amount, currency=currency)


def _parse_account_open(line: str, line_number: int) -> BeancountAccount:
    parts = line.split()
    if len(parts) < 3:
        raise ParseError(line_number, "invalid account open directive")

    return BeancountAccount(
        date=_parse_date(parts[0], line_number),
        name=parts[2],
        currencies=tuple(c for token in parts[3:] for c in token.split(",") if c),
        line_number=line_number,
    )


def _parse_balance(line: str, line_number: int) -> BeancountBalance:
    parts = line.split()
    if len(parts) < 5:
        raise ParseError(line_number, "invalid balance assertion")

    return BeancountBalance(
        date=_parse_date(parts[0], line_number),
        account=parts[2],
        amount=_parse_amount(parts[3], line_number),
        currency=parts[4],
        line_number=line_number,
    )

