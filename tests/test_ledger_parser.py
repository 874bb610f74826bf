"""Tests for the plain-text ledger parser."""

from datetime import date
from decimal import Decimal

import pytest

from ledgersync.domain.balancer import validate_ledger
from ledgersync.domain.errors import ParseError
from ledgersync.domain.ledger_parser import parse_ledger, parse_ledger_file


SIMPLE_LEDGER = """\
2024-01-15 * "Acme" "Consulting" #proj
  Assets:Checking:ChaseBusiness  100.00 USD
  Income:ClientBillables:Acme
"""


def test_parse_transaction_header_and_postings():
    """Test payee, description, tags and postings of a simple transaction."""
    ledger = parse_ledger(SIMPLE_LEDGER)

    assert len(ledger.transactions) == 1
    txn = ledger.transactions[0]
    assert txn.date == date(2024, 1, 15)
    assert txn.flag == "*"
    assert txn.payee == "Acme"
    assert txn.description == "Consulting"
    assert txn.tags == ["proj"]
    assert txn.line_number == 1

    assert len(txn.postings) == 2
    assert txn.postings[0].account == "Assets:Checking:ChaseBusiness"
    assert txn.postings[0].amount == Decimal("100.00")
    assert txn.postings[0].currency == "USD"
    assert txn.postings[1].account == "Income:ClientBillables:Acme"
    assert txn.postings[1].amount == Decimal("0")


def test_inferred_posting_after_validation():
    """Test the omitted amount is filled in once the ledger is validated."""
    ledger = parse_ledger(SIMPLE_LEDGER)

    assert validate_ledger(ledger) == []
    assert ledger.transactions[0].postings[1].amount == Decimal("-100.00")


def test_single_quoted_string_is_description():
    """Test a header with one string has a description and no payee."""
    ledger = parse_ledger('2024-02-01 ! "Office supplies"\n  Expenses:Office:Supplies  12.00 USD\n')

    txn = ledger.transactions[0]
    assert txn.flag == "!"
    assert txn.description == "Office supplies"
    assert txn.payee is None


def test_header_without_strings():
    """Test a header with no quoted strings has an empty description."""
    ledger = parse_ledger("2024-02-01 *\n  Expenses:Office:Supplies  12.00 USD\n")

    assert ledger.transactions[0].description == ""


def test_tags_keep_order_and_duplicates():
    """Test tags are collected in order of appearance."""
    ledger = parse_ledger('2024-02-01 * "Trip" #travel #q1 #travel\n')

    assert ledger.transactions[0].tags == ["travel", "q1", "travel"]


def test_posting_amount_formats():
    """Test thousands separators and default currency."""
    text = """\
2024-03-01 * "Wire"
  Assets:Checking:ChaseBusiness  1,234.56
  Equity:Ownership:Founder  -1,234.56 USD
"""
    ledger = parse_ledger(text)

    postings = ledger.transactions[0].postings
    assert postings[0].amount == Decimal("1234.56")
    assert postings[0].currency == "USD"
    assert postings[1].amount == Decimal("-1234.56")


def test_comments_and_metadata_are_skipped():
    """Test comment lines and indented metadata are not postings."""
    text = """\
; opening comment
# another comment
2024-03-01 * "Lunch"
  ; indented comment
  receipt: "yes"
  Expenses:Discretionary:Meals  20.00 USD
  Assets:Checking:ChaseBusiness
"""
    ledger = parse_ledger(text)

    assert len(ledger.transactions) == 1
    accounts = [p.account for p in ledger.transactions[0].postings]
    assert accounts == ["Expenses:Discretionary:Meals", "Assets:Checking:ChaseBusiness"]


def test_non_indented_line_closes_transaction():
    """Test a directive ends the current transaction."""
    text = """\
2024-03-01 * "First"
  Expenses:Office:Supplies  5.00 USD
  Assets:Checking:ChaseBusiness
2024-03-01 open Expenses:Travel:Air
  Expenses:Travel:Air  99.00 USD
2024-03-02 * "Second"
  Expenses:Office:Supplies  7.00 USD
"""
    ledger = parse_ledger(text)

    assert len(ledger.transactions) == 2
    assert len(ledger.transactions[0].postings) == 2
    assert len(ledger.transactions[1].postings) == 1


def test_postings_before_any_transaction_are_ignored():
    """Test indented lines with no open transaction are dropped."""
    ledger = parse_ledger("  Assets:Checking:ChaseBusiness  5.00 USD\n")

    assert ledger.transactions == []


def test_open_and_balance_directives():
    """Test account opens and balance assertions are captured."""
    text = """\
option "title" "Books"
2024-01-01 open Assets:Checking:ChaseBusiness USD,EUR
2024-01-01 open Expenses:Fees:Stripe
2024-01-01 commodity USD
2024-12-31 close Expenses:Fees:Stripe
2024-01-31 balance Assets:Checking:ChaseBusiness  4,900.00 USD
"""
    ledger = parse_ledger(text)

    assert [a.name for a in ledger.accounts] == [
        "Assets:Checking:ChaseBusiness",
        "Expenses:Fees:Stripe",
    ]
    assert ledger.accounts[0].currencies == ("USD", "EUR")
    assert ledger.accounts[1].currencies == ()
    assert ledger.accounts[0].line_number == 2

    assert len(ledger.balances) == 1
    balance = ledger.balances[0]
    assert balance.date == date(2024, 1, 31)
    assert balance.account == "Assets:Checking:ChaseBusiness"
    assert balance.amount == Decimal("4900.00")
    assert balance.currency == "USD"


def test_bytes_input_with_bom():
    """Test UTF-8 bytes with a byte-order mark parse like text."""
    ledger = parse_ledger(b"\xef\xbb\xbf" + SIMPLE_LEDGER.encode("utf-8"))

    assert ledger.transactions[0].description == "Consulting"


def test_invalid_utf8_raises():
    """Test undecodable bytes raise ParseError."""
    with pytest.raises(ParseError):
        parse_ledger(b"2024-01-01 * \"\xff\"\n")


class TestParseErrors:
    """Test malformed input aborts with a line-numbered error."""

    def test_bad_transaction_date(self):
        text = '2024-01-01 * "ok"\n  Expenses:Office:Supplies  1.00 USD\n2024-13-45 * "bad"\n'
        with pytest.raises(ParseError) as exc_info:
            parse_ledger(text)

        assert exc_info.value.line_number == 3
        assert "line 3" in str(exc_info.value)

    def test_bad_posting_amount(self):
        text = '2024-01-01 * "bad"\n  Expenses:Office:Supplies  abc USD\n'
        with pytest.raises(ParseError) as exc_info:
            parse_ledger(text)

        assert exc_info.value.line_number == 2
        assert "abc" in str(exc_info.value)

    def test_open_missing_account(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ledger("2024-01-01 open\n")

        assert exc_info.value.line_number == 1

    def test_balance_missing_currency(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ledger("2024-01-31 balance Assets:Checking:ChaseBusiness 100.00\n")

        assert exc_info.value.line_number == 1

    def test_bad_balance_amount(self):
        with pytest.raises(ParseError):
            parse_ledger("2024-01-31 balance Assets:Checking:ChaseBusiness x.yz USD\n")


def test_parse_ledger_file(fixtures_dir):
    """Test parsing the sample ledger file."""
    path = fixtures_dir / "sample.beancount"
    ledger = parse_ledger_file(path)

    assert ledger.file_path == str(path)
    assert len(ledger.transactions) == 3
    assert len(ledger.accounts) == 3
    assert len(ledger.balances) == 1
    assert ledger.transactions[0].payee == "Acme"
    assert ledger.transactions[0].tags == ["acme", "retainer"]
    assert ledger.transactions[2].flag == "!"


def test_parse_ledger_file_missing(tmp_path):
    """Test a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        parse_ledger_file(tmp_path / "missing.beancount")
