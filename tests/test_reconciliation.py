"""Tests for ledger deduplication, merging and the reconciliation service."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from ledgersync.domain.entities import Confidence, LedgerEntry, LedgerSource, OfflineJournalStatus
from ledgersync.domain.ledger_parser import parse_ledger, parse_ledger_file
from ledgersync.domain.reconciliation import (
    CashDisposition,
    CashKeywordRule,
    ReconciliationService,
    ReconciliationSettings,
    amounts_match_within_tolerance,
    checking_balance,
    classify_cash_description,
    dates_within,
    deduplicate_beancount_entries,
    find_potential_duplicates,
    merge_ledger_entries,
)


def ledger_entry(account, debit="0", credit="0", day=date(2024, 3, 1), description="", sub_account=""):
    """Build a plain-text ledger entry."""
    return LedgerEntry(
        date=day,
        account=account,
        sub_account=sub_account,
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        source=LedgerSource.BEANCOUNT,
    )


def journal_entry(account, debit="0", credit="0", day=date(2024, 3, 1), description="journal"):
    """Build a journal-sourced ledger entry."""
    return LedgerEntry(
        date=day,
        account=account,
        sub_account="",
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        source=LedgerSource.JOURNAL_DB,
    )


class TestAmountsMatchWithinTolerance:
    """Test relative amount comparison."""

    def test_within_one_percent(self):
        assert amounts_match_within_tolerance(Decimal("101"), Decimal("100"), Decimal("0.01"))
        assert amounts_match_within_tolerance(Decimal("99"), Decimal("100"), Decimal("0.01"))

    def test_outside_one_percent(self):
        assert not amounts_match_within_tolerance(Decimal("102"), Decimal("100"), Decimal("0.01"))

    def test_negative_amounts(self):
        assert amounts_match_within_tolerance(Decimal("-100.50"), Decimal("-100"), Decimal("0.01"))

    def test_zero_reference(self):
        assert amounts_match_within_tolerance(Decimal("0"), Decimal("0"), Decimal("0.01"))
        assert not amounts_match_within_tolerance(Decimal("0.001"), Decimal("0"), Decimal("0.01"))


def test_dates_within_is_inclusive():
    """Test the day window includes its boundary in both directions."""
    assert dates_within(date(2024, 3, 1), date(2024, 3, 8), 7)
    assert dates_within(date(2024, 3, 8), date(2024, 3, 1), 7)
    assert not dates_within(date(2024, 3, 1), date(2024, 3, 9), 7)


class TestClassifyCashDescription:
    """Test keyword classification of CASH descriptions."""

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("PAYMENT TO CHASE CARD ENDING IN 1234", CashDisposition.CREDIT_CARD_PAYMENT),
            ("Chase Credit autopay", CashDisposition.CREDIT_CARD_PAYMENT),
            ("ACH PMNTS INITIAL FEE", CashDisposition.BANK_FEE),
            ("RTP/Same Day fee", CashDisposition.BANK_FEE),
            ("GRID - GRID RETAINER MARCH", CashDisposition.CLIENT_PAYMENT),
            ("Basic Online Payroll Payment 123", CashDisposition.PAYROLL),
            ("Online Transfer to Sav ...4321", CashDisposition.OWNER_TRANSFER),
            ("Coffee", CashDisposition.UNCLASSIFIED),
        ],
    )
    def test_keywords(self, description, expected):
        assert classify_cash_description(description, Decimal("10")) == expected

    def test_originator_receipt_is_client_payment(self):
        assert (
            classify_cash_description("ORIG CO NAME:ACME CORP", Decimal("5000"))
            == CashDisposition.CLIENT_PAYMENT
        )

    def test_originator_needs_a_receipt(self):
        assert (
            classify_cash_description("orig co name:acme corp", Decimal("0"))
            == CashDisposition.UNCLASSIFIED
        )

    def test_originator_excludes_payroll_and_accountant(self):
        assert (
            classify_cash_description("ORIG CO NAME:GUSTO NET PAY", Decimal("100"))
            == CashDisposition.UNCLASSIFIED
        )
        assert (
            classify_cash_description("orig co name:WCG CPAs refund", Decimal("100"))
            == CashDisposition.UNCLASSIFIED
        )

    def test_keep_rules_win_over_exclude_rules(self):
        # "card payment" is checked before the payroll keywords
        assert (
            classify_cash_description("card payment / payroll payment", Decimal("10"))
            == CashDisposition.CREDIT_CARD_PAYMENT
        )

    def test_disposition_keep(self):
        assert CashDisposition.BANK_FEE.keep is True
        assert CashDisposition.CREDIT_CARD_PAYMENT.keep is True
        assert CashDisposition.PAYROLL.keep is False
        assert CashDisposition.UNCLASSIFIED.keep is None


class TestDeduplicateCash:
    """Test CASH deduplication."""

    def test_client_receipt_excluded(self):
        entry = ledger_entry("CASH", debit="5000", description="orig co name: acme corp")
        journal = [journal_entry("CASH", debit="5000")]

        assert deduplicate_beancount_entries([entry], journal) == []

    def test_client_receipt_excluded_without_journal_match(self):
        entry = ledger_entry("CASH", debit="5000", description="Haberdash wire")

        assert deduplicate_beancount_entries([entry], []) == []

    def test_bank_fee_kept_even_with_match(self):
        entry = ledger_entry("CASH", credit="15", description="Standard ACH fee")
        journal = [journal_entry("CASH", credit="15")]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_unclassified_matched_by_amount_and_date(self):
        entry = ledger_entry("CASH", debit="1000", description="Deposit", day=date(2024, 3, 8))
        journal = [journal_entry("CASH", debit="1005", day=date(2024, 3, 1))]

        assert deduplicate_beancount_entries([entry], journal) == []

    def test_unclassified_outside_window_kept(self):
        entry = ledger_entry("CASH", debit="1000", description="Deposit", day=date(2024, 3, 9))
        journal = [journal_entry("CASH", debit="1000", day=date(2024, 3, 1))]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_unclassified_direction_must_match(self):
        entry = ledger_entry("CASH", debit="1000", description="Deposit")
        journal = [journal_entry("CASH", credit="1000")]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_unclassified_needs_journal_cash(self):
        entry = ledger_entry("CASH", debit="1000", description="Deposit")
        journal = [journal_entry("ACCOUNTS_RECEIVABLE", debit="1000")]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_comparison_failure_keeps_entry(self):
        entry = ledger_entry("CASH", debit="NaN", description="Deposit")
        journal = [journal_entry("CASH", debit="1000")]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_custom_rules(self):
        settings = ReconciliationSettings(
            cash_rules=(CashKeywordRule(CashDisposition.BANK_FEE, ("wire fee",)),)
        )
        entry = ledger_entry("CASH", credit="25", description="Incoming WIRE FEE")
        journal = [journal_entry("CASH", credit="25")]

        assert deduplicate_beancount_entries([entry], journal, settings) == [entry]


class TestDeduplicateOtherAccounts:
    """Test revenue, payroll and distribution deduplication."""

    @pytest.mark.parametrize("account", ["REVENUE", "ADJUSTMENT_REVENUE"])
    def test_revenue_always_excluded(self, account):
        entry = ledger_entry(account, credit="100")

        assert deduplicate_beancount_entries([entry], []) == []

    def test_payroll_matches_journal_payroll(self):
        entry = ledger_entry("PAYROLL_EXPENSE", debit="4000", day=date(2024, 3, 15))
        journal = [journal_entry("PAYROLL_EXPENSE", debit="4000", day=date(2024, 3, 1))]

        assert deduplicate_beancount_entries([entry], journal) == []

    def test_payroll_matches_journal_cash(self):
        entry = ledger_entry("PAYROLL_EXPENSE", debit="4000")
        journal = [journal_entry("CASH", credit="4010", day=date(2024, 3, 10))]

        assert deduplicate_beancount_entries([entry], journal) == []

    def test_payroll_outside_window_kept(self):
        entry = ledger_entry("PAYROLL_EXPENSE", debit="4000", day=date(2024, 3, 16))
        journal = [journal_entry("PAYROLL_EXPENSE", debit="4000", day=date(2024, 3, 1))]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_distribution_matches_journal_credit(self):
        entry = ledger_entry("OWNER_DISTRIBUTIONS", debit="2000")
        journal = [journal_entry("CASH", credit="2000", day=date(2024, 3, 12))]

        assert deduplicate_beancount_entries([entry], journal) == []

    def test_distribution_ignores_journal_debits(self):
        entry = ledger_entry("OWNER_DISTRIBUTIONS", debit="2000")
        journal = [journal_entry("CASH", debit="2000")]

        assert deduplicate_beancount_entries([entry], journal) == [entry]

    def test_other_accounts_kept(self):
        entry = ledger_entry("OPERATING_EXPENSES_FEES", debit="25.50")
        journal = [journal_entry("OPERATING_EXPENSES_FEES", debit="25.50")]

        assert deduplicate_beancount_entries([entry], journal) == [entry]


def test_merge_ledger_entries_orders_by_date():
    """Test merged entries are date ordered with journal entries first on ties."""
    journal = [
        journal_entry("CASH", debit="1", day=date(2024, 3, 5), description="j1"),
        journal_entry("CASH", debit="2", day=date(2024, 3, 1), description="j2"),
    ]
    beancount = [
        ledger_entry("OPERATING_EXPENSES_FEES", debit="3", day=date(2024, 3, 1), description="b1"),
        ledger_entry("OPERATING_EXPENSES_FEES", debit="4", day=date(2024, 2, 28), description="b2"),
    ]

    merged = merge_ledger_entries(journal, beancount)

    assert [e.description for e in merged] == ["b2", "j2", "b1", "j1"]


class TestFindPotentialDuplicates:
    """Test advisory CASH duplicate detection."""

    def test_high_confidence(self):
        entry = ledger_entry("CASH", debit="5000")
        journal = journal_entry("CASH", debit="5000")

        duplicates = find_potential_duplicates([entry], [journal])

        assert len(duplicates) == 1
        assert duplicates[0].confidence == Confidence.HIGH
        assert duplicates[0].beancount_entry == entry
        assert duplicates[0].journal_entry == journal

    def test_medium_confidence(self):
        entry = ledger_entry("CASH", debit="5020", day=date(2024, 3, 3))
        journal = journal_entry("CASH", debit="5000")

        duplicates = find_potential_duplicates([entry], [journal])

        assert [d.confidence for d in duplicates] == [Confidence.MEDIUM]

    def test_outside_window(self):
        entry = ledger_entry("CASH", debit="5000", day=date(2024, 3, 5))
        journal = journal_entry("CASH", debit="5000")

        assert find_potential_duplicates([entry], [journal]) == []

    def test_only_cash_receipts(self):
        entries = [
            ledger_entry("CASH", credit="5000"),
            ledger_entry("REVENUE", debit="5000"),
        ]
        journal = [journal_entry("CASH", debit="5000"), journal_entry("REVENUE", debit="5000")]

        assert find_potential_duplicates(entries, journal) == []


def test_checking_balance():
    """Test only checking postings on or before the date are summed."""
    ledger = parse_ledger(
        """\
2024-03-01 * "Deposit"
  Assets:Checking:ChaseBusiness  500.00 USD
  Equity:Ownership:Founder  -500.00 USD
2024-03-02 * "Spend"
  Expenses:Office:Supplies  20.00 USD
  Assets:Checking:ChaseBusiness  -20.00 USD
2024-03-03 * "Later"
  Assets:Checking:ChaseBusiness  1.00 USD
  Equity:Ownership:Founder  -1.00 USD
"""
    )

    assert checking_balance(ledger, "Assets:Checking:ChaseBusiness", date(2024, 3, 2)) == Decimal("480.00")
    assert checking_balance(ledger, "Assets:Checking:Other", date(2024, 3, 3)) == 0


class TestReconciliationService:
    """Test the reconciliation service against a database."""

    def test_combined_ledger(self, temp_db, reconciliation_service, fixtures_dir):
        temp_db.create_journal(
            account="CASH",
            debit=500000,
            credit=0,
            memo="Acme payment",
            created_at=datetime(2024, 1, 5, 10, 0),
        )
        temp_db.create_journal(
            account="ACCOUNTS_RECEIVABLE",
            debit=0,
            credit=500000,
            memo="Acme payment",
            created_at=datetime(2024, 1, 5, 10, 0),
        )
        # Outside the requested range
        temp_db.create_journal(
            account="CASH", debit=100, credit=0, created_at=datetime(2024, 2, 1, 0, 0)
        )
        ledger = parse_ledger_file(fixtures_dir / "sample.beancount")

        entries = reconciliation_service.combined_ledger(ledger, date(2024, 1, 1), date(2024, 1, 31))

        # Retainer receipt matches journal cash and revenue is excluded
        assert len(entries) == 6
        assert [e.source for e in entries[:2]] == [LedgerSource.JOURNAL_DB] * 2
        assert all(e.source == LedgerSource.BEANCOUNT for e in entries[2:])
        assert [e.account for e in entries[2:]] == [
            "OPERATING_EXPENSES_FEES",
            "CASH",
            "OPERATING_EXPENSES_OFFICE",
            "CASH",
        ]
        assert entries == sorted(entries, key=lambda e: e.date)

    def test_combined_ledger_includes_last_day(self, temp_db, reconciliation_service):
        temp_db.create_journal(
            account="CASH", debit=100, credit=0, created_at=datetime(2024, 1, 31, 23, 59)
        )
        ledger = parse_ledger("")

        entries = reconciliation_service.combined_ledger(ledger, date(2024, 1, 1), date(2024, 1, 31))

        assert len(entries) == 1
        assert entries[0].debit == Decimal("1.00")

    def test_combined_ledger_unbalanced_ledger_still_merges(
        self, reconciliation_service, fixtures_dir
    ):
        ledger = parse_ledger_file(fixtures_dir / "unbalanced.beancount")

        entries = reconciliation_service.combined_ledger(ledger, date(2024, 2, 1), date(2024, 2, 29))

        # The ambiguous transaction contributes nothing
        assert len(entries) == 4

    def test_reconciliation_report_difference(self, temp_db, reconciliation_service):
        temp_db.create_journal(
            account="CASH", debit=1200000, credit=0, created_at=datetime(2024, 3, 1, 12, 0)
        )
        temp_db.create_journal(
            account="ACCOUNTS_RECEIVABLE",
            debit=0,
            credit=1200000,
            created_at=datetime(2024, 3, 1, 12, 0),
        )
        # After the report date
        temp_db.create_journal(
            account="CASH", debit=50000, credit=0, created_at=datetime(2024, 3, 2, 9, 0)
        )
        ledger = parse_ledger(
            """\
2024-03-01 * "Opening deposit"
  Assets:Checking:ChaseBusiness  12,345.67 USD
  Equity:Ownership:Founder
2024-03-05 * "Later deposit"
  Assets:Checking:ChaseBusiness  100.00 USD
  Equity:Ownership:Founder
"""
        )

        report = reconciliation_service.reconciliation_report(ledger, date(2024, 3, 1))

        assert report.as_of_date == date(2024, 3, 1)
        assert report.cash_balance_beancount == Decimal("12345.67")
        assert report.cash_balance_journal == Decimal("12000.00")
        assert report.difference == Decimal("345.67")
        assert report.potential_duplicates == ()

    def test_reconciliation_report_counts_approved_rows(
        self, temp_db, reconciliation_service, fixtures_dir
    ):
        offline = reconciliation_service.offline
        offline.import_ledger((fixtures_dir / "sample.beancount").read_bytes())
        rows = offline.list_offline_journals(start_date=date(2024, 1, 5), end_date=date(2024, 1, 5))
        offline.update_status([row.id for row in rows], OfflineJournalStatus.APPROVED)
        ledger = parse_ledger_file(fixtures_dir / "sample.beancount")

        report = reconciliation_service.reconciliation_report(ledger, date(2024, 1, 31))

        assert report.cash_balance_beancount == Decimal("4900.00")
        assert report.cash_balance_journal == Decimal("5000.00")
        assert report.difference == Decimal("-100.00")
        assert [d.confidence for d in report.potential_duplicates] == [Confidence.HIGH]

        offline.post_to_general_ledger([row.id for row in rows])
        posted = reconciliation_service.reconciliation_report(ledger, date(2024, 1, 31))

        assert posted.cash_balance_journal == Decimal("5000.00")
        assert len(posted.potential_duplicates) == 1

    def test_reconciliation_report_duplicates(self, temp_db, reconciliation_service):
        temp_db.create_journal(
            account="CASH", debit=500000, credit=0, created_at=datetime(2024, 3, 1, 12, 0)
        )
        ledger = parse_ledger(
            """\
2024-03-02 * "Client wire"
  Assets:Checking:ChaseBusiness  5,000.00 USD
  Income:ClientBillables:Acme
"""
        )

        report = reconciliation_service.reconciliation_report(ledger, date(2024, 3, 31))

        assert len(report.potential_duplicates) == 1
        assert report.potential_duplicates[0].confidence == Confidence.MEDIUM
        assert report.difference == Decimal("0.00")

    def test_custom_checking_account(self, temp_db):
        service = ReconciliationService(
            temp_db, ReconciliationSettings(checking_account="Assets:Bank:Main")
        )
        ledger = parse_ledger(
            '2024-03-01 * "Deposit"\n  Assets:Bank:Main  10.00 USD\n  Equity:Ownership:Founder\n'
        )

        report = service.reconciliation_report(ledger, date(2024, 3, 1))

        assert report.cash_balance_beancount == Decimal("10.00")
