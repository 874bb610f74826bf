"""Staging of plain-text ledger entries as offline journal rows."""

import hashlib
import logging
from datetime import date, datetime
from typing import Optional, Sequence, Union

from ledgersync.database.base import Database
from ledgersync.domain.balancer import validate_ledger
from ledgersync.domain.entities import (
    ImportResult,
    Journal,
    JournalAccount,
    LedgerEntry,
    OfflineJournal,
    OfflineJournalStatus,
)
from ledgersync.domain.errors import DomainError
from ledgersync.domain.ledger_parser import parse_ledger
from ledgersync.domain.unifier import beancount_to_entries
from ledgersync.utils.amount_parser import to_cents

logger = logging.getLogger(__name__)


def offline_journal_hash(
    entry_date: date,
    account: str,
    sub_account: str,
    description: str,
    debit: int,
    credit: int,
) -> str:
    """SHA-256 of ``date|account|sub_account|description|debit|credit`` (amounts in cents)."""
    data = f"{entry_date:%Y-%m-%d}|{account}|{sub_account}|{description}|{debit}|{credit}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def entry_hash(entry: LedgerEntry) -> str:
    """Content hash of a ledger entry."""
    return offline_journal_hash(
        entry.date,
        entry.account,
        entry.sub_account,
        entry.description,
        to_cents(entry.debit),
        to_cents(entry.credit),
    )


class OfflineJournalService:
    """Service for importing and reviewing offline journal rows."""

    def __init__(self, db: Database):
        """Initialize offline journal service.

        Args:
            db: Database instance
        """
        self.db = db

    def import_ledger(self, data: Union[bytes, str]) -> ImportResult:
        """Import ledger text as pending offline journal rows.

        Rows whose content hash already exists are skipped, so importing the
        same file twice is harmless.

        Args:
            data: Ledger text

        Returns:
            ImportResult with imported and skipped counts and per-row errors

        Raises:
            ParseError: If the ledger text is malformed
            DomainError: If the ledger has no entries, or every row failed
        """
        ledger = parse_ledger(data)
        validate_ledger(ledger)
        entries = beancount_to_entries(ledger)
        if not entries:
            raise DomainError("No entries found in ledger")

        imported = 0
        skipped = 0
        errors = []

        for entry in entries:
            content_hash = entry_hash(entry)
            if self.db.offline_journal_exists(content_hash):
                skipped += 1
                continue

            try:
                self.db.create_offline_journal(
                    date=entry.date,
                    account=entry.account,
                    sub_account=entry.sub_account,
                    description=entry.description,
                    debit=to_cents(entry.debit),
                    credit=to_cents(entry.credit),
                    content_hash=content_hash,
                )
            except Exception as e:
                logger.error("Error importing offline journal (hash: %s): %s", content_hash[:8], e)
                errors.append(f"{entry.date} {entry.description}: {e}")
                continue
            imported += 1

        logger.info(
            "Import complete: %d imported, %d skipped (duplicates), %d failed",
            imported,
            skipped,
            len(errors),
        )
        if imported == 0 and errors:
            raise DomainError(f"Failed to import any entries ({len(errors)} failures)")

        return ImportResult(imported=imported, skipped=skipped, errors=tuple(errors))

    def list_offline_journals(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[OfflineJournalStatus] = None,
    ) -> list[OfflineJournal]:
        """List offline journal rows, optionally filtered by inclusive date range and status."""
        return self.db.list_offline_journals(start=start_date, end=end_date, status=status)

    def update_status(
        self,
        offline_journal_ids: Sequence[int],
        status: OfflineJournalStatus,
        notes: Optional[str] = None,
    ) -> int:
        """Set the review status of offline journal rows.

        Posted rows are final and rows only become posted through
        post_to_general_ledger.

        Returns:
            Number of rows updated

        Raises:
            DomainError: If no IDs are given, the status is posted or a row is already posted
        """
        if not offline_journal_ids:
            raise DomainError("No offline journal IDs given")
        if status == OfflineJournalStatus.POSTED:
            raise DomainError("Offline journal rows are posted to the journal, not by review")

        wanted = set(offline_journal_ids)
        posted = [
            row.id
            for row in self.db.list_offline_journals(status=OfflineJournalStatus.POSTED)
            if row.id in wanted
        ]
        if posted:
            raise DomainError(f"Offline journal rows already posted: {', '.join(str(i) for i in posted)}")
        return self.db.update_offline_journal_status(offline_journal_ids, status, notes)

    def approved_journals(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[Journal]:
        """Approved rows not yet posted, in journal shape and dated at midnight of their date."""
        rows = self.db.list_offline_journals(
            start=start_date, end=end_date, status=OfflineJournalStatus.APPROVED
        )
        return [
            Journal(
                id=row.id,
                account=row.account,
                sub_account=row.sub_account,
                memo=row.description,
                debit=row.debit,
                credit=row.credit,
                created_at=datetime.combine(row.date, datetime.min.time()),
            )
            for row in rows
        ]

    def post_to_general_ledger(self, offline_journal_ids: Sequence[int]) -> list[int]:
        """Book approved rows into the journal and mark them posted.

        Journal legs are dated at midnight of the row's date. Nothing is
        booked unless every row is approved and categorized.

        Returns:
            IDs of the created journal legs

        Raises:
            DomainError: If no IDs are given, or a row is missing, not approved or unclassified
        """
        if not offline_journal_ids:
            raise DomainError("No offline journal IDs given")

        wanted = set(offline_journal_ids)
        rows = [row for row in self.db.list_offline_journals() if row.id in wanted]
        missing = wanted - {row.id for row in rows}
        if missing:
            raise DomainError(f"Offline journal rows not found: {', '.join(str(i) for i in sorted(missing))}")

        for row in rows:
            if row.status != OfflineJournalStatus.APPROVED:
                raise DomainError(f"Offline journal {row.id} is not approved (status: {row.status.value})")
            if row.account == JournalAccount.UNCLASSIFIED.value:
                raise DomainError(f"Offline journal {row.id} is not categorized")

        journal_ids = self.db.post_offline_journals([row.id for row in rows])
        logger.info("Posted %d offline journal rows to the general ledger", len(journal_ids))
        return journal_ids
