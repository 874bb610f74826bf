"""Budget checks for billing codes."""

import logging
from datetime import datetime
from decimal import Decimal

from ledgersync.database.base import Database
from ledgersync.domain.entities import BillingCode, BudgetPeriod, EntryState
from ledgersync.domain.errors import NotFoundError, billing_code_not_found, entry_not_found
from ledgersync.utils.date_parser import month_window

logger = logging.getLogger(__name__)

UNCOUNTED_STATES = (EntryState.VOID, EntryState.UNAFFILIATED)


class BudgetService:
    """Service deciding whether logged hours exceed a billing code's budget."""

    def __init__(self, db: Database):
        """Initialize budget service.

        Args:
            db: Database instance
        """
        self.db = db

    def budget_window(self, billing_code: BillingCode, moment: datetime) -> tuple[datetime, datetime]:
        """Calendar month of moment, or the billing code's whole active window."""
        if billing_code.budget_period == BudgetPeriod.PROJECT:
            return billing_code.active_start, billing_code.active_end
        return month_window(moment)

    def hours_in_period(self, billing_code: BillingCode, moment: datetime) -> Decimal:
        """Sum hours of counted entries for the billing code in the budget window."""
        start, end = self.budget_window(billing_code, moment)
        entries = self.db.list_entries(
            billing_code_id=billing_code.id,
            start=start,
            end=end,
            exclude_states=UNCOUNTED_STATES,
        )
        minutes = sum((entry.duration_minutes for entry in entries), Decimal("0"))
        return minutes / Decimal("60")

    def entry_exceeds_budget(self, entry_id: int) -> bool:
        """Check whether an entry pushes its billing code over budget.

        Args:
            entry_id: Entry ID

        Returns:
            True if hours in the budget window exceed the billing code's budget.
            Billing codes without budget hours never exceed.

        Raises:
            NotFoundError: If the entry or its billing code doesn't exist
        """
        entry = self.db.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))

        billing_code = self.db.get_billing_code(entry.billing_code_id)
        if billing_code is None:
            raise NotFoundError(billing_code_not_found(entry.billing_code_id))

        if billing_code.budget_hours is None:
            return False

        hours = self.hours_in_period(billing_code, entry.start)
        exceeded = hours > billing_code.budget_hours
        if exceeded:
            logger.warning(
                "Billing code %s over budget: %.2f of %s hours",
                billing_code.code,
                hours,
                billing_code.budget_hours,
            )
        return exceeded
