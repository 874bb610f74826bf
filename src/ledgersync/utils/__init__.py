"""Utility functions for ledgersync."""

from ledgersync.utils.date_parser import parse_date, parse_ledger_date, month_window
from ledgersync.utils.amount_parser import parse_amount, to_cents, from_cents

__all__ = [
    "parse_date",
    "parse_ledger_date",
    "month_window",
    "parse_amount",
    "to_cents",
    "from_cents",
]
