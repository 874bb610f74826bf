"""Date parsing utilities."""

from datetime import date, datetime, time, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_ledger_date(date_str: str) -> date:
    """Parse a strict YYYY-MM-DD ledger date.

    Raises:
        ValueError: If the string is not a valid calendar date in that format
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"invalid date '{date_str}'")


def parse_date(date_str: str) -> date:
    """Parse a user-supplied date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and the
    relative words "today", "yesterday", "this month", "last month",
    "this year" and "last year".

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "this year": today.replace(month=1, day=1),
        "last year": today.replace(month=1, day=1) - relativedelta(years=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get inclusive start and end dates for a named period.

    Args:
        period: One of this-month, last-month, this-year, last-year

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return today.replace(day=1), today
    if period == "last-month":
        first_of_month = today.replace(day=1)
        return first_of_month - relativedelta(months=1), first_of_month - timedelta(days=1)
    if period == "this-year":
        return today.replace(month=1, day=1), today
    if period == "last-year":
        first_of_year = today.replace(month=1, day=1)
        return first_of_year - relativedelta(years=1), first_of_year - timedelta(days=1)

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-month, last-month, this-year, last-year"
    )


def month_window(moment: date) -> tuple[datetime, datetime]:
    """Return the half-open calendar month [first, first of next) containing moment."""
    start = datetime(moment.year, moment.month, 1)
    return start, start + relativedelta(months=1)


def end_of_day(day: date) -> datetime:
    """Last representable instant of day."""
    return datetime.combine(day, time.max)


def days_between(first: date, second: date) -> int:
    """Absolute number of calendar days between two dates."""
    return abs((first - second).days)
