"""Date manipulation utilities"""

from datetime import date, datetime, timezone

from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month (Jan 31 + 1 -> Feb 28/29)"""
    return from_date + relativedelta(months=months)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end precedes start)"""
    return (end - start).days


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
