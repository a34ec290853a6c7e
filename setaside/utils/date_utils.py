"""Date manipulation utilities"""

from calendar import monthrange
from datetime import date

from dateutil.relativedelta import relativedelta


def add_months(anchor: date, months: int) -> date:
    """
    Add calendar months to a date, clamping to the target month's last day.

    Jan 31 + 1 month -> Feb 28 (or 29), never Mar 3.
    """
    return anchor + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """
    Whole calendar months elapsed from start to end.

    A month counts once the day-of-month is reached, with clamping:
    Jan 31 -> Feb 28 is one whole month on a non-leap year.
    """
    if end < start:
        return -months_between(end, start)
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) > end:
        months -= 1
    return months


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, pulling day back to the month's last valid day"""
    return date(year, month, min(day, monthrange(year, month)[1]))
