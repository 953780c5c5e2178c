"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def last_day_of_month(year: int, month: int) -> int:
    """Last calendar day of the month, leap years included"""
    return calendar.monthrange(year, month)[1]


def is_business_day(day: date) -> bool:
    """Monday-Friday; there is no holiday calendar"""
    return day.weekday() < 5


def add_business_days(from_date: date, days: int) -> date:
    """
    Move `days` business days away from a date, walking one calendar day at a time.

    Negative values walk backwards. Weekends are skipped but never counted.
    """
    step = timedelta(days=1 if days >= 0 else -1)
    remaining = abs(days)
    current = from_date
    while remaining > 0:
        current += step
        if is_business_day(current):
            remaining -= 1
    return current


def subtract_business_days(from_date: date, days: int) -> date:
    return add_business_days(from_date, -days)


def business_days_between(start: date, end: date) -> int:
    """
    Signed count of business days from start to end.

    Weekdays in [earlier, later) are counted, so the same day gives 0.
    Positive when end falls after start.
    """
    if start == end:
        return 0
    earlier, later = (start, end) if start < end else (end, start)
    count = sum(1 for day in generate_date_range(earlier, later - timedelta(days=1)) if is_business_day(day))
    return count if start < end else -count


def local_now(tz_name: str) -> datetime:
    """Current time in the given IANA timezone"""
    return datetime.now(ZoneInfo(tz_name))
