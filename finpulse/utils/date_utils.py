"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta
from typing import List


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length (Jan 31 + 1 -> Feb 28/29)"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def month_starts(start: date, count: int) -> List[date]:
    """First day of `count` consecutive months beginning with start's month"""
    first = first_of_month(start)
    return [add_months(first, i) for i in range(count)]


def key_dates(start: date, end: date) -> List[date]:
    """
    Sample days between start and end inclusive: daily up to 30 days,
    weekly up to 90, otherwise every 30 days. The end date is always included.
    """
    if start > end:
        return []

    span = (end - start).days
    step = timedelta(days=1 if span <= 30 else 7 if span <= 90 else 30)

    days = []
    current = start
    while current <= end:
        days.append(current)
        current += step
    if days[-1] != end:
        days.append(end)
    return days
