"""Date arithmetic behind the month calendar and the month copy."""

import calendar
from collections import Counter
from datetime import date, datetime, timezone
from typing import Iterable, Optional
from shiftdesk.models.shift import Period, PERIOD_CAPACITY

Week = list[Optional[int]]


def build_month_matrix(year: int, month: int) -> list[Week]:
    """
    Weeks of day numbers, Sunday first. Cells before the 1st and after the
    last day are None; every week has seven cells.
    """
    first_weekday, days_in_month = calendar.monthrange(year, month)
    # monthrange counts Monday as 0
    leading = (first_weekday + 1) % 7

    matrix: list[Week] = []
    week: Week = [None] * leading
    for day in range(1, days_in_month + 1):
        week.append(day)
        if len(week) == 7:
            matrix.append(week)
            week = []
    if week:
        week.extend([None] * (7 - len(week)))
        matrix.append(week)
    return matrix


def today_utc() -> date:
    """Current date in UTC, the zone every stored timestamp uses."""
    return datetime.now(timezone.utc).date()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def remap_to_month(day: date, year: int, month: int) -> Optional[date]:
    """Same day-of-month in the target month, or None when it doesn't exist there."""
    if day.day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day.day)


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def dates_on_weekdays(year: int, month: int, weekdays: Iterable[int]) -> list[date]:
    wanted = set(weekdays)
    start, end = month_bounds(year, month)
    return [
        date(year, month, d)
        for d in range(start.day, end.day + 1)
        if weekday_index(date(year, month, d)) in wanted
    ]


def fill_status(count: int, capacity: int) -> str:
    if count == 0:
        return "empty"
    if count < capacity:
        return "partial"
    return "full"


def period_counts(periods: Iterable[str]) -> list[dict]:
    """Per-period count/capacity badges for one day's shift rows."""
    counts = Counter(periods)
    return [
        {
            "period": p.value,
            "count": counts.get(p.value, 0),
            "capacity": PERIOD_CAPACITY[p],
            "status": fill_status(counts.get(p.value, 0), PERIOD_CAPACITY[p]),
        }
        for p in Period
    ]
