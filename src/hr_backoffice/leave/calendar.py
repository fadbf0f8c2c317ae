from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Iterator

from .model import LeavePolicy


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def calculate_leave_days(start: date, end: date, policy: LeavePolicy, holidays: Iterable[date] = ()) -> float:
    """Number of leave days charged for a full-day range ``[start, end]``.

    Working days always count. Weekends and holidays count only under the
    policy's sandwich rule.
    """
    if end < start:
        return 0.0

    off_days = set(holidays)
    count = 0
    for day in iter_days(start, end):
        if is_weekend(day) or day in off_days:
            if policy.sandwich_rule:
                count += 1
        else:
            count += 1
    return float(count)
