from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional, Tuple

import pytz

from ..core.constants import DEFAULT_ORG_TIMEZONE


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(tz=pytz.UTC)


def org_timezone(name: Optional[str] = None):
    return pytz.timezone(name or DEFAULT_ORG_TIMEZONE)


def org_day(moment: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar day of ``moment`` in the organisation timezone.

    Naive datetimes are treated as UTC.
    """
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    return moment.astimezone(org_timezone(tz_name)).date()


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def month_range(month: str) -> Tuple[date, date]:
    """First and last day of a "YYYY-MM" month."""
    try:
        year, mon = (int(p) for p in month.split("-"))
        last = calendar.monthrange(year, mon)[1]
    except ValueError:
        raise ValueError(f"Invalid month: {month!r}")
    return date(year, mon, 1), date(year, mon, last)


def to_naive_utc(moment: datetime) -> datetime:
    """Naive UTC datetime for storage; naive input is assumed to be UTC already."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(pytz.UTC).replace(tzinfo=None)
