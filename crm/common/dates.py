"""Local-calendar helpers: business timezone, day bounds, month arithmetic."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from crm.config import settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def local_now(now: Optional[datetime] = None) -> datetime:
    """Current (or given) instant expressed in the business timezone."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(local_tz())


def local_date(moment: datetime) -> date:
    return local_now(moment).date()


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """[00:00, next 00:00) of *day* in the business timezone, as UTC instants."""
    start = datetime.combine(day, time.min, tzinfo=local_tz())
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping to the last day of the target month.

    31 Jan + 1 month → 28/29 Feb.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


def daterange(start: date, end: date) -> Iterator[date]:
    """Every date from *start* to *end*, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)
