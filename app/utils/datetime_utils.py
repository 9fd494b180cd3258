"""Datetime utility functions for consistent timezone handling."""

from __future__ import annotations

import calendar
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


def get_current_utc_datetime() -> datetime:
    """
    Get current datetime in UTC timezone.

    Returns:
        datetime: Current UTC datetime with timezone info

    Example:
        >>> now = get_current_utc_datetime()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO-8601 string in UTC with millisecond precision and a ``Z`` suffix."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def add_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28 (or 29), never a date in March.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class BillingPeriod:
    start_at: datetime
    end_at: datetime
    end_grace_at: datetime
    next_schedule_at: datetime


def build_billing_period(
    now: Optional[datetime] = None,
    period_days: int = 30,
    grace_days: int = 1,
    schedule_hour: int = 10,
    schedule_minute: Optional[int] = None,
) -> BillingPeriod:
    """Compute the subscription window for a charge made at ``now``.

    The next charge is placed on the day after ``end_at`` at ``schedule_hour``
    with a random minute so scheduled charges do not all fire at once.
    """
    start_at = ensure_utc(now or get_current_utc_datetime())
    end_at = start_at + timedelta(days=period_days)
    end_grace_at = end_at + timedelta(days=grace_days)
    if schedule_minute is None:
        schedule_minute = random.randint(0, 59)
    next_schedule_at = (end_at + timedelta(days=1)).replace(
        hour=schedule_hour, minute=schedule_minute, second=0, microsecond=0
    )
    return BillingPeriod(
        start_at=start_at,
        end_at=end_at,
        end_grace_at=end_grace_at,
        next_schedule_at=next_schedule_at,
    )
