# src/pomoquest/core/clock.py

"""
Clock / calendar adapter.

Everything that needs "today" or "now" receives a Clock instead of calling
datetime.now() directly, so tests can pin and advance time.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta


class SystemClock:
    """Wall-clock time in the local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """
    Deterministic clock for tests and demos.

    Time only moves when set() / advance() is called.
    """

    def __init__(self, start: datetime | date | str) -> None:
        self._now = _coerce(start)

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def set(self, value: datetime | date | str) -> None:
        self._now = _coerce(value)

    def advance(self, *, days: int = 0, seconds: float = 0.0) -> None:
        self._now = self._now + timedelta(days=days, seconds=seconds)


def _coerce(value: datetime | date | str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 9, 0)
    parsed = datetime.fromisoformat(value)
    if len(value) <= 10:
        parsed = parsed.replace(hour=9)
    return parsed


def day_key(d: date) -> str:
    """Calendar day as an ISO string (used for daily rollover comparisons)."""
    return d.isoformat()


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def add_months(d: date, months: int) -> date:
    # relativedelta clamps to the end of the month (Jan 31 + 1 month -> Feb 28/29).
    return d + relativedelta(months=months)


def yesterday_of(d: date) -> date:
    return d - timedelta(days=1)
