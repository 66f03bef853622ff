# src/pomoquest/tasks/timer.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

WORK_INTERVAL = "work"

# Countdown ticks are emitted for the last seconds of a running interval.
TICK_WINDOW_SECONDS = 5


class BreakKind(StrEnum):
    SHORT = "short_break"
    LONG = "long_break"


@dataclass(slots=True)
class TimerSettings:
    """Interval lengths in minutes."""

    work: int = 25
    short_break: int = 5
    long_break: int = 15

    def to_dict(self) -> dict[str, int]:
        return {"work": self.work, "short_break": self.short_break, "long_break": self.long_break}

    @staticmethod
    def from_dict(raw: dict[str, Any], *, base: TimerSettings | None = None) -> TimerSettings:
        """Absent keys keep the values of `base` (or the defaults)."""
        if not isinstance(raw, dict):
            raise TypeError("timer_settings must be an object")
        b = base or TimerSettings()
        return TimerSettings(
            work=_minutes(raw.get("work", b.work), "work"),
            short_break=_minutes(raw.get("short_break", b.short_break), "short_break"),
            long_break=_minutes(raw.get("long_break", b.long_break), "long_break"),
        )


@dataclass(slots=True)
class DailyStats:
    """Completed focus sessions for one calendar day (day key = ISO date)."""

    date: str
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "count": self.count}

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> DailyStats:
        if not isinstance(raw, dict):
            raise TypeError("daily_stats must be an object")
        day = raw.get("date")
        if not isinstance(day, str) or not day:
            raise ValueError("daily_stats.date is required")
        count = int(raw.get("count", 0) or 0)
        if count < 0:
            raise ValueError("daily_stats.count must be >= 0")
        return DailyStats(date=day, count=count)


@dataclass(slots=True)
class RunningInterval:
    """A work or break interval the user started. Not persisted."""

    kind: str
    minutes: int
    started_at: datetime
    task_id: str | None = None
    last_tick: int | None = None

    @property
    def ends_at(self) -> datetime:
        return self.started_at + timedelta(minutes=self.minutes)

    def seconds_left(self, now: datetime) -> int:
        return max(0, math.ceil((self.ends_at - now).total_seconds()))


def next_break(session_cycle: int, long_break_every: int) -> BreakKind:
    """Every `long_break_every`-th completed session earns a long break."""
    every = max(1, int(long_break_every))
    if session_cycle > 0 and session_cycle % every == 0:
        return BreakKind.LONG
    return BreakKind.SHORT


def _minutes(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a number of minutes")
    m = int(value)
    if m <= 0:
        raise ValueError(f"{name} must be > 0")
    return m
