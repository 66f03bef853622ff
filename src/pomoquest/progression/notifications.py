# src/pomoquest/progression/notifications.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from ..core.ports import Clock


class NoticeKind(StrEnum):
    LEVEL_UP = "level_up"
    ACHIEVEMENT = "achievement"


@dataclass(frozen=True, slots=True)
class Notification:
    kind: NoticeKind
    title: str
    raised_at: datetime
    expires_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationCenter:
    """
    One slot per kind, each with its own time box.

    Expiry is evaluated lazily against the clock, so there are no timers to
    cancel and a newer notification simply replaces the older one.
    """

    def __init__(self, clock: Clock, *, ttl_seconds: dict[NoticeKind, float] | None = None) -> None:
        self._clock = clock
        self._ttl = {NoticeKind.LEVEL_UP: 5.0, NoticeKind.ACHIEVEMENT: 4.0}
        if ttl_seconds:
            self._ttl.update(ttl_seconds)
        self._slots: dict[NoticeKind, Notification] = {}

    def raise_notice(self, kind: NoticeKind, title: str, **payload: Any) -> Notification:
        now = self._clock.now()
        notice = Notification(
            kind=kind,
            title=title,
            raised_at=now,
            expires_at=now + timedelta(seconds=self._ttl[kind]),
            payload=payload,
        )
        self._slots[kind] = notice
        return notice

    def current(self, kind: NoticeKind) -> Notification | None:
        notice = self._slots.get(kind)
        if notice is None:
            return None
        if self._clock.now() >= notice.expires_at:
            del self._slots[kind]
            return None
        return notice

    def active(self) -> list[Notification]:
        return [n for n in (self.current(k) for k in NoticeKind) if n is not None]

    def dismiss(self, kind: NoticeKind) -> None:
        self._slots.pop(kind, None)
