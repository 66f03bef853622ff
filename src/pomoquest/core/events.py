# src/pomoquest/core/events.py

"""
Typed domain events + a small in-process pub/sub bus.

The task store never calls the progression engine directly: it publishes
TaskCompleted / FocusSessionCompleted and whoever cares subscribes. The same
bus carries StateChanged, which the reconciliation engine uses as its
write-through trigger.

Handlers run synchronously in publish order. A crashing handler is logged and
does not stop the remaining handlers.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskCompleted:
    task_id: str
    priority: str


@dataclass(frozen=True, slots=True)
class FocusSessionStarted:
    kind: str
    minutes: int
    task_id: str | None


@dataclass(frozen=True, slots=True)
class TimerTicked:
    seconds_left: int


@dataclass(frozen=True, slots=True)
class FocusSessionCompleted:
    minutes: int
    task_id: str | None


@dataclass(frozen=True, slots=True)
class LevelUp:
    level: int
    coins_earned: int
    rank: str


@dataclass(frozen=True, slots=True)
class AchievementUnlocked:
    achievement_id: str
    name: str


@dataclass(frozen=True, slots=True)
class PurchaseMade:
    item_id: str
    price: int


@dataclass(frozen=True, slots=True)
class StateChanged:
    """Something persistable changed. `scope` is informational ("tasks", "profile", ...)."""

    scope: str


E = TypeVar("E")
Handler = Callable[[Any], Any]


class EventBus:
    """In-memory pub/sub keyed by event class."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}
        self.published = 0

    def subscribe(self, event_type: type[E], handler: Callable[[E], Any]) -> Callable[[], None]:
        self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.get(event_type, []).remove(handler)

        return _unsubscribe

    def publish(self, event: Any) -> None:
        self.published += 1
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed event=%s handler=%r", type(event).__name__, handler)

    def clear(self) -> None:
        """Drop all subscriptions (test teardown)."""
        self._handlers.clear()
