# src/pomoquest/connectors/cues.py

"""
Sound/theme cues.

The core publishes domain events; this module turns them into discrete cues
("task_completed", "level_up", ...) for whatever plays sounds or animates the
theme. Cues flow one way only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..core.events import (
    AchievementUnlocked,
    EventBus,
    FocusSessionCompleted,
    FocusSessionStarted,
    LevelUp,
    PurchaseMade,
    TaskCompleted,
    TimerTicked,
)
from ..core.ports import CueSink
from ..progression.engine import ProgressionEngine

logger = logging.getLogger(__name__)

SOUND_PACK_ITEM = "sound_pack"


class LoggingCueSink:
    """Default sink: no audio, every cue goes to the log."""

    def cue(self, name: str, **details: Any) -> None:
        logger.info("cue %s %s", name, details)


def attach_cues(bus: EventBus, sink: CueSink, progression: ProgressionEngine) -> Callable[[], None]:
    """Forward domain events to `sink`. Returns a function that detaches it."""

    def _emit(name: str, **details: Any) -> None:
        details["sound_pack"] = progression.is_active(SOUND_PACK_ITEM)
        details["theme"] = progression.profile.active_theme
        sink.cue(name, **details)

    def on_task(e: TaskCompleted) -> None:
        _emit("task_completed", task_id=e.task_id, priority=e.priority)

    def on_start(e: FocusSessionStarted) -> None:
        _emit("session_started", kind=e.kind, minutes=e.minutes, task_id=e.task_id)

    def on_tick(e: TimerTicked) -> None:
        _emit("session_tick", seconds_left=e.seconds_left)

    def on_session(e: FocusSessionCompleted) -> None:
        _emit("session_completed", minutes=e.minutes, task_id=e.task_id)

    def on_level(e: LevelUp) -> None:
        _emit("level_up", level=e.level, rank=e.rank)

    def on_achievement(e: AchievementUnlocked) -> None:
        _emit("achievement_unlocked", achievement_id=e.achievement_id)

    def on_purchase(e: PurchaseMade) -> None:
        _emit("purchase_made", item_id=e.item_id)

    unsubscribers = [
        bus.subscribe(TaskCompleted, on_task),
        bus.subscribe(FocusSessionStarted, on_start),
        bus.subscribe(TimerTicked, on_tick),
        bus.subscribe(FocusSessionCompleted, on_session),
        bus.subscribe(LevelUp, on_level),
        bus.subscribe(AchievementUnlocked, on_achievement),
        bus.subscribe(PurchaseMade, on_purchase),
    ]

    def _detach() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return _detach
