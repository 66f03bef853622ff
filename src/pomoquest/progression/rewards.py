# src/pomoquest/progression/rewards.py

"""Wires task events to experience grants."""

from __future__ import annotations

from collections.abc import Callable

from ..core.events import EventBus, FocusSessionCompleted, TaskCompleted
from .engine import ProgressionEngine

TASK_XP = {"Low": 10, "Medium": 20, "High": 30}
SESSION_XP = 25


def attach_rewards(bus: EventBus, engine: ProgressionEngine) -> Callable[[], None]:
    """Subscribe the engine to task events. Returns a function that detaches it."""

    def on_task_completed(event: TaskCompleted) -> None:
        engine.grant_experience(TASK_XP.get(event.priority, TASK_XP["Medium"]), "task")

    def on_session_completed(event: FocusSessionCompleted) -> None:
        engine.grant_experience(SESSION_XP, "session")
        engine.add_focus_minutes(event.minutes)

    unsubscribers = [
        bus.subscribe(TaskCompleted, on_task_completed),
        bus.subscribe(FocusSessionCompleted, on_session_completed),
    ]

    def _detach() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return _detach
