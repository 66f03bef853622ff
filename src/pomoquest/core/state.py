# src/pomoquest/core/state.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..persistence.reconciler import ReconciliationEngine
from ..progression.engine import ProgressionEngine
from ..tasks.task_store import TaskStore
from .events import EventBus
from .ports import CacheRepo, Clock, CueSink, FileBackend


@dataclass(slots=True)
class AppState:
    """Everything a connector needs, wired once by cli.bootstrap."""

    settings: Any
    clock: Clock
    bus: EventBus

    task_store: TaskStore
    progression: ProgressionEngine

    cache: CacheRepo
    backend: FileBackend
    reconciler: ReconciliationEngine

    cues: CueSink

    # Event-bus subscriptions made by the composition root (rewards, cues).
    detachers: list[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        for detach in self.detachers:
            detach()
        self.detachers.clear()
        self.reconciler.close()
