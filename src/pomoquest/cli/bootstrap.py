# src/pomoquest/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the stores, the event bus subscriptions and persistence into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsolePicker
from ..connectors.cues import LoggingCueSink, attach_cues
from ..core.clock import SystemClock
from ..core.events import EventBus
from ..core.ports import CacheRepo, Clock, CueSink, FileBackend, Picker
from ..core.state import AppState
from ..persistence.backends import create_backend
from ..persistence.cache import CacheStore
from ..persistence.reconciler import ReconciliationEngine
from ..progression.engine import ProgressionEngine
from ..progression.notifications import NoticeKind, NotificationCenter
from ..progression.rewards import attach_rewards
from ..tasks.task_store import TaskStore
from ..tasks.timer import TimerSettings

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.cache_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    clock: Clock | None = None,
    picker: Picker | None = None,
    cache: CacheRepo | None = None,
    backend: FileBackend | None = None,
    cues: CueSink | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Every collaborator is injectable so tests can swap in fakes.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    clock = clock or SystemClock()
    bus = EventBus()

    if cache is None:
        _ensure_local_dirs(settings)
        cache = CacheStore(settings.cache_db_path)
    if backend is None:
        backend = create_backend(settings.file_backend, picker or ConsolePicker())

    task_store = TaskStore(
        clock=clock,
        bus=bus,
        categories=list(settings.categories),
        timer=TimerSettings(
            work=settings.work_minutes,
            short_break=settings.short_break_minutes,
            long_break=settings.long_break_minutes,
        ),
        long_break_every=settings.long_break_every,
    )
    notifications = NotificationCenter(
        clock,
        ttl_seconds={
            NoticeKind.LEVEL_UP: settings.level_up_notice_seconds,
            NoticeKind.ACHIEVEMENT: settings.achievement_notice_seconds,
        },
    )
    progression = ProgressionEngine(clock=clock, bus=bus, notifications=notifications)

    reconciler = ReconciliationEngine(
        tasks=task_store,
        progression=progression,
        cache=cache,
        backend=backend,
        bus=bus,
        clock=clock,
    )

    cues = cues or LoggingCueSink()
    state = AppState(
        settings=settings,
        clock=clock,
        bus=bus,
        task_store=task_store,
        progression=progression,
        cache=cache,
        backend=backend,
        reconciler=reconciler,
        cues=cues,
    )
    # Cues subscribe before rewards so a completion cue precedes the cues it triggers.
    state.detachers.append(attach_cues(bus, cues, progression))
    state.detachers.append(attach_rewards(bus, progression))

    logger.debug("AppState ready (backend=%s)", type(backend).__name__)
    return state
