# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from pomoquest.cli.bootstrap import create_initial_state
from pomoquest.core.clock import FixedClock
from pomoquest.core.events import EventBus
from pomoquest.core.state import AppState
from pomoquest.progression.engine import ProgressionEngine
from pomoquest.progression.rewards import attach_rewards
from pomoquest.tasks.task_store import TaskStore

from .fakes import MemoryCache, MemoryFileBackend, RecordingCueSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="pomoquest-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        cache_db_path=tmp_path / "cache.sqlite3",
        # External file
        file_backend="path",
        auto_reconnect=True,
        # Tasks / timer
        categories=["Work", "Personal", "Study"],
        work_minutes=25,
        short_break_minutes=5,
        long_break_minutes=15,
        long_break_every=4,
        # Notifications
        level_up_notice_seconds=5.0,
        achievement_notice_seconds=4.0,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock("2024-01-01T09:00:00")


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def store(clock: FixedClock, bus: EventBus) -> TaskStore:
    return TaskStore(clock=clock, bus=bus, categories=["Work", "Personal", "Study"])


@pytest.fixture()
def engine(clock: FixedClock, bus: EventBus) -> ProgressionEngine:
    return ProgressionEngine(clock=clock, bus=bus)


@pytest.fixture()
def wired(store: TaskStore, engine: ProgressionEngine, bus: EventBus):
    """TaskStore + ProgressionEngine connected through the bus (no persistence)."""
    detach = attach_rewards(bus, engine)
    yield store, engine
    detach()


@pytest.fixture()
def backend() -> MemoryFileBackend:
    return MemoryFileBackend()


@pytest.fixture()
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture()
def cues() -> RecordingCueSink:
    return RecordingCueSink()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    clock: FixedClock,
    cache: MemoryCache,
    backend: MemoryFileBackend,
    cues: RecordingCueSink,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    Stores, bus subscriptions and the reconciliation engine are real; only the
    cache, the external file and the cue sink are in-memory.
    """
    app = create_initial_state(settings=settings, clock=clock, cache=cache, backend=backend, cues=cues)
    yield app
    app.close()
