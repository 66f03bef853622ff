# src/pomoquest/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the clock, file backends, cache and cue sinks swappable and makes
testing easier.
"""

from datetime import date, datetime
from typing import Any, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...
    def today(self) -> date: ...


class FileBackend(Protocol):
    """
    External snapshot file access.

    Two implementations exist (path-based and handle-based); the reconciliation
    engine must not care which one it got. A "target" is whatever the backend
    hands out from its pickers (a Path, a FileHandle, ...).

    Pickers return None when the user cancels.
    read_file / write_file raise FileAccessError on failure.
    """

    supports_reconnect: bool

    async def pick_open_target(self) -> Any | None: ...
    async def pick_save_target(self) -> Any | None: ...
    async def read_file(self, target: Any) -> str: ...
    async def write_file(self, target: Any, text: str) -> None: ...
    async def exists(self, target: Any) -> bool: ...

    def describe(self, target: Any) -> str:
        """Stable string used to remember the connection in the cache."""
        ...

    def target_from_record(self, record: str) -> Any | None:
        """Rebuild a target from describe() output (None if unsupported)."""
        ...


class CacheRepo(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> bool: ...
    def delete(self, key: str) -> bool: ...


class Picker(Protocol):
    """Asks the user for a file location. Returns None when cancelled."""

    def __call__(self, prompt: str) -> str | None: ...


class CueSink(Protocol):
    """
    Sound/theme collaborator.

    Receives discrete trigger cues ("task_completed", "level_up", ...).
    It never feeds state back into the core.
    """

    def cue(self, name: str, **details: Any) -> None: ...
