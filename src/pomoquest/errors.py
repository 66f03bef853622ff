# src/pomoquest/errors.py

from __future__ import annotations


class PomoquestError(Exception):
    """Base class for all pomoquest errors."""


class TaskNotFoundError(PomoquestError, KeyError):
    """Unknown task (or subtask/attachment) id."""

    def __init__(self, task_id: str, what: str = "task") -> None:
        super().__init__(task_id)
        self.task_id = task_id
        self.what = what

    def __str__(self) -> str:
        return f"{self.what} not found: {self.task_id}"


class SnapshotError(PomoquestError, ValueError):
    """Snapshot content could not be decoded (nothing was applied)."""


class FileAccessError(PomoquestError, OSError):
    """External file could not be read or written."""
