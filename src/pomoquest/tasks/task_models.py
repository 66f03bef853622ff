# src/pomoquest/tasks/task_models.py

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import StrEnum
from typing import Any


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw: str | None) -> Priority:
        """Case-insensitive parse; raises ValueError for unknown values."""
        if raw is None:
            return cls.MEDIUM
        for p in cls:
            if p.value.lower() == str(raw).strip().lower():
                return p
        raise ValueError(f"unknown priority: {raw!r}")


_PRIORITY_RANK = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}


class Recurrence(StrEnum):
    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"

    @classmethod
    def parse(cls, raw: str | None) -> Recurrence:
        if raw is None or str(raw).strip() == "":
            return cls.NONE
        for r in cls:
            if r.value.lower() == str(raw).strip().lower():
                return r
        raise ValueError(f"unknown recurrence: {raw!r}")


class SortField(StrEnum):
    PRIORITY = "priority"
    CATEGORY = "category"
    DATE = "date"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(slots=True)
class Subtask:
    id: str
    text: str
    done: bool = False


@dataclass(slots=True)
class Attachment:
    id: str
    name: str
    path: str


@dataclass(slots=True)
class Task:
    id: str
    text: str
    category: str
    priority: Priority
    created_at: datetime

    due_date: date | None = None
    due_time: time | None = None
    completed: bool = False

    estimated_sessions: int = 1
    sessions: int = 0

    notes: str = ""
    subtasks: list[Subtask] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)

    recurrence: Recurrence = Recurrence.NONE
    # Experience for this task was granted. Set once, never cleared
    # (a recurring successor starts with its own fresh flag).
    xp_awarded: bool = False
    # The next occurrence of a recurring task was already created.
    successor_spawned: bool = False

    def clone(self) -> Task:
        """Full value copy (subtasks/attachments are not shared)."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "priority": self.priority.value,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "due_time": self.due_time.strftime("%H:%M") if self.due_time else None,
            "completed": self.completed,
            "estimated_sessions": self.estimated_sessions,
            "sessions": self.sessions,
            "notes": self.notes,
            "subtasks": [{"id": s.id, "text": s.text, "done": s.done} for s in self.subtasks],
            "attachments": [{"id": a.id, "name": a.name, "path": a.path} for a in self.attachments],
            "recurrence": self.recurrence.value,
            "xp_awarded": self.xp_awarded,
            "successor_spawned": self.successor_spawned,
            "created_at": self.created_at.isoformat(),
        }

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> Task:
        """
        Strict decode of one task record.

        Raises ValueError/TypeError on anything malformed so that a snapshot
        is either decoded completely or not at all.
        """
        if not isinstance(raw, dict):
            raise TypeError("task record must be an object")

        task_id = raw.get("id")
        text = raw.get("text")
        if task_id is None or str(task_id).strip() == "":
            raise ValueError("task record without id")
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"task {task_id}: text is required")

        subtasks = []
        for s in _as_list(raw.get("subtasks"), "subtasks"):
            if not isinstance(s, dict) or "id" not in s:
                raise ValueError(f"task {task_id}: malformed subtask")
            subtasks.append(
                Subtask(id=str(s["id"]), text=str(s.get("text", "")), done=_as_bool(s.get("done"), "subtask done"))
            )

        attachments = []
        for a in _as_list(raw.get("attachments"), "attachments"):
            if not isinstance(a, dict) or "id" not in a:
                raise ValueError(f"task {task_id}: malformed attachment")
            attachments.append(
                Attachment(id=str(a["id"]), name=str(a.get("name", "")), path=str(a.get("path", "")))
            )

        created_raw = raw.get("created_at")
        created_at = datetime.fromisoformat(created_raw) if created_raw else datetime.fromtimestamp(0)

        return Task(
            id=str(task_id),
            text=text.strip(),
            category=str(raw.get("category") or ""),
            priority=Priority.parse(raw.get("priority")),
            created_at=created_at,
            due_date=parse_due_date(raw.get("due_date")),
            due_time=parse_due_time(raw.get("due_time")),
            completed=_as_bool(raw.get("completed"), "completed"),
            estimated_sessions=max(1, int(raw.get("estimated_sessions", 1) or 1)),
            sessions=max(0, int(raw.get("sessions", 0) or 0)),
            notes=str(raw.get("notes") or ""),
            subtasks=subtasks,
            attachments=attachments,
            recurrence=Recurrence.parse(raw.get("recurrence")),
            xp_awarded=_as_bool(raw.get("xp_awarded"), "xp_awarded"),
            successor_spawned=_as_bool(raw.get("successor_spawned"), "successor_spawned"),
        )


@dataclass(slots=True)
class TaskDraft:
    """User input for TaskStore.add()."""

    text: str
    category: str
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None
    due_time: time | None = None
    estimated_sessions: int = 1
    recurrence: Recurrence = Recurrence.NONE
    notes: str = ""


def parse_due_date(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw))


def parse_due_time(raw: Any) -> time | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, time):
        return raw
    return time.fromisoformat(str(raw))


def _as_bool(value: Any, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be true or false")
    return value


def _as_list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    return value
