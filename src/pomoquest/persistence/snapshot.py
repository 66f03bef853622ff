# src/pomoquest/persistence/snapshot.py

"""
Snapshot codec.

File format: UTF-8 JSON, pretty-printed (indent=2) so it diffs well.

    {
      "version": 1,
      "saved_at": "2024-01-01T09:00:00",
      "tasks": [...],
      "categories": [...],
      "timer_settings": {"work": 25, "short_break": 5, "long_break": 15},
      "daily_stats": {"date": "2024-01-01", "count": 3},
      "session_cycle": 3,
      "progression": {...}
    }

Reading is forward compatible: unknown top-level keys are ignored and every
known key is optional (absent -> keep the current in-memory value).
Decoding is all-or-nothing: decode_snapshot() either returns a fully checked
SnapshotPatch or raises SnapshotError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..errors import SnapshotError
from ..progression.engine import validate_profile_data
from ..tasks.task_models import Task
from ..tasks.task_store import TaskStoreState
from ..tasks.timer import DailyStats, TimerSettings

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass(slots=True)
class SnapshotPatch:
    """Decoded snapshot. None means "not present in the source"."""

    tasks: list[Task] | None = None
    categories: list[str] | None = None
    timer: TimerSettings | None = None
    daily: DailyStats | None = None
    session_cycle: int | None = None
    progression: dict[str, Any] | None = None
    version: int | None = None
    saved_at: str | None = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.tasks, self.categories, self.timer, self.daily, self.session_cycle, self.progression)
        )


def build_snapshot(state: TaskStoreState, profile: dict[str, Any], *, saved_at: datetime) -> dict[str, Any]:
    data: dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "saved_at": saved_at.isoformat(),
        "tasks": [t.to_dict() for t in state.tasks],
        "categories": list(state.categories),
        "timer_settings": state.timer.to_dict(),
        "session_cycle": state.session_cycle,
        "progression": profile,
    }
    if state.daily is not None:
        data["daily_stats"] = state.daily.to_dict()
    return data


def encode_snapshot(data: dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


def decode_snapshot(text: str | bytes) -> SnapshotPatch:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotError(f"snapshot is not valid UTF-8: {e}") from e

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"snapshot is not valid JSON: {e.msg} (line {e.lineno})") from e

    if not isinstance(raw, dict):
        raise SnapshotError("snapshot must be a JSON object")

    try:
        return _decode_fields(raw)
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"malformed snapshot: {e}") from e


def _decode_fields(raw: dict[str, Any]) -> SnapshotPatch:
    patch = SnapshotPatch()

    version = raw.get("version")
    if version is not None:
        if isinstance(version, bool) or not isinstance(version, int):
            raise TypeError("version must be an integer")
        if version > SNAPSHOT_VERSION:
            logger.warning("Snapshot version %s is newer than %s; reading known fields only", version, SNAPSHOT_VERSION)
        patch.version = version

    saved_at = raw.get("saved_at")
    if saved_at is not None:
        patch.saved_at = str(saved_at)

    if raw.get("tasks") is not None:
        tasks_raw = raw["tasks"]
        if not isinstance(tasks_raw, list):
            raise TypeError("tasks must be a list")
        tasks = [Task.from_dict(t) for t in tasks_raw]
        seen: set[str] = set()
        for t in tasks:
            if t.id in seen:
                raise ValueError(f"duplicate task id: {t.id}")
            seen.add(t.id)
        patch.tasks = tasks

    if raw.get("categories") is not None:
        cats = raw["categories"]
        if not isinstance(cats, list) or not all(isinstance(c, str) for c in cats):
            raise TypeError("categories must be a list of strings")
        patch.categories = list(dict.fromkeys(c.strip() for c in cats if c.strip()))

    if raw.get("timer_settings") is not None:
        patch.timer = TimerSettings.from_dict(raw["timer_settings"])

    if raw.get("daily_stats") is not None:
        patch.daily = DailyStats.from_dict(raw["daily_stats"])

    if raw.get("session_cycle") is not None:
        cycle = raw["session_cycle"]
        if isinstance(cycle, bool) or not isinstance(cycle, int) or cycle < 0:
            raise ValueError("session_cycle must be a non-negative integer")
        patch.session_cycle = cycle

    if raw.get("progression") is not None:
        # Validate now so that import_profile() cannot fail half-way later.
        validate_profile_data(raw["progression"])
        patch.progression = dict(raw["progression"])

    return patch
