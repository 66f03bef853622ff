# tests/test_snapshot.py

from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from pomoquest.errors import SnapshotError
from pomoquest.persistence.snapshot import SNAPSHOT_VERSION, build_snapshot, decode_snapshot, encode_snapshot
from pomoquest.tasks.task_models import Priority, Recurrence, TaskDraft


def _snapshot_text(store, engine) -> str:
    data = build_snapshot(store.export_state(), engine.export_profile(), saved_at=datetime(2024, 1, 1, 9, 0))
    return encode_snapshot(data)


def test_encoded_snapshot_layout(store, engine) -> None:
    t = store.add(
        TaskDraft(
            text="Käse kaufen",
            category="Personal",
            priority=Priority.LOW,
            due_date=date(2024, 1, 3),
            recurrence=Recurrence.DAILY,
        )
    )
    store.add_subtask(t.id, "Emmentaler")
    store.record_session_completed()

    text = _snapshot_text(store, engine)
    raw = json.loads(text)

    assert "Käse" in text  # not ASCII-escaped
    assert text.startswith("{\n  ")
    assert raw["version"] == SNAPSHOT_VERSION
    assert raw["saved_at"] == "2024-01-01T09:00:00"
    assert raw["categories"] == ["Work", "Personal", "Study"]
    assert raw["timer_settings"] == {"work": 25, "short_break": 5, "long_break": 15}
    assert raw["daily_stats"] == {"date": "2024-01-01", "count": 1}
    assert raw["session_cycle"] == 1
    assert raw["progression"]["level"] == 1

    task = raw["tasks"][0]
    assert task["priority"] == "Low"
    assert task["due_date"] == "2024-01-03"
    assert task["recurrence"] == "Daily"
    assert task["subtasks"][0]["text"] == "Emmentaler"


def test_decode_restores_tasks_and_settings(store, engine) -> None:
    t = store.add(TaskDraft(text="review", category="Work", priority=Priority.HIGH, due_date=date(2024, 2, 1)))
    store.toggle_complete(t.id)
    store.update_timer_settings(work=45)

    patch = decode_snapshot(_snapshot_text(store, engine).encode("utf-8"))

    assert patch.version == SNAPSHOT_VERSION
    assert [x.text for x in patch.tasks] == ["review"]
    decoded = patch.tasks[0]
    assert decoded.id == t.id
    assert decoded.completed is True
    assert decoded.xp_awarded is True
    assert decoded.due_date == date(2024, 2, 1)
    assert decoded.created_at == t.created_at
    assert patch.timer.work == 45
    assert patch.progression is not None


def test_missing_keys_mean_keep_current_values() -> None:
    patch = decode_snapshot('{"categories": ["Errands"], "future_feature": {"x": 1}}')
    assert patch.categories == ["Errands"]
    assert patch.tasks is None
    assert patch.timer is None
    assert patch.progression is None
    assert not patch.is_empty()

    assert decode_snapshot("{}").is_empty()


@pytest.mark.parametrize(
    "text",
    [
        "not json at all",
        "[1, 2, 3]",
        '{"tasks": {"id": "1"}}',
        '{"tasks": [{"id": "1"}]}',
        '{"tasks": [{"id": "1", "text": "a", "priority": "Urgent"}]}',
        '{"tasks": [{"id": "1", "text": "a"}, {"id": "1", "text": "b"}]}',
        '{"timer_settings": {"work": 0}}',
        '{"session_cycle": -1}',
        '{"progression": {"coins": "lots"}}',
        '{"tasks": [{"id": "1", "text": "a", "completed": "false"}]}',
        '{"tasks": [{"id": "1", "text": "a", "xp_awarded": 1}]}',
        '{"tasks": [{"id": "1", "text": "a", "subtasks": [{"id": "s1", "text": "b", "done": "no"}]}]}',
    ],
)
def test_malformed_snapshots_are_rejected(text: str) -> None:
    with pytest.raises(SnapshotError):
        decode_snapshot(text)


def test_invalid_utf8_is_rejected() -> None:
    with pytest.raises(SnapshotError):
        decode_snapshot(b"\xff\xfe{}")
