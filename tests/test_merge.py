# tests/test_merge.py

from __future__ import annotations

from datetime import date, datetime

from pomoquest.persistence.merge import merge_tasks, smart_merge, union_categories
from pomoquest.persistence.snapshot import SnapshotPatch
from pomoquest.tasks.task_models import Priority, Task
from pomoquest.tasks.task_store import TaskStoreState
from pomoquest.tasks.timer import DailyStats, TimerSettings

_CREATED = datetime(2024, 1, 1, 9, 0)


def _task(task_id: str, text: str, *, due: date | None = None, **kw) -> Task:
    return Task(id=task_id, text=text, category="Work", priority=Priority.MEDIUM, created_at=_CREATED, due_date=due, **kw)


def test_memory_task_replaces_file_task_matched_by_content() -> None:
    # File {A(id=1), B(id=2)}, memory {A'(id=5, same text+due as A), C(id=6)}.
    due = date(2024, 1, 10)
    file_tasks = [_task("1", "A", due=due), _task("2", "B")]
    memory_tasks = [_task("5", "A", due=due, notes="edited"), _task("6", "C")]

    merged, report = merge_tasks(file_tasks, memory_tasks)

    assert [(t.id, t.text) for t in merged] == [("5", "A"), ("2", "B"), ("6", "C")]
    assert merged[0].notes == "edited"
    assert report.matched_by_content == 1
    assert report.matched_by_id == 0
    assert report.appended == 1
    assert report.from_file == 2


def test_id_match_wins_over_content_and_keeps_position() -> None:
    file_tasks = [_task("1", "old text"), _task("2", "B")]
    memory_tasks = [_task("2", "B renamed", completed=True)]

    merged, report = merge_tasks(file_tasks, memory_tasks)

    assert [(t.id, t.text) for t in merged] == [("1", "old text"), ("2", "B renamed")]
    assert merged[1].completed is True
    assert report.matched_by_id == 1


def test_same_text_with_different_due_date_is_a_different_task() -> None:
    file_tasks = [_task("1", "standup", due=date(2024, 1, 1))]
    memory_tasks = [_task("9", "standup", due=date(2024, 1, 2))]

    merged, _ = merge_tasks(file_tasks, memory_tasks)
    assert [t.id for t in merged] == ["1", "9"]


def test_experience_flag_survives_the_merge() -> None:
    file_tasks = [_task("1", "A", completed=True, xp_awarded=True)]
    memory_tasks = [_task("1", "A", completed=False, xp_awarded=False)]

    merged, _ = merge_tasks(file_tasks, memory_tasks)
    assert merged[0].completed is False
    assert merged[0].xp_awarded is True


def test_successor_flag_survives_the_merge() -> None:
    file_tasks = [_task("1", "A", successor_spawned=True)]
    memory_tasks = [_task("1", "A")]

    merged, _ = merge_tasks(file_tasks, memory_tasks)
    assert merged[0].successor_spawned is True


def test_merge_does_not_mutate_inputs() -> None:
    file_tasks = [_task("1", "A")]
    memory_tasks = [_task("1", "A", xp_awarded=True)]
    merged, _ = merge_tasks(file_tasks, memory_tasks)

    merged[0].text = "changed"
    assert file_tasks[0].text == "A"
    assert memory_tasks[0].text == "A"


def test_union_categories_is_order_preserving() -> None:
    assert union_categories(["Work", "Home"], ["Study", "Work", "Gym"]) == ["Work", "Home", "Study", "Gym"]


def test_smart_merge_takes_settings_from_file_when_present() -> None:
    current = TaskStoreState(
        tasks=[_task("1", "A")],
        categories=["Work"],
        timer=TimerSettings(work=25),
        daily=DailyStats(date="2024-01-01", count=2),
        session_cycle=2,
    )

    with_settings = SnapshotPatch(
        tasks=[_task("2", "B")],
        categories=["Home"],
        timer=TimerSettings(work=50),
        daily=DailyStats(date="2024-01-01", count=5),
        session_cycle=3,
    )
    merged, report = smart_merge(current, with_settings)
    assert [t.id for t in merged.tasks] == ["2", "1"]
    assert merged.categories == ["Home", "Work"]
    assert merged.timer.work == 50
    assert merged.daily.count == 5
    assert merged.session_cycle == 3
    assert report.appended == 1

    without_settings = SnapshotPatch(categories=["Home"])
    merged, _ = smart_merge(current, without_settings)
    assert [t.id for t in merged.tasks] == ["1"]
    assert merged.timer.work == 25
    assert merged.session_cycle == 2
