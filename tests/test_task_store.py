# tests/test_task_store.py

from __future__ import annotations

from datetime import date, time

import pytest

from pomoquest.core.events import (
    FocusSessionCompleted,
    FocusSessionStarted,
    StateChanged,
    TaskCompleted,
    TimerTicked,
)
from pomoquest.errors import TaskNotFoundError
from pomoquest.tasks.task_models import Priority, Recurrence, SortField, SortOrder, TaskDraft
from pomoquest.tasks.timer import WORK_INTERVAL, BreakKind


def _add(store, text, *, priority=Priority.MEDIUM, category="Work", **kw):
    return store.add(TaskDraft(text=text, category=category, priority=priority, **kw))


def test_add_assigns_unique_ids_and_registers_category(store) -> None:
    a = _add(store, "write report")
    b = _add(store, "gym", category="Fitness")

    assert a.id != b.id
    assert int(b.id) > int(a.id)
    assert "Fitness" in store.categories
    assert [t.text for t in store.tasks] == ["write report", "gym"]

    with pytest.raises(ValueError):
        _add(store, "   ")


def test_update_is_all_or_nothing(store) -> None:
    t = _add(store, "draft")

    with pytest.raises(ValueError):
        store.update(t.id, text="final", priority="urgent")
    assert t.text == "draft"
    assert t.priority == Priority.MEDIUM

    store.update(t.id, text="final", priority="high", due_date="2024-02-01", due_time="18:30")
    assert t.text == "final"
    assert t.priority == Priority.HIGH
    assert t.due_date == date(2024, 2, 1)
    assert t.due_time == time(18, 30)

    with pytest.raises(ValueError):
        store.update(t.id, completed=True)
    with pytest.raises(TaskNotFoundError):
        store.update("missing", text="x")


def test_completion_publishes_task_completed_only_once(store, bus) -> None:
    seen: list[TaskCompleted] = []
    bus.subscribe(TaskCompleted, seen.append)
    t = _add(store, "once", priority=Priority.HIGH)

    store.toggle_complete(t.id)
    store.toggle_complete(t.id)  # re-open
    store.toggle_complete(t.id)  # complete again

    assert len(seen) == 1
    assert seen[0].priority == "High"
    assert t.completed is True
    assert t.xp_awarded is True


def test_weekly_recurrence_spawns_successor(store, clock) -> None:
    t = _add(store, "water plants", due_date=date(2024, 1, 1), recurrence=Recurrence.WEEKLY)
    store.add_subtask(t.id, "balcony")
    t.sessions = 3

    store.toggle_complete(t.id)

    assert len(store.tasks) == 2
    successor = store.tasks[1]
    assert successor.id != t.id
    assert successor.text == "water plants"
    assert successor.due_date == date(2024, 1, 8)
    assert successor.completed is False
    assert successor.sessions == 0
    assert successor.xp_awarded is False
    assert successor.recurrence == Recurrence.WEEKLY
    assert successor.created_at == t.created_at

    # Deep copy: the successor's subtasks are its own.
    successor.subtasks[0].done = True
    assert t.subtasks[0].done is False


def test_reopened_recurring_task_does_not_spawn_again(store) -> None:
    t = _add(store, "water plants", due_date=date(2024, 1, 1), recurrence=Recurrence.WEEKLY)

    store.toggle_complete(t.id)
    store.toggle_complete(t.id)
    store.toggle_complete(t.id)

    successors = [x for x in store.tasks if x.id != t.id]
    assert [x.due_date for x in successors] == [date(2024, 1, 8)]
    assert t.successor_spawned is True
    assert successors[0].successor_spawned is False


def test_monthly_recurrence_clamps_to_month_end(store) -> None:
    t = _add(store, "pay rent", due_date=date(2024, 1, 31), recurrence=Recurrence.MONTHLY)
    store.toggle_complete(t.id)
    assert store.tasks[-1].due_date == date(2024, 2, 29)


def test_daily_recurrence_without_due_date_starts_from_today(store, clock) -> None:
    t = _add(store, "stretch", recurrence=Recurrence.DAILY)
    store.toggle_complete(t.id)
    assert store.tasks[-1].due_date == date(2024, 1, 2)


def test_focus_auto_advances_wraps_and_clears(store) -> None:
    a = _add(store, "A", priority=Priority.HIGH)
    b = _add(store, "B", priority=Priority.MEDIUM)
    c = _add(store, "C", priority=Priority.LOW)

    store.set_focus(b.id)
    store.toggle_complete(b.id)
    assert store.focus_id == c.id

    # Nothing after C: wrap to the first incomplete task.
    store.toggle_complete(c.id)
    assert store.focus_id == a.id

    store.toggle_complete(a.id)
    assert store.focus_id is None


def test_completing_unfocused_task_keeps_focus(store) -> None:
    a = _add(store, "A")
    b = _add(store, "B")
    store.set_focus(a.id)
    store.toggle_complete(b.id)
    assert store.focus_id == a.id


def test_focus_rules(store) -> None:
    a = _add(store, "A")
    store.toggle_complete(a.id)
    with pytest.raises(ValueError):
        store.set_focus(a.id)
    with pytest.raises(TaskNotFoundError):
        store.set_focus("nope")

    b = _add(store, "B")
    store.set_focus(b.id)
    store.delete(b.id)
    assert store.focus_id is None


def test_sort_policy_toggles_and_keeps_completed_last(store) -> None:
    late = _add(store, "late", due_date=date(2024, 3, 1))
    undated = _add(store, "undated")
    early = _add(store, "early", due_date=date(2024, 1, 5), due_time=time(8, 0))
    same_day = _add(store, "same day", due_date=date(2024, 1, 5))
    done = _add(store, "done", due_date=date(2024, 1, 1))
    store.toggle_complete(done.id)

    policy = store.set_sort_policy(SortField.DATE)
    assert policy.order == SortOrder.DESC
    assert [t.id for t in store.sorted_tasks()] == [early.id, same_day.id, late.id, undated.id, done.id]

    policy = store.set_sort_policy("date")
    assert policy.order == SortOrder.ASC
    # Reversed field order, but undated and completed tasks stay at the end.
    assert [t.id for t in store.sorted_tasks()] == [late.id, same_day.id, early.id, undated.id, done.id]

    # Sorting is a view: the canonical list keeps insertion order.
    assert [t.id for t in store.tasks] == [late.id, undated.id, early.id, same_day.id, done.id]


def test_sort_by_priority_and_category(store) -> None:
    low = _add(store, "low", priority=Priority.LOW, category="Study")
    high = _add(store, "high", priority=Priority.HIGH, category="Personal")
    other = _add(store, "other", category="Hobby")
    work = _add(store, "work", category="Work")

    # Descending priority; equal priorities keep insertion order.
    assert [t.id for t in store.sorted_tasks()] == [high.id, other.id, work.id, low.id]

    store.set_sort_policy(SortField.CATEGORY)
    # Order of the category list (Work, Personal, Study, then implicitly added Hobby).
    assert [t.id for t in store.sorted_tasks()] == [work.id, high.id, low.id, other.id]


def test_sessions_count_daily_and_cycle(store, bus) -> None:
    events: list[FocusSessionCompleted] = []
    bus.subscribe(FocusSessionCompleted, events.append)
    t = _add(store, "deep work", estimated_sessions=4)
    store.set_focus(t.id)

    for _ in range(3):
        store.record_session_completed()
    assert store.next_break() == BreakKind.SHORT

    store.record_session_completed(50)
    assert store.session_cycle == 4
    assert store.next_break() == BreakKind.LONG
    assert store.daily.count == 4
    assert t.sessions == 4
    assert events[-1] == FocusSessionCompleted(minutes=50, task_id=t.id)
    assert events[0].minutes == 25

    store.reset_session_cycle()
    assert store.session_cycle == 0


def test_daily_rollover_is_idempotent(store, clock) -> None:
    store.record_session_completed()
    assert store.daily.count == 1

    assert store.check_daily_reset() is False

    clock.advance(days=1)
    assert store.check_daily_reset() is True
    assert store.check_daily_reset() is False
    assert store.daily.date == "2024-01-02"
    assert store.daily.count == 0


def test_subtasks_and_attachments(store) -> None:
    t = _add(store, "trip")
    s1 = store.add_subtask(t.id, "tickets")
    s2 = store.add_subtask(t.id, "hotel")
    assert store.toggle_subtask(t.id, s1.id).done is True

    store.delete_subtask(t.id, s2.id)
    assert [s.text for s in t.subtasks] == ["tickets"]
    with pytest.raises(TaskNotFoundError):
        store.toggle_subtask(t.id, s2.id)

    att = store.add_attachment(t.id, "", "/tmp/itinerary.pdf")
    assert att.name == "/tmp/itinerary.pdf"
    store.remove_attachment(t.id, att.id)
    assert t.attachments == []
    with pytest.raises(TaskNotFoundError):
        store.remove_attachment(t.id, att.id)


def test_categories_and_timer_settings(store) -> None:
    _add(store, "x", category="Work")
    with pytest.raises(ValueError):
        store.remove_category("Work")
    store.remove_category("Study")
    assert "Study" not in store.categories

    store.update_timer_settings(work=50)
    assert store.timer.to_dict() == {"work": 50, "short_break": 5, "long_break": 15}
    with pytest.raises(ValueError):
        store.update_timer_settings(short_break=0)


def test_mutations_publish_state_changed(store, bus) -> None:
    changes: list[StateChanged] = []
    bus.subscribe(StateChanged, changes.append)

    t = _add(store, "x")
    store.update(t.id, notes="n")
    store.toggle_complete(t.id)
    store.delete(t.id)

    assert len(changes) == 4
    assert {c.scope for c in changes} == {"tasks"}


def test_load_state_drops_stale_focus(store) -> None:
    t = _add(store, "x")
    store.set_focus(t.id)
    state = store.export_state()
    state.tasks[0].completed = True

    store.load_state(tasks=state.tasks)
    assert store.focus_id is None

    # New ids continue after the highest loaded id.
    nxt = _add(store, "y")
    assert int(nxt.id) > int(t.id)


def test_invalid_session_length_changes_nothing(store, bus) -> None:
    events: list[FocusSessionCompleted] = []
    bus.subscribe(FocusSessionCompleted, events.append)
    t = _add(store, "deep work")
    store.set_focus(t.id)

    for bad in (-5, 0):
        with pytest.raises(ValueError):
            store.record_session_completed(bad)

    assert store.daily.count == 0
    assert store.session_cycle == 0
    assert t.sessions == 0
    assert events == []


def test_work_interval_ticks_down_and_records_session(store, bus, clock) -> None:
    started: list[FocusSessionStarted] = []
    ticks: list[TimerTicked] = []
    done: list[FocusSessionCompleted] = []
    bus.subscribe(FocusSessionStarted, started.append)
    bus.subscribe(TimerTicked, ticks.append)
    bus.subscribe(FocusSessionCompleted, done.append)
    t = _add(store, "deep work")
    store.set_focus(t.id)

    run = store.start_session()
    assert store.running is run
    assert started == [FocusSessionStarted(kind=WORK_INTERVAL, minutes=25, task_id=t.id)]

    clock.advance(seconds=60)
    assert store.tick() is None
    assert ticks == []

    clock.advance(seconds=25 * 60 - 60 - 3)
    store.tick()
    store.tick()
    assert ticks == [TimerTicked(seconds_left=3)]

    clock.advance(seconds=1)
    store.tick()
    assert [e.seconds_left for e in ticks] == [3, 2]

    clock.advance(seconds=2)
    finished = store.tick()
    assert finished is run
    assert store.running is None
    assert done == [FocusSessionCompleted(minutes=25, task_id=t.id)]
    assert store.daily.count == 1
    assert t.sessions == 1


def test_break_interval_is_not_a_session(store, clock) -> None:
    run = store.start_session(BreakKind.SHORT.value)
    assert run.minutes == 5
    assert run.task_id is None

    clock.advance(seconds=5 * 60)
    assert store.tick() is run
    assert store.daily.count == 0
    assert store.session_cycle == 0


def test_start_session_validation_and_stop(store) -> None:
    with pytest.raises(ValueError):
        store.start_session("nap")
    with pytest.raises(ValueError):
        store.start_session(WORK_INTERVAL, 0)

    store.start_session(WORK_INTERVAL, 50)
    assert store.running.minutes == 50
    stopped = store.stop_session()
    assert stopped is not None and stopped.minutes == 50
    assert store.running is None
    assert store.stop_session() is None
    assert store.tick() is None
