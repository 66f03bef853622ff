# tests/test_cues.py

from __future__ import annotations

from pomoquest.tasks.task_models import TaskDraft


def test_domain_events_become_cues(state, cues) -> None:
    t = state.task_store.add(TaskDraft(text="x", category="Work"))
    state.task_store.toggle_complete(t.id)

    names = cues.names()
    assert names[0] == "task_completed"
    assert "achievement_unlocked" in names

    first = cues.cues[0]
    assert first.details["task_id"] == t.id
    assert first.details["sound_pack"] is False
    assert first.details["theme"] == "default"


def test_cues_report_active_sound_pack(state, cues) -> None:
    state.progression.profile.coins = 100
    state.progression.purchase("sound_pack")
    state.progression.activate("sound_pack")

    state.task_store.record_session_completed()

    session = next(c for c in cues.cues if c.name == "session_completed")
    assert session.details["sound_pack"] is True
    assert session.details["minutes"] == 25
    assert "purchase_made" in cues.names()


def test_timer_start_and_countdown_cues(state, cues, clock) -> None:
    t = state.task_store.add(TaskDraft(text="focus me", category="Work"))
    state.task_store.set_focus(t.id)

    state.task_store.start_session()
    clock.advance(seconds=25 * 60 - 2)
    state.task_store.tick()
    clock.advance(seconds=2)
    state.task_store.tick()

    names = cues.names()
    assert names[:3] == ["session_started", "session_tick", "session_completed"]

    start, tick = cues.cues[0], cues.cues[1]
    assert start.details["kind"] == "work"
    assert start.details["minutes"] == 25
    assert start.details["task_id"] == t.id
    assert tick.details["seconds_left"] == 2
    assert tick.details["theme"] == "default"
