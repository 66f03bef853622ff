# src/pomoquest/tasks/recurrence.py

from __future__ import annotations

from datetime import date

from ..core.clock import add_days, add_months
from .task_models import Recurrence, Task


def next_due_date(recurrence: Recurrence, due: date | None, today: date) -> date | None:
    """
    Project the next occurrence: +1 day / +7 days / +1 calendar month from the
    current due date, or from today when the task had none.
    """
    if recurrence == Recurrence.NONE:
        return None
    base = due or today
    if recurrence == Recurrence.DAILY:
        return add_days(base, 1)
    if recurrence == Recurrence.WEEKLY:
        return add_days(base, 7)
    return add_months(base, 1)


def spawn_successor(task: Task, *, new_id: str, today: date) -> Task | None:
    """
    Build the next instance of a recurring task (None for one-off tasks).

    Everything is copied by value except: new id, not completed, zero
    sessions, projected due date, fresh experience flag.
    """
    due = next_due_date(task.recurrence, task.due_date, today)
    if due is None:
        return None

    nxt = task.clone()
    nxt.id = new_id
    nxt.completed = False
    nxt.sessions = 0
    nxt.due_date = due
    nxt.xp_awarded = False
    nxt.successor_spawned = False
    return nxt
