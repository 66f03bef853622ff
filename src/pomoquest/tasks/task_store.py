# src/pomoquest/tasks/task_store.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..core.clock import day_key
from ..core.events import (
    EventBus,
    FocusSessionCompleted,
    FocusSessionStarted,
    StateChanged,
    TaskCompleted,
    TimerTicked,
)
from ..core.ports import Clock
from ..errors import TaskNotFoundError
from .recurrence import spawn_successor
from .sorting import SortPolicy, sort_tasks
from .task_models import (
    Attachment,
    Priority,
    Recurrence,
    SortField,
    Subtask,
    Task,
    TaskDraft,
    parse_due_date,
    parse_due_time,
)
from .timer import (
    TICK_WINDOW_SECONDS,
    WORK_INTERVAL,
    BreakKind,
    DailyStats,
    RunningInterval,
    TimerSettings,
    next_break,
)

logger = logging.getLogger(__name__)

_PATCHABLE = frozenset(
    {"text", "category", "priority", "due_date", "due_time", "notes", "estimated_sessions", "recurrence"}
)
_INTERVAL_KINDS = (WORK_INTERVAL, BreakKind.SHORT.value, BreakKind.LONG.value)


@dataclass(slots=True)
class TaskStoreState:
    """Exportable part of the store (what goes into a snapshot)."""

    tasks: list[Task] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    timer: TimerSettings = field(default_factory=TimerSettings)
    daily: DailyStats | None = None
    session_cycle: int = 0


class TaskStore:
    """
    In-memory task collection + focus pointer.

    Invariants kept by every public mutator:
    - focus_id is None or points at an existing, incomplete task;
    - a task publishes TaskCompleted at most once in its lifetime (xp_awarded);
    - a recurring task spawns at most one successor (successor_spawned);
    - the canonical list keeps insertion order, sorting is a derived view.

    Mutators are synchronous. Each successful one publishes StateChanged("tasks")
    so the persistence layer can write through.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        bus: EventBus,
        categories: list[str] | None = None,
        timer: TimerSettings | None = None,
        long_break_every: int = 4,
    ) -> None:
        self._clock = clock
        self._bus = bus
        self._tasks: list[Task] = []
        self._categories: list[str] = list(dict.fromkeys(categories or []))
        self._focus_id: str | None = None
        self._sort_policy = SortPolicy()
        self._last_id = 0

        self.timer = timer or TimerSettings()
        self.long_break_every = max(1, int(long_break_every))
        self.daily = DailyStats(date=day_key(clock.today()))
        self.session_cycle = 0
        self._running: RunningInterval | None = None

    # ---- low-level helpers ----

    def _new_id(self) -> str:
        # Time-derived (ms) but strictly increasing, even within the same millisecond.
        stamp = int(self._clock.now().timestamp() * 1000)
        if stamp <= self._last_id:
            stamp = self._last_id + 1
        self._last_id = stamp
        return str(stamp)

    def _track_ids(self) -> None:
        ids = [t.id for t in self._tasks]
        ids += [s.id for t in self._tasks for s in t.subtasks]
        ids += [a.id for t in self._tasks for a in t.attachments]
        numeric = [int(i) for i in ids if i.isdigit()]
        if numeric:
            self._last_id = max(self._last_id, max(numeric))

    def _get(self, task_id: str) -> Task:
        for t in self._tasks:
            if t.id == task_id:
                return t
        raise TaskNotFoundError(task_id)

    def _changed(self) -> None:
        self._bus.publish(StateChanged("tasks"))

    def _ensure_category(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("category is required")
        if name not in self._categories:
            self._categories.append(name)
            logger.info("Category added implicitly: %s", name)
        return name

    def _ensure_focus_valid(self) -> None:
        if self._focus_id is None:
            return
        t = self.find(self._focus_id)
        if t is None or t.completed:
            logger.debug("Focus pointer %s no longer valid; cleared", self._focus_id)
            self._focus_id = None

    # ---- queries ----

    @property
    def tasks(self) -> list[Task]:
        """Canonical list (insertion order). Treat as read-only."""
        return self._tasks

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    @property
    def focus_id(self) -> str | None:
        return self._focus_id

    @property
    def focused_task(self) -> Task | None:
        return self.find(self._focus_id) if self._focus_id else None

    @property
    def running(self) -> RunningInterval | None:
        return self._running

    @property
    def sort_policy(self) -> SortPolicy:
        return self._sort_policy

    def find(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def sorted_tasks(self) -> list[Task]:
        return sort_tasks(self._tasks, self._sort_policy, self._categories)

    def next_break(self) -> BreakKind:
        return next_break(self.session_cycle, self.long_break_every)

    # ---- task operations ----

    def add(self, draft: TaskDraft) -> Task:
        text = (draft.text or "").strip()
        if not text:
            raise ValueError("text is required")

        task = Task(
            id=self._new_id(),
            text=text,
            category=self._ensure_category(draft.category),
            priority=draft.priority,
            created_at=self._clock.now(),
            due_date=draft.due_date,
            due_time=draft.due_time,
            estimated_sessions=max(1, int(draft.estimated_sessions or 1)),
            notes=draft.notes or "",
            recurrence=draft.recurrence,
        )
        self._tasks.append(task)
        logger.debug("Task added id=%s priority=%s category=%s", task.id, task.priority, task.category)
        self._changed()
        return task

    def update(self, task_id: str, **patch: Any) -> Task:
        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValueError(f"cannot update field(s): {', '.join(sorted(unknown))}")

        task = self._get(task_id)

        # Validate everything first, assign afterwards (no partial updates).
        values: dict[str, Any] = {}
        for name, raw in patch.items():
            if name == "text":
                text = str(raw or "").strip()
                if not text:
                    raise ValueError("text is required")
                values[name] = text
            elif name == "priority":
                values[name] = raw if isinstance(raw, Priority) else Priority.parse(raw)
            elif name == "recurrence":
                values[name] = raw if isinstance(raw, Recurrence) else Recurrence.parse(raw)
            elif name == "due_date":
                values[name] = parse_due_date(raw)
            elif name == "due_time":
                values[name] = parse_due_time(raw)
            elif name == "estimated_sessions":
                n = int(raw)
                if n < 1:
                    raise ValueError("estimated_sessions must be >= 1")
                values[name] = n
            elif name == "notes":
                values[name] = str(raw or "")
            elif name == "category":
                values[name] = str(raw or "").strip()
                if not values[name]:
                    raise ValueError("category is required")

        if "category" in values:
            self._ensure_category(values["category"])
        for name, value in values.items():
            setattr(task, name, value)

        self._changed()
        return task

    def toggle_complete(self, task_id: str) -> Task:
        task = self._get(task_id)

        if task.completed:
            # Re-opening never revokes granted experience.
            task.completed = False
            self._changed()
            return task

        was_focused = self._focus_id == task.id
        order_before = self.sorted_tasks() if was_focused else []

        task.completed = True

        successor = None
        if not task.successor_spawned:
            successor = spawn_successor(task, new_id=self._new_id(), today=self._clock.today())
        if successor is not None:
            task.successor_spawned = True
            self._tasks.append(successor)
            logger.info("Recurring task %s -> successor %s due %s", task.id, successor.id, successor.due_date)

        if was_focused:
            self._advance_focus(task, order_before)

        if not task.xp_awarded:
            task.xp_awarded = True
            self._bus.publish(TaskCompleted(task_id=task.id, priority=task.priority.value))

        self._changed()
        return task

    def _advance_focus(self, completed: Task, order_before: list[Task]) -> None:
        """
        Move focus to the next incomplete task after `completed` in the sort
        order it had while still open; wrap to the first incomplete one, else clear.
        """
        idx = next((i for i, t in enumerate(order_before) if t.id == completed.id), -1)
        nxt = next((t for t in order_before[idx + 1 :] if not t.completed), None)
        if nxt is None:
            nxt = next((t for t in self.sorted_tasks() if not t.completed and t.id != completed.id), None)
        self._focus_id = nxt.id if nxt else None
        logger.debug("Focus advanced %s -> %s", completed.id, self._focus_id)

    def delete(self, task_id: str) -> None:
        task = self._get(task_id)
        self._tasks.remove(task)
        if self._focus_id == task_id:
            self._focus_id = None
        self._changed()

    def set_focus(self, task_id: str | None) -> None:
        if task_id is None:
            self._focus_id = None
            return
        task = self._get(task_id)
        if task.completed:
            raise ValueError(f"cannot focus a completed task: {task_id}")
        self._focus_id = task.id

    def set_sort_policy(self, field: SortField | str) -> SortPolicy:
        self._sort_policy = self._sort_policy.select(SortField(field))
        return self._sort_policy

    # ---- subtasks / attachments ----

    def add_subtask(self, task_id: str, text: str) -> Subtask:
        task = self._get(task_id)
        text = (text or "").strip()
        if not text:
            raise ValueError("subtask text is required")
        sub = Subtask(id=self._new_id(), text=text)
        task.subtasks.append(sub)
        self._changed()
        return sub

    def toggle_subtask(self, task_id: str, subtask_id: str) -> Subtask:
        task = self._get(task_id)
        for sub in task.subtasks:
            if sub.id == subtask_id:
                sub.done = not sub.done
                self._changed()
                return sub
        raise TaskNotFoundError(subtask_id, what="subtask")

    def delete_subtask(self, task_id: str, subtask_id: str) -> None:
        task = self._get(task_id)
        kept = [s for s in task.subtasks if s.id != subtask_id]
        if len(kept) == len(task.subtasks):
            raise TaskNotFoundError(subtask_id, what="subtask")
        task.subtasks = kept
        self._changed()

    def add_attachment(self, task_id: str, name: str, path: str) -> Attachment:
        task = self._get(task_id)
        path = (path or "").strip()
        if not path:
            raise ValueError("attachment path is required")
        att = Attachment(id=self._new_id(), name=(name or "").strip() or path, path=path)
        task.attachments.append(att)
        self._changed()
        return att

    def remove_attachment(self, task_id: str, attachment_id: str) -> None:
        task = self._get(task_id)
        kept = [a for a in task.attachments if a.id != attachment_id]
        if len(kept) == len(task.attachments):
            raise TaskNotFoundError(attachment_id, what="attachment")
        task.attachments = kept
        self._changed()

    # ---- categories / settings ----

    def add_category(self, name: str) -> None:
        name = (name or "").strip()
        if not name:
            raise ValueError("category is required")
        if name in self._categories:
            return
        self._categories.append(name)
        self._changed()

    def remove_category(self, name: str) -> None:
        if name not in self._categories:
            raise ValueError(f"unknown category: {name}")
        if any(t.category == name for t in self._tasks):
            raise ValueError(f"category still in use: {name}")
        self._categories.remove(name)
        self._changed()

    def update_timer_settings(self, **minutes: int) -> TimerSettings:
        self.timer = TimerSettings.from_dict(minutes, base=self.timer)
        self._changed()
        return self.timer

    # ---- sessions ----

    def check_daily_reset(self) -> bool:
        """Roll daily counters over when the day key changed. Idempotent."""
        today = day_key(self._clock.today())
        if self.daily.date == today:
            return False
        logger.info("Daily rollover %s -> %s (sessions yesterday=%s)", self.daily.date, today, self.daily.count)
        self.daily = DailyStats(date=today)
        return True

    def record_session_completed(self, minutes: int | None = None) -> int:
        """Count one finished focus interval. Returns the new cycle counter."""
        minutes = self.timer.work if minutes is None else int(minutes)
        if minutes <= 0:
            raise ValueError("minutes must be > 0")

        self.check_daily_reset()
        self.daily.count += 1
        self.session_cycle += 1

        focused = self.focused_task
        if focused is not None:
            focused.sessions += 1

        self._bus.publish(FocusSessionCompleted(minutes=minutes, task_id=focused.id if focused else None))
        self._changed()
        return self.session_cycle

    def start_session(self, kind: str = WORK_INTERVAL, minutes: int | None = None) -> RunningInterval:
        """
        Start a work or break interval, replacing one that is still running.

        `minutes` defaults to the timer setting for `kind`. A work interval
        remembers the focused task; the session is credited when it finishes.
        """
        if kind not in _INTERVAL_KINDS:
            raise ValueError(f"unknown interval: {kind}")
        length = int(getattr(self.timer, kind)) if minutes is None else int(minutes)
        if length <= 0:
            raise ValueError("minutes must be > 0")

        focused = self.focused_task if kind == WORK_INTERVAL else None
        task_id = focused.id if focused else None
        self._running = RunningInterval(kind=kind, minutes=length, started_at=self._clock.now(), task_id=task_id)
        logger.info("Interval started kind=%s minutes=%s task=%s", kind, length, task_id)
        self._bus.publish(FocusSessionStarted(kind=kind, minutes=length, task_id=task_id))
        return self._running

    def stop_session(self) -> RunningInterval | None:
        """Abandon the running interval without crediting it."""
        run, self._running = self._running, None
        if run is not None:
            logger.info("Interval stopped kind=%s", run.kind)
        return run

    def tick(self) -> RunningInterval | None:
        """
        Check the running interval against the clock.

        Publishes TimerTicked once per second inside the final countdown
        window. A work interval that ran out is recorded through
        record_session_completed(). Returns the interval that finished on this
        call, else None.
        """
        run = self._running
        if run is None:
            return None

        left = run.seconds_left(self._clock.now())
        if left > 0:
            if left <= TICK_WINDOW_SECONDS and left != run.last_tick:
                run.last_tick = left
                self._bus.publish(TimerTicked(seconds_left=left))
            return None

        self._running = None
        logger.info("Interval finished kind=%s minutes=%s", run.kind, run.minutes)
        if run.kind == WORK_INTERVAL:
            self.record_session_completed(run.minutes)
        return run

    def reset_session_cycle(self) -> None:
        if self.session_cycle == 0:
            return
        self.session_cycle = 0
        self._changed()

    # ---- bulk state (persistence only) ----

    def export_state(self) -> TaskStoreState:
        return TaskStoreState(
            tasks=[t.clone() for t in self._tasks],
            categories=list(self._categories),
            timer=TimerSettings(**self.timer.to_dict()),
            daily=DailyStats(date=self.daily.date, count=self.daily.count),
            session_cycle=self.session_cycle,
        )

    def load_state(
        self,
        *,
        tasks: list[Task] | None = None,
        categories: list[str] | None = None,
        timer: TimerSettings | None = None,
        daily: DailyStats | None = None,
        session_cycle: int | None = None,
    ) -> None:
        """
        Replace whole parts of the state (None = keep current).

        Used by the reconciliation engine after a snapshot was fully decoded.
        Does not publish StateChanged: the caller persists explicitly.
        """
        if tasks is not None:
            self._tasks = [t.clone() for t in tasks]
            for t in self._tasks:
                if t.category and t.category not in self._categories and categories is None:
                    self._categories.append(t.category)
        if categories is not None:
            self._categories = list(dict.fromkeys(categories))
            for t in self._tasks:
                if t.category and t.category not in self._categories:
                    self._categories.append(t.category)
        if timer is not None:
            self.timer = timer
        if daily is not None:
            self.daily = daily
        if session_cycle is not None:
            self.session_cycle = max(0, int(session_cycle))

        self._track_ids()
        self._ensure_focus_valid()
        logger.debug("TaskStore bulk load: tasks=%d categories=%d", len(self._tasks), len(self._categories))
