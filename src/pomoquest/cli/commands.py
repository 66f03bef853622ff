# src/pomoquest/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.state import AppState
from ..errors import PomoquestError
from ..persistence.reconciler import SyncResult
from ..progression.catalog import ACHIEVEMENTS
from ..progression.models import ItemKind
from ..tasks.task_models import Priority, Recurrence, Task, TaskDraft, parse_due_date, parse_due_time
from ..tasks.timer import BreakKind

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> CommandResult | None:
        """
        Handle a string like "/command args".
        Returns a reply (string or awaitable string) or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    async def dispatch(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """handle() + await async replies + turn domain errors into messages."""
        try:
            reply = self.handle(state, line, emit=emit)
            if inspect.isawaitable(reply):
                reply = await reply
        except (PomoquestError, ValueError) as e:
            return f"Error: {e}"
        return cast(str | None, reply)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _resolve(state: AppState, ref: str) -> str:
    """Accept a task id or a 1-based position in the current sorted view."""
    view = state.task_store.sorted_tasks()
    if ref.isdigit() and 1 <= int(ref) <= len(view) and state.task_store.find(ref) is None:
        return view[int(ref) - 1].id
    return ref


def _format_task(pos: int, task: Task, focus_id: str | None) -> str:
    mark = "x" if task.completed else " "
    focus = " <- focus" if task.id == focus_id else ""
    due = ""
    if task.due_date:
        due = f" due {task.due_date.isoformat()}"
        if task.due_time:
            due += f" {task.due_time.strftime('%H:%M')}"
    rec = f" ({task.recurrence.value.lower()})" if task.recurrence != Recurrence.NONE else ""
    subs = ""
    if task.subtasks:
        subs = f" [{sum(s.done for s in task.subtasks)}/{len(task.subtasks)}]"
    return (
        f"{pos:>2}. [{mark}] {task.text} #{task.category} !{task.priority.value}"
        f"{due}{rec}{subs} {task.sessions}/{task.estimated_sessions} sessions{focus}"
    )


def _parse_add_args(state: AppState, args: list[str]) -> TaskDraft:
    """
    Free text plus optional markers:
    #category  !priority  @YYYY-MM-DD  ~HH:MM  *daily|weekly|monthly  =N (estimated sessions)
    """
    words: list[str] = []
    category = state.task_store.categories[0] if state.task_store.categories else "General"
    priority = Priority.MEDIUM
    due_date = None
    due_time = None
    recurrence = Recurrence.NONE
    estimated = 1

    for a in args:
        if a.startswith("#") and len(a) > 1:
            category = a[1:]
        elif a.startswith("!") and len(a) > 1:
            priority = Priority.parse(a[1:])
        elif a.startswith("@") and len(a) > 1:
            due_date = parse_due_date(a[1:])
        elif a.startswith("~") and len(a) > 1:
            due_time = parse_due_time(a[1:])
        elif a.startswith("*") and len(a) > 1:
            recurrence = Recurrence.parse(a[1:])
        elif a.startswith("=") and a[1:].isdigit():
            estimated = int(a[1:])
        else:
            words.append(a)

    return TaskDraft(
        text=" ".join(words),
        category=category,
        priority=priority,
        due_date=due_date,
        due_time=due_time,
        estimated_sessions=estimated,
        recurrence=recurrence,
    )


def _sync_message(result: SyncResult) -> str:
    text = f"[{result.status.value}] {result.message}"
    if result.report is not None:
        r = result.report
        text += (
            f" (file tasks={r.from_file}, matched by id={r.matched_by_id},"
            f" by content={r.matched_by_content}, added from memory={r.appended})"
        )
    return text


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    ts = state.task_store
    prog = state.progression
    p = prog.profile
    rank = prog.current_rank

    focused = ts.focused_task
    open_count = sum(1 for t in ts.tasks if not t.completed)
    lines = [
        "Status:",
        f"  Level {p.level} {rank.icon} {rank.name}  XP {p.xp}/{prog.xp_for_next_level} ({prog.xp_progress:.0f}%)",
        f"  Coins: {p.coins}  Streak: {p.stats.current_streak} day(s)",
        f"  Tasks: {open_count} open / {len(ts.tasks)} total",
        f"  Focus: {focused.text if focused else '-'}",
        f"  Sessions today: {ts.daily.count}  Cycle: {ts.session_cycle}  Next break: {ts.next_break().value}",
        f"  Theme: {p.active_theme}",
        f"  File: {state.reconciler.target_label or 'not connected (cache only)'}",
    ]
    for notice in prog.notifications.active():
        lines.append(f"  * {notice.title}")
    return "\n".join(lines)


# ---- tasks ----


def cmd_add(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add <text> [#category] [!low|medium|high] [@YYYY-MM-DD] [~HH:MM] [*daily|weekly|monthly] [=N]"
    task = state.task_store.add(_parse_add_args(state, args))
    return f"Added [{task.id}] {task.text}"


def cmd_list(state: AppState, args: list[str]) -> str:
    ts = state.task_store
    show_all = bool(args) and args[0].lower() == "all"
    view = ts.sorted_tasks()
    policy = ts.sort_policy

    lines = [f"Tasks (by {policy.field.value}, {policy.order.value}):"]
    for pos, task in enumerate(view, start=1):
        if task.completed and not show_all:
            continue
        lines.append(_format_task(pos, task, ts.focus_id))
    if len(lines) == 1:
        lines.append("  (nothing here)")
    return "\n".join(lines)


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task>"
    task = state.task_store.toggle_complete(_resolve(state, args[0]))
    return f"{'Completed' if task.completed else 'Re-opened'}: {task.text}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <task>"
    task_id = _resolve(state, args[0])
    state.task_store.delete(task_id)
    return f"Deleted {task_id}."


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <task> field=value ...
    fields: text, category, priority, due_date, due_time, notes, estimated_sessions, recurrence
    """
    if len(args) < 2:
        return "Usage: /edit <task> field=value ... (quote values with spaces)"
    task_id = _resolve(state, args[0])

    patch: dict[str, str] = {}
    for item in args[1:]:
        key, sep, value = item.partition("=")
        if not sep:
            return f"Expected field=value, got: {item}"
        patch[key.strip().lower()] = value

    task = state.task_store.update(task_id, **patch)
    return f"Updated: {task.text}"


def cmd_focus(state: AppState, args: list[str]) -> str:
    ts = state.task_store
    if not args:
        focused = ts.focused_task
        return f"Focus: {focused.text}" if focused else "No task in focus."
    if args[0].lower() in ("off", "none", "clear"):
        ts.set_focus(None)
        return "Focus cleared."
    ts.set_focus(_resolve(state, args[0]))
    focused = ts.focused_task
    return f"Focus: {focused.text if focused else '-'}"


def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        policy = state.task_store.sort_policy
        return f"Sorted by {policy.field.value} ({policy.order.value}). Use /sort priority|category|date."
    policy = state.task_store.set_sort_policy(args[0].lower())
    return f"Sorted by {policy.field.value} ({policy.order.value})."


def cmd_sub(state: AppState, args: list[str]) -> str:
    """
    /sub <task> add <text>
    /sub <task> toggle <subtask_id>
    /sub <task> del <subtask_id>
    """
    if len(args) < 3:
        return "Usage: /sub <task> add <text> | toggle <id> | del <id>"
    ts = state.task_store
    task_id = _resolve(state, args[0])
    action = args[1].lower()

    if action == "add":
        sub = ts.add_subtask(task_id, " ".join(args[2:]))
        return f"Subtask added [{sub.id}] {sub.text}"
    if action == "toggle":
        sub = ts.toggle_subtask(task_id, args[2])
        return f"Subtask {'done' if sub.done else 'open'}: {sub.text}"
    if action in ("del", "delete", "rm"):
        ts.delete_subtask(task_id, args[2])
        return "Subtask deleted."
    return "Usage: /sub <task> add <text> | toggle <id> | del <id>"


def cmd_attach(state: AppState, args: list[str]) -> str:
    """
    /attach <task>                 -> list attachments
    /attach <task> add <path> [name]
    /attach <task> del <attachment_id>
    """
    if not args:
        return "Usage: /attach <task> [add <path> [name] | del <id>]"
    ts = state.task_store
    task_id = _resolve(state, args[0])

    if len(args) == 1:
        task = ts.find(task_id)
        if task is None:
            return f"task not found: {task_id}"
        if not task.attachments:
            return "No attachments."
        return "\n".join(f"  [{a.id}] {a.name} -> {a.path}" for a in task.attachments)

    action = args[1].lower()
    if action == "add" and len(args) >= 3:
        name = args[3] if len(args) > 3 else ""
        att = ts.add_attachment(task_id, name, args[2])
        return f"Attached [{att.id}] {att.name}"
    if action in ("del", "delete", "rm") and len(args) >= 3:
        ts.remove_attachment(task_id, args[2])
        return "Attachment removed."
    return "Usage: /attach <task> [add <path> [name] | del <id>]"


def cmd_category(state: AppState, args: list[str]) -> str:
    ts = state.task_store
    if not args or args[0].lower() == "list":
        return "Categories: " + ", ".join(ts.categories)
    action = args[0].lower()
    name = " ".join(args[1:])
    if action == "add":
        ts.add_category(name)
        return f"Category added: {name}"
    if action in ("del", "delete", "rm"):
        ts.remove_category(name)
        return f"Category removed: {name}"
    return "Usage: /cat list | add <name> | del <name>"


# ---- focus sessions ----

_TIMER_FIELDS = ("work", "short_break", "long_break")

_INTERVAL_ALIASES = {"work": "work", "focus": "work", "short": "short_break", "long": "long_break"}


def cmd_session(state: AppState, args: list[str]) -> str:
    """/session [minutes] -> record one finished focus interval."""
    minutes = int(args[0]) if args else None
    ts = state.task_store
    cycle = ts.record_session_completed(minutes)
    brk = ts.next_break()
    length = ts.timer.long_break if brk == BreakKind.LONG else ts.timer.short_break
    focused = ts.focused_task
    on = f" on '{focused.text}'" if focused else ""
    return f"Session #{cycle} done{on}. Take a {brk.value.replace('_', ' ')} ({length} min)."


def cmd_start(state: AppState, args: list[str]) -> str:
    """/start [work|short|long] [minutes] -> start a timed interval."""
    kind = "work"
    if args and not args[0].isdigit():
        name = args.pop(0).lower()
        kind = _INTERVAL_ALIASES.get(name, name)
    minutes = int(args[0]) if args else None
    run = state.task_store.start_session(kind, minutes)
    focused = state.task_store.find(run.task_id) if run.task_id else None
    on = f" on '{focused.text}'" if focused else ""
    return f"Started {run.kind.replace('_', ' ')} ({run.minutes} min){on}, ends at {run.ends_at:%H:%M}."


def cmd_stop(state: AppState, args: list[str]) -> str:
    run = state.task_store.stop_session()
    if run is None:
        return "No interval is running."
    return f"Stopped {run.kind.replace('_', ' ')}."


def cmd_cycle(state: AppState, args: list[str]) -> str:
    if args and args[0].lower() == "reset":
        state.task_store.reset_session_cycle()
        return "Session cycle reset."
    ts = state.task_store
    return f"Cycle: {ts.session_cycle} (long break every {ts.long_break_every})"


def cmd_timer(state: AppState, args: list[str]) -> str:
    """/timer [work=N] [short_break=N] [long_break=N]"""
    ts = state.task_store
    if args:
        minutes: dict[str, int] = {}
        for item in args:
            key, sep, value = item.partition("=")
            if not sep or key.strip().lower() not in _TIMER_FIELDS or not value.strip().isdigit():
                return "Usage: /timer [work=N] [short_break=N] [long_break=N]"
            minutes[key.strip().lower()] = int(value)
        ts.update_timer_settings(**minutes)
    t = ts.timer
    return f"Timer: work {t.work} min, short break {t.short_break} min, long break {t.long_break} min"


# ---- progression ----


def cmd_stats(state: AppState, args: list[str]) -> str:
    p = state.progression.profile
    s = p.stats
    unlocked = set(p.unlocked_achievements)
    lines = [
        "Stats:",
        f"  Sessions: {s.total_sessions} total, {s.daily_sessions} today",
        f"  Tasks completed: {s.total_tasks_completed} total, {s.daily_tasks} today",
        f"  Focus time: {s.total_focus_minutes} min",
        f"  Streak: {s.current_streak} (best {s.longest_streak})",
        f"  Coins earned: {p.total_coins_earned}",
        f"Achievements ({len(unlocked)}/{len(ACHIEVEMENTS)}):",
    ]
    for a in ACHIEVEMENTS:
        mark = a.icon if a.id in unlocked else "  "
        lines.append(f"  {mark} {a.name} - {a.description}")
    return "\n".join(lines)


def cmd_shop(state: AppState, args: list[str]) -> str:
    prog = state.progression
    lines = [f"Shop (coins: {prog.profile.coins}):"]
    for item in prog.shop_items:
        status = ""
        if item.kind != ItemKind.CONSUMABLE and prog.has_item(item.id):
            status = " [active]" if prog.is_active(item.id) else " [owned]"
        lines.append(f"  {item.icon} {item.id:<14} {item.price:>4}  {item.name} - {item.description}{status}")
    return "\n".join(lines)


def cmd_buy(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /buy <item_id>"
    return state.progression.purchase(args[0]).message


def cmd_use(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /use <item_id> | /use default"
    if args[0].lower() == "default":
        state.progression.deactivate_theme()
        return "Default theme restored."
    return state.progression.activate(args[0]).message


# ---- persistence ----


async def cmd_open(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("Opening a data file (empty answer cancels)...")
    return _sync_message(await state.reconciler.open_file())


async def cmd_save_as(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("Choose where to save (empty answer cancels)...")
    return _sync_message(await state.reconciler.save_as())


async def cmd_save(state: AppState, args: list[str]) -> str:
    return _sync_message(await state.reconciler.flush())


def cmd_disconnect(state: AppState, args: list[str]) -> str:
    if not state.reconciler.connected:
        return "Not connected to a file."
    state.reconciler.disconnect()
    return "Disconnected. Changes are kept in the local cache only."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Level, coins, focus, file connection.")
registry.register("add", cmd_add, help_text="Add a task: /add text #cat !high @2024-01-31 ~18:00 *weekly =2.")
registry.register("list", cmd_list, help_text="List tasks in the current order: /list [all].", aliases=["ls"])
registry.register("done", cmd_done, help_text="Toggle completion: /done <task>.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <task>.", aliases=["rm"])
registry.register("edit", cmd_edit, help_text="Edit fields: /edit <task> field=value ...")
registry.register("focus", cmd_focus, help_text="Focus a task: /focus <task> | /focus off.")
registry.register("sort", cmd_sort, help_text="Order by: /sort priority|category|date (again flips).")
registry.register("sub", cmd_sub, help_text="Subtasks: /sub <task> add <text> | toggle <id> | del <id>.")
registry.register("attach", cmd_attach, help_text="Attachments: /attach <task> [add <path> [name] | del <id>].")
registry.register("cat", cmd_category, help_text="Categories: /cat list | add <name> | del <name>.")
registry.register("session", cmd_session, help_text="Record a finished focus session: /session [minutes].")
registry.register("start", cmd_start, help_text="Start a timer: /start [work|short|long] [minutes].")
registry.register("stop", cmd_stop, help_text="Abandon the running timer.")
registry.register("cycle", cmd_cycle, help_text="Show or reset the session cycle: /cycle [reset].")
registry.register("timer", cmd_timer, help_text="Timer minutes: /timer work=25 short_break=5 long_break=15.")
registry.register("stats", cmd_stats, help_text="Profile stats and achievements.")
registry.register("shop", cmd_shop, help_text="List shop items.")
registry.register("buy", cmd_buy, help_text="Buy an item: /buy <item_id>.")
registry.register("use", cmd_use, help_text="Toggle an owned theme/cosmetic: /use <item_id> | /use default.")
registry.register("open", cmd_open, help_text="Open a JSON data file and merge it.")
registry.register("saveas", cmd_save_as, help_text="Save to a new JSON data file and connect to it.")
registry.register("save", cmd_save, help_text="Write the cache (and connected file) now.")
registry.register("disconnect", cmd_disconnect, help_text="Forget the connected file.")
