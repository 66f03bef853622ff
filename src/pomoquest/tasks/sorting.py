# src/pomoquest/tasks/sorting.py

"""
Task ordering as a pure function of (tasks, policy, categories).

Rules:
- completed tasks always sort after incomplete ones, whatever the field/order;
- priority: High > Medium > Low;
- category: position in the category list (unknown categories last);
- date: due date + time, a missing time counts as 23:59, missing dates last
  (also when ascending).

"desc" is the natural reading order of each field (High first, first category
first, earliest due first); "asc" reverses the field comparison only.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, time

from .task_models import SortField, SortOrder, Task

_END_OF_DAY = time(23, 59)


@dataclass(frozen=True, slots=True)
class SortPolicy:
    field: SortField = SortField.PRIORITY
    order: SortOrder = SortOrder.DESC

    def select(self, field: SortField) -> SortPolicy:
        """Same field flips the order, a new field starts descending."""
        if field == self.field:
            flipped = SortOrder.ASC if self.order == SortOrder.DESC else SortOrder.DESC
            return SortPolicy(field=field, order=flipped)
        return SortPolicy(field=field, order=SortOrder.DESC)


def due_datetime(task: Task) -> datetime | None:
    if task.due_date is None:
        return None
    return datetime.combine(task.due_date, task.due_time or _END_OF_DAY)


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def _compare(a: Task, b: Task, policy: SortPolicy, category_index: dict[str, int]) -> int:
    if a.completed != b.completed:
        return 1 if a.completed else -1

    if policy.field == SortField.PRIORITY:
        cmp = b.priority.rank - a.priority.rank
    elif policy.field == SortField.CATEGORY:
        missing = len(category_index)
        cmp = category_index.get(a.category, missing) - category_index.get(b.category, missing)
    else:
        da, db = due_datetime(a), due_datetime(b)
        if da is None and db is None:
            return 0
        if da is None:
            return 1
        if db is None:
            return -1
        cmp = _sign((da - db).total_seconds())

    return -cmp if policy.order == SortOrder.ASC else cmp


def sort_tasks(tasks: Iterable[Task], policy: SortPolicy, categories: Sequence[str]) -> list[Task]:
    """Return a new, ordered list. The input is not modified."""
    category_index = {name: i for i, name in enumerate(categories)}
    key = functools.cmp_to_key(lambda a, b: _compare(a, b, policy, category_index))
    return sorted(tasks, key=key)
