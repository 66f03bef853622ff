# src/pomoquest/persistence/merge.py

"""
Smart merge of an externally loaded snapshot into the live state.

Policy:
- tasks: the file's list is the base. Each in-memory task is matched by id,
  else by (text, due_date). A match replaces the base entry at the base
  position (in-memory wins wholesale); unmatched in-memory tasks are appended.
  The experience flag is the only field combined: once granted on either
  side it stays granted.
- categories: order-preserving union, file first.
- timer settings, daily stats, session cycle: taken from the file when present.
- progression: imported by the caller through ProgressionEngine.import_profile().
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..tasks.task_models import Task
from ..tasks.task_store import TaskStoreState
from .snapshot import SnapshotPatch

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeReport:
    matched_by_id: int = 0
    matched_by_content: int = 0
    appended: int = 0
    from_file: int = 0


def merge_tasks(file_tasks: Sequence[Task], memory_tasks: Sequence[Task]) -> tuple[list[Task], MergeReport]:
    merged = [t.clone() for t in file_tasks]
    report = MergeReport(from_file=len(merged))
    claimed: set[int] = set()

    for mem in memory_tasks:
        idx = next((i for i, t in enumerate(merged) if i not in claimed and t.id == mem.id), None)
        by_content = False
        if idx is None:
            idx = next(
                (
                    i
                    for i, t in enumerate(merged)
                    if i not in claimed and t.text == mem.text and t.due_date == mem.due_date
                ),
                None,
            )
            by_content = idx is not None

        winner = mem.clone()
        if idx is None:
            merged.append(winner)
            claimed.add(len(merged) - 1)
            report.appended += 1
            continue

        winner.xp_awarded = winner.xp_awarded or merged[idx].xp_awarded
        winner.successor_spawned = winner.successor_spawned or merged[idx].successor_spawned
        merged[idx] = winner
        claimed.add(idx)
        if by_content:
            report.matched_by_content += 1
        else:
            report.matched_by_id += 1

    return merged, report


def union_categories(file_categories: Sequence[str], memory_categories: Sequence[str]) -> list[str]:
    return list(dict.fromkeys([*file_categories, *memory_categories]))


def smart_merge(current: TaskStoreState, incoming: SnapshotPatch) -> tuple[TaskStoreState, MergeReport]:
    """Combine live task-side state with a decoded file. Pure: inputs are not modified."""
    if incoming.tasks is not None:
        tasks, report = merge_tasks(incoming.tasks, current.tasks)
    else:
        tasks, report = [t.clone() for t in current.tasks], MergeReport()

    categories = union_categories(incoming.categories or [], current.categories)

    merged = TaskStoreState(
        tasks=tasks,
        categories=categories,
        timer=incoming.timer if incoming.timer is not None else current.timer,
        daily=incoming.daily if incoming.daily is not None else current.daily,
        session_cycle=incoming.session_cycle if incoming.session_cycle is not None else current.session_cycle,
    )
    logger.info(
        "Merged tasks: file=%d by_id=%d by_content=%d appended=%d -> %d",
        report.from_file,
        report.matched_by_id,
        report.matched_by_content,
        report.appended,
        len(tasks),
    )
    return merged, report
