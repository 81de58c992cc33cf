"""Kanban board assembly."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from triage_engine.columns import COLUMN_KEYS, map_to_column
from triage_engine.schema import Task

HIDDEN_STATUSES = frozenset({"done", "dismissed"})


def column_for(task: Task, overrides: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Optimistic override if one is held, else the mapped column."""

    if overrides and task.id in overrides:
        return overrides[task.id]
    return map_to_column(task)


def build_board(
    tasks: Iterable[Task],
    overrides: Optional[Mapping[str, str]] = None,
    sources: Optional[Iterable[str]] = ("jira",),
) -> dict[str, list[Task]]:
    """Group tasks into the fixed columns, pinned first then by priority.

    Finished workflows and dismissed tasks stay off the board. Pass
    ``sources=None`` to board every source instead of Jira only.
    """

    wanted = set(sources) if sources is not None else None
    board: dict[str, list[Task]] = {key: [] for key in COLUMN_KEYS}
    for task in tasks:
        if wanted is not None and task.source not in wanted:
            continue
        if task.status in HIDDEN_STATUSES and not (overrides and task.id in overrides):
            continue
        key = column_for(task, overrides)
        if key is None:
            continue
        board[key].append(task)

    for column in board.values():
        column.sort(key=lambda task: (not task.is_pinned, -task.priority, task.id))
    return board
