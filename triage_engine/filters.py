"""Ownership and due-date grouping helpers for task lists."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from triage_engine.schema import Task

UNASSIGNED = "Unassigned"
OWNERSHIP_FILTERS = ("mine", "unassigned", "all")

DATE_GROUPS = ("overdue", "today", "this_week", "next_week", "future", "no_date")
DATE_GROUP_LABELS = {
    "overdue": "Overdue",
    "today": "Today",
    "this_week": "This Week",
    "next_week": "Next Week",
    "future": "Future",
    "no_date": "No Date",
}

_ASSIGNEE_RE = re.compile(r"^Assignee:\s*(.+)$", re.MULTILINE)


def get_assignee(task: Task) -> str:
    """Assignee from the ``Assignee:`` metadata line adapters write."""

    match = _ASSIGNEE_RE.search(task.description or "")
    if not match:
        return UNASSIGNED
    return match.group(1).strip() or UNASSIGNED


def _is_unassigned(name: str) -> bool:
    return name.strip().lower() in ("", UNASSIGNED.lower())


def filter_by_ownership(tasks: Iterable[Task], ownership: str, user_name: str) -> list[Task]:
    if ownership not in OWNERSHIP_FILTERS:
        raise ValueError(f"Unknown ownership filter '{ownership}', expected one of {list(OWNERSHIP_FILTERS)}")
    tasks = list(tasks)
    if ownership == "all":
        return tasks
    if ownership == "unassigned":
        return [task for task in tasks if _is_unassigned(get_assignee(task))]

    user = user_name.strip().lower()
    if not user:
        return []
    mine = []
    for task in tasks:
        assignee = get_assignee(task).lower()
        if _is_unassigned(assignee):
            continue
        if user in assignee or assignee in user:
            mine.append(task)
    return mine


def _local_day(value: datetime, tz) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


def date_group(task: Task, now: datetime) -> str:
    """Bucket a task's due date relative to ``now``; weeks start on Monday."""

    if task.due_date is None:
        return "no_date"
    tz = now.tzinfo or timezone.utc
    today = _local_day(now, tz)
    due = _local_day(task.due_date, tz)

    if due < today:
        return "overdue"
    if due == today:
        return "today"
    week_start = today - timedelta(days=today.weekday())
    week_end = week_start + timedelta(days=7)
    if due < week_end:
        return "this_week"
    if due < week_end + timedelta(days=7):
        return "next_week"
    return "future"


def group_by_due_date(tasks: Iterable[Task], now: datetime) -> dict[str, list[Task]]:
    groups: dict[str, list[Task]] = {key: [] for key in DATE_GROUPS}
    for task in tasks:
        groups[date_group(task, now)].append(task)
    return groups
