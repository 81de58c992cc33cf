"""Dashboard KPIs over a task feed."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone

from triage_engine.attention import classify
from triage_engine.fields import resolve_datetime
from triage_engine.filters import date_group
from triage_engine.schema import REASON_OVERDUE_UPDATE, REASON_SLA_APPROACHING, REASON_SLA_BREACHED, Task

CREATED_KEYS = ("created", "createdDateTime", "created_at")
INACTIVE_STATUSES = frozenset({"done", "dismissed"})


def compute_kpis(tasks: list[Task], now: datetime, high_priority: int = 80) -> dict:
    """Compute feed-level counts, Jira SLA counts and average age."""

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if not tasks:
        return {
            "total": 0,
            "active": 0,
            "by_source": {},
            "overdue": 0,
            "due_today": 0,
            "needing_updates": 0,
            "sla_breached": 0,
            "breaching_next": 0,
            "high_priority_open": 0,
            "avg_age_days": 0.0,
        }

    by_source = Counter(task.source for task in tasks)
    active = [task for task in tasks if task.status not in INACTIVE_STATUSES]
    groups = Counter(date_group(task, now) for task in active)

    reasons = Counter()
    for task in tasks:
        if task.source != "jira":
            continue
        reasons.update(classify(task, now).reasons)

    ages = []
    for task in active:
        created = resolve_datetime(task.raw_data, CREATED_KEYS)
        if created is not None and created <= now:
            ages.append((now - created).total_seconds() / 86400.0)

    return {
        "total": len(tasks),
        "active": len(active),
        "by_source": dict(by_source),
        "overdue": groups["overdue"],
        "due_today": groups["today"],
        "needing_updates": reasons[REASON_OVERDUE_UPDATE],
        "sla_breached": reasons[REASON_SLA_BREACHED],
        "breaching_next": reasons[REASON_SLA_APPROACHING],
        "high_priority_open": sum(1 for task in active if task.priority >= high_priority),
        "avg_age_days": round(sum(ages) / len(ages), 1) if ages else 0.0,
    }
