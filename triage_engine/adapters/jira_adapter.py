"""Jira issue adapter.

Accepts both the REST shape (everything under ``fields``) and the flat shape
some search tools return, so every lookup goes through the field resolver.
"""

from __future__ import annotations

from typing import Any, Optional

from triage_engine.fields import resolve, resolve_date, resolve_datetime, resolve_string
from triage_engine.sla import find_sla_object, sla_breach_at

_PRIORITY_RULES = (
    (("highest", "critical", "blocker"), 95),
    (("high",), 80),
    (("medium",), 50),
    (("lowest",), 15),
    (("low",), 30),
)
DEFAULT_PRIORITY = 50


def map_status(status: str) -> str:
    lower = (status or "").strip().lower()
    if not lower:
        return "open"
    if "done" in lower or "closed" in lower or "resolved" in lower or "cancel" in lower:
        return "done"
    if "progress" in lower or "review" in lower:
        return "in_progress"
    return "open"


def map_priority(priority: str) -> int:
    lower = (priority or "").strip().lower()
    for needles, score in _PRIORITY_RULES:
        if any(needle in lower for needle in needles):
            return score
    return DEFAULT_PRIORITY


def _browse_url(key: str, record: dict, base_url: Optional[str]) -> Optional[str]:
    if base_url and key:
        return f"{base_url.rstrip('/')}/browse/{key}"
    for candidate in ("url", "self"):
        value = record.get(candidate)
        if isinstance(value, str) and value:
            return value
    return None


def _description(record: dict, assignee: str, status: str, priority: str, created: str) -> str:
    parts = [
        f"Assignee: {assignee or 'Unassigned'}",
        f"Status: {status or 'unknown'}",
        f"Priority: {priority or 'unknown'}",
        f"Created: {created or 'unknown'}",
    ]
    body: Any = resolve(record, ("description",))
    if isinstance(body, str) and body.strip():
        parts.append(body.strip())
    return "\n".join(parts)


def map_record(record: dict, jira_base_url: Optional[str] = None) -> dict:
    key = resolve_string(record, ("key",)) or resolve_string(record, ("id",))
    status = resolve_string(record, ("status",))
    priority = resolve_string(record, ("priority",))
    assignee = resolve_string(record, ("assignee",))
    created = resolve_date(record, ("created", "created_at"))

    return {
        "source_id": key or None,
        "source_url": _browse_url(key, record, jira_base_url),
        "title": resolve_string(record, ("summary", "title")) or "Untitled",
        "description": _description(record, assignee, status, priority, created),
        "status": map_status(status),
        "priority": map_priority(priority),
        "due_date": resolve_datetime(record, ("duedate", "due_date")),
        "sla_breach_at": resolve_datetime(record, ("sla_breach_at",)) or sla_breach_at(record),
        "category": "urgent_sla" if find_sla_object(record) is not None else "project",
    }
