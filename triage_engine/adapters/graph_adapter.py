"""Microsoft Graph adapters: Planner, To-Do, calendar events and flagged mail."""

from __future__ import annotations

from typing import Any, Optional

from triage_engine.fields import resolve, resolve_datetime, resolve_int, resolve_string, unwrap_string


def _text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("content", value.get("preview"))
    return value.strip() if isinstance(value, str) else ""


def _link(record: dict) -> Optional[str]:
    link = resolve_string(record, ("webLink", "webUrl"))
    return link or None


def planner_status(percent_complete: Optional[int]) -> str:
    if percent_complete is None:
        return "open"
    if percent_complete >= 100:
        return "done"
    if percent_complete > 0:
        return "in_progress"
    return "open"


def planner_priority(priority: Optional[int]) -> int:
    if priority is None:
        return 50
    if priority <= 1:
        return 90
    if priority <= 3:
        return 70
    if priority <= 5:
        return 50
    if priority <= 7:
        return 30
    return 20


def map_planner(record: dict) -> dict:
    return {
        "source_id": resolve_string(record, ("id",)) or None,
        "source_url": _link(record),
        "title": resolve_string(record, ("title",)) or "Untitled",
        "description": _text(resolve(record, ("details", "description"))),
        "status": planner_status(resolve_int(record, ("percentComplete",))),
        "priority": planner_priority(resolve_int(record, ("priority",))),
        "due_date": resolve_datetime(record, ("dueDateTime",)),
        "sla_breach_at": None,
        "category": "project",
    }


def todo_status(status: str) -> str:
    if status == "completed":
        return "done"
    if status == "inProgress":
        return "in_progress"
    return "open"


def todo_priority(importance: str) -> int:
    return {"high": 80, "normal": 50, "low": 30}.get((importance or "").lower(), 50)


def map_todo(record: dict) -> dict:
    return {
        "source_id": resolve_string(record, ("id",)) or None,
        "source_url": _link(record),
        "title": resolve_string(record, ("title",)) or "Untitled",
        "description": _text(resolve(record, ("body",))),
        "status": todo_status(resolve_string(record, ("status",))),
        "priority": todo_priority(resolve_string(record, ("importance",))),
        "due_date": resolve_datetime(record, ("dueDateTime",)),
        "sla_breach_at": None,
        "category": "personal",
    }


def map_calendar(record: dict) -> dict:
    return {
        "source_id": resolve_string(record, ("id",)) or None,
        "source_url": _link(record),
        "title": resolve_string(record, ("subject",)) or "Untitled Event",
        "description": _text(resolve(record, ("bodyPreview",))),
        "status": "open",
        "priority": 40,
        "due_date": resolve_datetime(record, ("start",)),
        "sla_breach_at": None,
        "category": "admin",
    }


def map_email(record: dict) -> dict:
    sender = resolve(record, ("from", "sender"))
    sender_name = ""
    if isinstance(sender, dict):
        sender_name = unwrap_string(sender.get("emailAddress")) or unwrap_string(sender)
    elif isinstance(sender, str):
        sender_name = sender
    flag = resolve(record, ("flag",))
    due = None
    if isinstance(flag, dict):
        due = resolve_datetime(flag, ("dueDateTime",))

    return {
        "source_id": resolve_string(record, ("id",)) or None,
        "source_url": _link(record),
        "title": resolve_string(record, ("subject",)) or "No Subject",
        "description": f"From: {sender_name}" if sender_name else "",
        "status": "open",
        "priority": 75 if resolve_string(record, ("importance",)).lower() == "high" else 45,
        "due_date": due,
        "sla_breach_at": None,
        "category": "admin",
    }
