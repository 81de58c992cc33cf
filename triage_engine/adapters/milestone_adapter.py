"""Onboarding milestone adapter."""

from __future__ import annotations

from triage_engine.fields import resolve_datetime, resolve_int, resolve_string

_STATUS_MAP = {"pending": "open", "in_progress": "in_progress", "complete": "done", "completed": "done"}


def map_record(record: dict) -> dict:
    delivery_id = resolve_string(record, ("delivery_id",))
    template_id = resolve_string(record, ("template_id",))
    source_id = resolve_string(record, ("source_id",))
    if not source_id and delivery_id and template_id:
        source_id = f"milestone:{delivery_id}:{template_id}"
    if not source_id:
        source_id = resolve_string(record, ("id",))

    account = resolve_string(record, ("account",))
    name = resolve_string(record, ("template_name", "name", "title"))
    status = _STATUS_MAP.get(resolve_string(record, ("status",)).lower(), "open")

    priority = resolve_int(record, ("priority",))
    if priority is None:
        priority = 20 if status == "done" else 50

    return {
        "source_id": source_id or None,
        "source_url": None,
        "title": f"{account} - {name}" if account and name else (name or account or "Untitled milestone"),
        "description": f"Delivery milestone for {account}" if account else "",
        "status": status,
        "priority": priority,
        "due_date": resolve_datetime(record, ("target_date", "due_date")),
        "sla_breach_at": None,
        "category": "project",
    }
