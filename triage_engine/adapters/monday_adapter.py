"""Monday.com item adapter."""

from __future__ import annotations

from typing import Optional

from triage_engine.fields import parse_datetime, resolve, resolve_string


def find_column_value(record: dict, *keywords: str) -> Optional[str]:
    """Text of the first ``column_values`` entry whose id or title contains a keyword."""

    columns = resolve(record, ("column_values",))
    if not isinstance(columns, list):
        return None
    for column in columns:
        if not isinstance(column, dict):
            continue
        column_id = str(column.get("id") or "").lower()
        title = str(column.get("title") or "").lower()
        if any(keyword in column_id or keyword in title for keyword in keywords):
            for key in ("text", "value"):
                value = column.get(key)
                if isinstance(value, str) and value:
                    return value
            return None
    return None


def map_status(status: Optional[str]) -> str:
    lower = (status or "").lower()
    if "done" in lower or "completed" in lower or "closed" in lower:
        return "done"
    if "progress" in lower or "working" in lower:
        return "in_progress"
    return "open"


def map_priority(priority: Optional[str]) -> int:
    lower = (priority or "").lower()
    if "critical" in lower:
        return 95
    if "high" in lower:
        return 80
    if "medium" in lower:
        return 55
    if "low" in lower:
        return 30
    return 55


def map_record(record: dict) -> dict:
    item_id = resolve_string(record, ("id",))
    board = resolve(record, ("board",))
    board_id = resolve_string(board, ("id",)) if isinstance(board, dict) else resolve_string(record, ("board_id",))
    board_name = resolve_string(board, ("name",)) if isinstance(board, dict) else resolve_string(record, ("board_name",))

    return {
        "source_id": item_id or None,
        "source_url": f"https://monday.com/boards/{board_id}/pulses/{item_id}" if board_id and item_id else None,
        "title": resolve_string(record, ("name",)) or "Untitled",
        "description": f"Board: {board_name}" if board_name else "",
        "status": map_status(find_column_value(record, "status")),
        "priority": map_priority(find_column_value(record, "priority")),
        "due_date": parse_datetime(find_column_value(record, "date", "due", "deadline", "timeline")),
        "sla_breach_at": None,
        "category": "project",
    }
