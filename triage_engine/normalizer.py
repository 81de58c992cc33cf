"""Raw vendor record -> canonical Task."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Callable, Iterable, Optional

from triage_engine.adapters import graph_adapter, jira_adapter, milestone_adapter, monday_adapter
from triage_engine.fields import resolve, resolve_datetime, resolve_int, resolve_string
from triage_engine.schema import CATEGORIES, STATUSES, RawRecord, Task

logger = logging.getLogger(__name__)


def _map_generic(record: dict) -> dict:
    status = resolve_string(record, ("status", "state")).strip().lower().replace(" ", "_")
    priority = resolve_int(record, ("priority",))
    description = resolve(record, ("description", "body", "details"))
    category = resolve_string(record, ("category",)).strip().lower()
    return {
        "source_id": resolve_string(record, ("source_id", "id", "key")) or None,
        "source_url": resolve_string(record, ("source_url", "url", "webLink")) or None,
        "title": resolve_string(record, ("title", "summary", "subject", "name")) or "Untitled",
        "description": description if isinstance(description, str) else "",
        "status": status if status in STATUSES else "open",
        "priority": 50 if priority is None else priority,
        "due_date": resolve_datetime(record, ("due_date", "duedate", "dueDateTime")),
        "sla_breach_at": resolve_datetime(record, ("sla_breach_at",)),
        "category": category if category in CATEGORIES else None,
    }


_MAPPERS: dict[str, Callable[[dict], dict]] = {
    "planner": graph_adapter.map_planner,
    "todo": graph_adapter.map_todo,
    "calendar": graph_adapter.map_calendar,
    "email": graph_adapter.map_email,
    "monday": monday_adapter.map_record,
    "milestone": milestone_adapter.map_record,
}


def _canonical_json(raw: Any) -> str:
    return json.dumps(raw, sort_keys=True, default=str, separators=(",", ":"))


def task_id(source: str, source_id: Optional[str], title: str, raw: Any) -> str:
    """Stable cross-source id; hashes title + payload when the source gives no id."""

    if source_id:
        return f"{source}:{source_id}"
    digest = hashlib.sha1(f"{title}\n{_canonical_json(raw)}".encode("utf-8")).hexdigest()[:16]
    return f"{source}:h-{digest}"


def _clamp_priority(value: Any) -> int:
    try:
        return max(0, min(100, int(value)))
    except (TypeError, ValueError):
        return 50


def normalize(source: str, raw: RawRecord, *, jira_base_url: Optional[str] = None) -> Task:
    """Build a Task from one raw record.

    Total over any JSON object: unreadable fields fall back to empty values.
    The record itself is kept untouched in ``raw_data``.
    """

    source = (source or "").strip().lower()
    record = raw if isinstance(raw, dict) else {}
    if source == "jira":
        mapped = jira_adapter.map_record(record, jira_base_url=jira_base_url)
    else:
        mapped = _MAPPERS.get(source, _map_generic)(record)

    title = mapped.get("title") or ""
    source_id = mapped.get("source_id")
    return Task(
        id=task_id(source, source_id, title, raw),
        source=source,
        source_id=source_id,
        title=title,
        description=mapped.get("description") or "",
        status=mapped.get("status") or "open",
        due_date=mapped.get("due_date"),
        priority=_clamp_priority(mapped.get("priority")),
        sla_breach_at=mapped.get("sla_breach_at"),
        raw_data=raw,
        source_url=mapped.get("source_url"),
        category=mapped.get("category"),
    )


def normalize_batch(
    source: str, records: Iterable[Any], *, jira_base_url: Optional[str] = None
) -> list[Task]:
    """Normalize a poll's worth of records; non-object entries are skipped."""

    tasks: list[Task] = []
    for index, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            logger.warning("[normalize] %s: skipping item %d, expected an object", source, index)
            continue
        tasks.append(normalize(source, record, jira_base_url=jira_base_url))
    return tasks
