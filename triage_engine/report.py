"""JSON-friendly triage report shared by the CLI and the Streamlit demo."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from triage_engine.attention import needs_attention
from triage_engine.board import build_board
from triage_engine.columns import COLUMNS
from triage_engine.metrics import compute_kpis
from triage_engine.schema import AttentionResult, Task


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def task_summary(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "source": task.source,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "due_date": _iso(task.due_date),
        "sla_breach_at": _iso(task.sla_breach_at),
        "is_pinned": task.is_pinned,
        "source_url": task.source_url,
    }


def attention_summary(task: Task, result: AttentionResult) -> dict[str, Any]:
    return {
        **task_summary(task),
        "reasons": sorted(result.reasons),
        "urgency_score": result.urgency_score,
        "sla_remaining_ms": result.sla_remaining_ms,
    }


def build_report(
    tasks: list[Task],
    now: datetime,
    overrides: Optional[Mapping[str, str]] = None,
    high_priority: int = 80,
) -> dict[str, Any]:
    board = build_board(tasks, overrides, sources=None)
    return {
        "generated_at": now.isoformat(),
        "kpis": compute_kpis(tasks, now, high_priority=high_priority),
        "board": [
            {
                "key": column.key,
                "label": column.label,
                "tasks": [task_summary(task) for task in board[column.key]],
            }
            for column in COLUMNS
        ],
        "needs_attention": [attention_summary(task, result) for task, result in needs_attention(tasks, now)],
    }
