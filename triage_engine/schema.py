"""Core data schema for aggregated tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

SOURCES = ("jira", "planner", "todo", "monday", "email", "calendar", "milestone")
STATUSES = ("open", "in_progress", "done", "snoozed", "dismissed")
CATEGORIES = ("urgent_sla", "team", "project", "admin", "personal")

REASON_OVERDUE_UPDATE = "overdue_update"
REASON_SLA_BREACHED = "sla_breached"
REASON_SLA_APPROACHING = "sla_approaching"

RawRecord = dict[str, Any]


@dataclass
class Task:
    """Canonical task record shared by every triage module."""

    id: str
    source: str
    source_id: Optional[str]
    title: str
    description: str
    status: str
    due_date: Optional[datetime]
    priority: int
    sla_breach_at: Optional[datetime]
    raw_data: RawRecord
    is_pinned: bool = False
    source_url: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class AttentionResult:
    """Triage flags and urgency for one task, recomputed on demand."""

    task_id: str
    reasons: frozenset[str]
    urgency_score: float
    sla_remaining_ms: Optional[int]

    @property
    def needs_attention(self) -> bool:
        return bool(self.reasons)


@dataclass(frozen=True)
class TransitionCandidate:
    """Workflow action a vendor exposes on a task at a point in time."""

    id: str
    name: str
    to_status_name: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: dict) -> "TransitionCandidate":
        to = raw.get("to")
        if isinstance(to, dict):
            to_name = to.get("name")
        elif isinstance(to, str):
            to_name = to
        else:
            to_name = raw.get("to_status_name")
        return cls(
            id=str(raw.get("id", "")),
            name=str(raw.get("name") or ""),
            to_status_name=str(to_name) if to_name else None,
        )


@dataclass(frozen=True)
class BoardColumn:
    """Fixed kanban column and the status vocabulary that lands in it."""

    key: str
    label: str
    vendor_statuses: tuple[str, ...]
    normalized_statuses: tuple[str, ...] = ()
    color: str = "#6b7280"


@dataclass(frozen=True)
class ScoredTransition:
    candidate: TransitionCandidate
    score: int


@dataclass
class SyncResult:
    source: str
    count: int = 0
    removed: int = 0
    skipped: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TransitionOutcome:
    task_id: str
    ok: bool
    transition_id: Optional[str] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
