"""Kanban column assignment and drag-target transition selection."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from triage_engine.fields import resolve_string
from triage_engine.schema import BoardColumn, ScoredTransition, Task, TransitionCandidate

COLUMNS: tuple[BoardColumn, ...] = (
    BoardColumn(
        key="open",
        label="Open",
        vendor_statuses=("open", "to do", "new", "backlog", "reopened"),
        normalized_statuses=("open",),
        color="#3b82f6",
    ),
    BoardColumn(
        key="wip",
        label="Work In Progress",
        vendor_statuses=("in progress", "in development", "in review", "code review"),
        normalized_statuses=("in_progress",),
        color="#f59e0b",
    ),
    BoardColumn(
        key="waiting-agent",
        label="Waiting on Agent",
        vendor_statuses=("waiting for support", "waiting on agent", "pending"),
        color="#f97316",
    ),
    BoardColumn(
        key="waiting-requestor",
        label="Waiting on Requestor",
        vendor_statuses=("waiting for customer", "waiting on requestor", "awaiting customer"),
        color="#ef4444",
    ),
    BoardColumn(
        key="waiting-partner",
        label="Waiting on Partner",
        vendor_statuses=("waiting on partner", "escalated", "with third party"),
        color="#8b5cf6",
    ),
)
COLUMN_KEYS = tuple(column.key for column in COLUMNS)
DEFAULT_COLUMN = "open"
DONE_STATUSES = frozenset({"done", "closed", "resolved", "cancelled"})

_COLUMNS_BY_KEY = {column.key: column for column in COLUMNS}
_VENDOR_TO_COLUMN = {status: column.key for column in COLUMNS for status in column.vendor_statuses}
_NORMALIZED_TO_COLUMN = {status: column.key for column in COLUMNS for status in column.normalized_statuses}

_STATUS_LINE_RE = re.compile(r"^Status:\s*(.+)$", re.MULTILINE)

SCORE_TO_STATUS_EXACT = 100
SCORE_NAME_STATUS_EXACT = 90
SCORE_TO_LABEL_EXACT = 85
SCORE_NAME_LABEL_EXACT = 80
SCORE_TO_CONTAINS = 60
SCORE_NAME_CONTAINS = 50
SCORE_OVERLAP_BASE = 30
SCORE_OVERLAP_PER_WORD = 5
MIN_WORD_OVERLAP = 2


def get_column(key: str) -> BoardColumn:
    try:
        return _COLUMNS_BY_KEY[key]
    except KeyError:
        raise ValueError(f"Unknown column '{key}', expected one of {list(COLUMN_KEYS)}") from None


def original_status(task: Task) -> str:
    """Vendor status string as it was before normalization."""

    status = resolve_string(task.raw_data, ("status",))
    if status:
        return status
    match = _STATUS_LINE_RE.search(task.description or "")
    if match:
        return match.group(1).strip()
    return task.status


def _fuzzy_column(lower: str) -> Optional[str]:
    waiting_or_pending = "waiting" in lower or "pending" in lower
    if "progress" in lower or "review" in lower or "development" in lower:
        return "wip"
    if waiting_or_pending and ("agent" in lower or "support" in lower):
        return "waiting-agent"
    if waiting_or_pending and ("customer" in lower or "requestor" in lower):
        return "waiting-requestor"
    if ("waiting" in lower or "escalat" in lower) and ("partner" in lower or "third" in lower):
        return "waiting-partner"
    return None


def map_to_column(task: Task) -> Optional[str]:
    """Board column for a task, or None when its workflow is finished."""

    lower = original_status(task).strip().lower()
    if lower in DONE_STATUSES:
        return None

    exact = _VENDOR_TO_COLUMN.get(lower)
    if exact:
        return exact

    fuzzy = _fuzzy_column(lower)
    if fuzzy:
        return fuzzy

    return _NORMALIZED_TO_COLUMN.get(task.status, DEFAULT_COLUMN)


def _words(text: str) -> set[str]:
    return set(text.split())


def score_transition(candidate: TransitionCandidate, column: BoardColumn) -> int:
    to_name = (candidate.to_status_name or "").strip().lower()
    name = (candidate.name or "").strip().lower()
    label = column.label.lower()
    statuses = set(column.vendor_statuses)

    if to_name and to_name in statuses:
        return SCORE_TO_STATUS_EXACT
    if name and name in statuses:
        return SCORE_NAME_STATUS_EXACT
    if to_name and to_name == label:
        return SCORE_TO_LABEL_EXACT
    if name and name == label:
        return SCORE_NAME_LABEL_EXACT
    if to_name and (label in to_name or to_name in label):
        return SCORE_TO_CONTAINS
    if name and (label in name or name in label):
        return SCORE_NAME_CONTAINS

    label_words = _words(label)
    overlap = max(len(_words(to_name) & label_words), len(_words(name) & label_words))
    if overlap >= MIN_WORD_OVERLAP:
        return SCORE_OVERLAP_BASE + SCORE_OVERLAP_PER_WORD * overlap
    return 0


def score_transitions(column_key: str, candidates: Iterable[TransitionCandidate]) -> list[ScoredTransition]:
    column = get_column(column_key)
    return [ScoredTransition(candidate, score_transition(candidate, column)) for candidate in candidates]


def best_transition(column_key: str, candidates: Iterable[TransitionCandidate]) -> Optional[TransitionCandidate]:
    """Highest-scoring candidate for a drag target; first wins ties, None if nothing scores."""

    best: Optional[ScoredTransition] = None
    for scored in score_transitions(column_key, candidates):
        if scored.score > 0 and (best is None or scored.score > best.score):
            best = scored
    return best.candidate if best else None
