"""Attention reasons and urgency scoring for normalized tasks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from triage_engine.fields import resolve_datetime, resolve_string
from triage_engine.schema import (
    REASON_OVERDUE_UPDATE,
    REASON_SLA_APPROACHING,
    REASON_SLA_BREACHED,
    AttentionResult,
    Task,
)
from triage_engine.sla import get_remaining_time_ms, is_breached

SLA_APPROACHING_MS = 30 * 60 * 1000
UPDATE_SILENCE_MS = 4 * 60 * 60 * 1000

CLOSED_STATUSES = frozenset({"resolved", "closed"})
WAITING_ELSEWHERE_STATUSES = frozenset({"waiting on requestor", "waiting on partner"})
EXCLUDED_QUEUE = "development"
EXCLUDED_REQUEST_TYPE = "onboarding"

NEXT_UPDATE_KEYS = ("agent next update", "agent_next_update")
LAST_COMMENT_KEYS = ("last agent public comment", "agent_last_updated")
QUEUE_KEYS = ("queue",)
REQUEST_TYPE_KEYS = ("request type", "requestType", "request_type")

# Score bands never overlap: breached > approaching > overdue-only > none.
BREACHED_BASE = 70.0
APPROACHING_BASE = 40.0
OVERDUE_ONLY_BASE = 10.0
BAND_WIDTH = 25.0
BREACH_HALF_LIFE_MS = 60 * 60 * 1000
STALENESS_HALF_LIFE_MS = 4 * 60 * 60 * 1000


def _aware(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def _saturate(value_ms: float, half_life_ms: float) -> float:
    """Map [0, inf) onto [0, 1), strictly increasing."""

    value_ms = max(0.0, value_ms)
    return value_ms / (value_ms + half_life_ms)


def update_staleness_ms(task: Task, now: datetime) -> Optional[float]:
    """How far past due the agent update is, or None when it is not due.

    Either the scheduled next update being in the past or the last public
    comment being older than ``UPDATE_SILENCE_MS`` is enough on its own.
    """

    if task.source != "jira":
        return None
    raw = task.raw_data
    vendor_status = resolve_string(raw, ("status",)).strip().lower()
    # No workflow status means the update obligation cannot be judged.
    if not vendor_status:
        return None
    if vendor_status in CLOSED_STATUSES or task.status.lower() in CLOSED_STATUSES:
        return None
    if vendor_status in WAITING_ELSEWHERE_STATUSES:
        return None
    if resolve_string(raw, QUEUE_KEYS).strip().lower() == EXCLUDED_QUEUE:
        return None
    if resolve_string(raw, REQUEST_TYPE_KEYS).strip().lower() == EXCLUDED_REQUEST_TYPE:
        return None

    now = _aware(now)
    candidates: list[float] = []
    next_update = resolve_datetime(raw, NEXT_UPDATE_KEYS)
    if next_update is not None and next_update < now:
        candidates.append((now - next_update).total_seconds() * 1000.0)
    last_comment = resolve_datetime(raw, LAST_COMMENT_KEYS)
    if last_comment is not None:
        silence_ms = (now - last_comment).total_seconds() * 1000.0
        if silence_ms > UPDATE_SILENCE_MS:
            candidates.append(silence_ms - UPDATE_SILENCE_MS)
    return max(candidates) if candidates else None


def urgency_score(reasons: frozenset[str], remaining_ms: Optional[int], staleness_ms: Optional[float]) -> float:
    if REASON_SLA_BREACHED in reasons:
        overdue_ms = -remaining_ms if remaining_ms is not None and remaining_ms < 0 else 0
        score = BREACHED_BASE + BAND_WIDTH * _saturate(overdue_ms, BREACH_HALF_LIFE_MS)
    elif REASON_SLA_APPROACHING in reasons:
        fraction_used = 1.0 - (remaining_ms or 0) / SLA_APPROACHING_MS
        score = APPROACHING_BASE + BAND_WIDTH * fraction_used
    elif REASON_OVERDUE_UPDATE in reasons:
        score = OVERDUE_ONLY_BASE + BAND_WIDTH * _saturate(staleness_ms or 0.0, STALENESS_HALF_LIFE_MS)
    else:
        score = 0.0
    return max(0.0, min(100.0, score))


def classify(task: Task, now: datetime) -> AttentionResult:
    """Attach attention reasons and an urgency score to one task."""

    remaining_ms = get_remaining_time_ms(task.raw_data)
    reasons: set[str] = set()

    breached = is_breached(task.raw_data)
    if breached:
        reasons.add(REASON_SLA_BREACHED)
    elif remaining_ms is not None and 0 <= remaining_ms <= SLA_APPROACHING_MS:
        reasons.add(REASON_SLA_APPROACHING)

    staleness_ms = update_staleness_ms(task, now)
    if staleness_ms is not None:
        reasons.add(REASON_OVERDUE_UPDATE)

    frozen = frozenset(reasons)
    return AttentionResult(
        task_id=task.id,
        reasons=frozen,
        urgency_score=urgency_score(frozen, remaining_ms, staleness_ms),
        sla_remaining_ms=remaining_ms,
    )


def classify_all(tasks: Iterable[Task], now: datetime) -> dict[str, AttentionResult]:
    return {task.id: classify(task, now) for task in tasks}


def needs_attention(tasks: Iterable[Task], now: datetime) -> list[tuple[Task, AttentionResult]]:
    """Tasks carrying at least one reason, most urgent first.

    An overdue agent update only breaks ties between equal scores; it never
    lifts a task above one further into its SLA band.
    """

    flagged = []
    for task in tasks:
        result = classify(task, now)
        if result.needs_attention:
            flagged.append((task, result))
    return sorted(
        flagged,
        key=lambda pair: (-pair[1].urgency_score, REASON_OVERDUE_UPDATE not in pair[1].reasons, pair[0].id),
    )
