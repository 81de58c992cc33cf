"""Contracts for the integration layer the triage core talks to.

Implementations live outside this package (vendor API clients). Failures
are signalled by raising; the core turns them into explicit result values
and never retries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class RecordFetcher(Protocol):
    def fetch_raw_records(self, source: str, credentials: Optional[Mapping[str, str]]) -> list[dict]:
        ...


class TransitionGateway(Protocol):
    def fetch_transition_candidates(self, task_id: str) -> list[dict]:
        ...

    def apply_transition(
        self,
        task_id: str,
        transition_id: str,
        field_updates: Optional[dict[str, Any]] = None,
        comment: Optional[str] = None,
    ) -> None:
        ...
