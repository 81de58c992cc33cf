"""Optimistic column overrides held while the upstream index catches up.

After a transition is applied the card is shown in its target column at once.
The upstream search index lags writes, so a refresh is requested after
``refresh_delay_s``; once that refresh returns the override is dropped
``clear_delay_s`` later and the board falls back to synced data.

Per task::

    synced -> optimistic-pending-refresh -> optimistic-pending-clear -> synced

Every timer is a cancellable handle tagged with a generation number, so a
re-commit or ``close()`` makes stale callbacks no-ops.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from triage_engine.collaborators import TransitionGateway
from triage_engine.columns import best_transition, get_column, map_to_column
from triage_engine.config import TriageConfig
from triage_engine.schema import Task, TransitionCandidate, TransitionOutcome

logger = logging.getLogger(__name__)

STATE_SYNCED = "synced"
STATE_PENDING_REFRESH = "optimistic-pending-refresh"
STATE_PENDING_CLEAR = "optimistic-pending-clear"

REFRESH_DELAY_S = 5.0
CLEAR_DELAY_S = 3.0


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class ThreadingScheduler:
    """Runs callbacks on ``threading.Timer`` daemon threads."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class _Override:
    column_key: str
    state: str
    generation: int
    handle: Optional[TimerHandle] = None


class ReconciliationController:
    def __init__(
        self,
        gateway: TransitionGateway,
        refresh: Callable[[], Any],
        *,
        scheduler: Optional[Scheduler] = None,
        refresh_delay_s: float = REFRESH_DELAY_S,
        clear_delay_s: float = CLEAR_DELAY_S,
    ) -> None:
        self._gateway = gateway
        self._refresh = refresh
        self._scheduler = scheduler or ThreadingScheduler()
        self._refresh_delay_s = refresh_delay_s
        self._clear_delay_s = clear_delay_s
        self._overrides: dict[str, _Override] = {}
        self._generation = 0
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def from_config(
        cls,
        gateway: TransitionGateway,
        refresh: Callable[[], Any],
        config: TriageConfig,
        *,
        scheduler: Optional[Scheduler] = None,
    ) -> "ReconciliationController":
        return cls(
            gateway,
            refresh,
            scheduler=scheduler,
            refresh_delay_s=config.refresh_delay_s,
            clear_delay_s=config.clear_delay_s,
        )

    # -- queries -----------------------------------------------------------

    def state(self, task_id: str) -> str:
        with self._lock:
            entry = self._overrides.get(task_id)
            return entry.state if entry else STATE_SYNCED

    def override_for(self, task_id: str) -> Optional[str]:
        with self._lock:
            entry = self._overrides.get(task_id)
            return entry.column_key if entry else None

    def overrides(self) -> dict[str, str]:
        with self._lock:
            return {task_id: entry.column_key for task_id, entry in self._overrides.items()}

    # -- commands ----------------------------------------------------------

    def commit_transition(
        self,
        task: Task,
        target_column: str,
        *,
        transition_id: Optional[str] = None,
        field_updates: Optional[dict[str, Any]] = None,
        comment: Optional[str] = None,
    ) -> TransitionOutcome:
        """Apply a drag-and-drop move and start the optimistic override lifecycle.

        Without an explicit ``transition_id`` the best-scoring vendor transition
        is picked; if none scores, nothing is applied.
        """

        get_column(target_column)
        if self._closed:
            return TransitionOutcome(task.id, ok=False, error="controller closed")
        if map_to_column(task) == target_column and self.override_for(task.id) is None:
            return TransitionOutcome(task.id, ok=True, details={"unchanged": True})

        if transition_id is None:
            try:
                raw_candidates = self._gateway.fetch_transition_candidates(task.id)
            except Exception as exc:  # noqa: BLE001
                logger.warning("[reconcile] %s: fetching transitions failed: %s", task.id, exc)
                return TransitionOutcome(task.id, ok=False, error=f"fetch transitions failed: {exc}")
            candidates = [TransitionCandidate.from_raw(raw) for raw in raw_candidates or []]
            chosen = best_transition(target_column, candidates)
            if chosen is None:
                return TransitionOutcome(
                    task.id,
                    ok=False,
                    error="no matching transition",
                    details={"candidates": [candidate.name for candidate in candidates]},
                )
            transition_id = chosen.id

        generation = self._set_override(task.id, target_column)
        try:
            self._gateway.apply_transition(task.id, transition_id, field_updates, comment)
        except Exception as exc:  # noqa: BLE001
            logger.warning("[reconcile] %s: transition %s failed: %s", task.id, transition_id, exc)
            self._drop(task.id, generation)
            return TransitionOutcome(task.id, ok=False, transition_id=transition_id, error=str(exc))

        self._schedule(task.id, generation, self._refresh_delay_s, self._on_refresh_due)
        logger.info("[reconcile] %s: moved to %s via transition %s", task.id, target_column, transition_id)
        return TransitionOutcome(task.id, ok=True, transition_id=transition_id)

    def manual_refresh(self) -> bool:
        """Refresh on user request, dropping overrides whose timed refresh failed."""

        try:
            self._refresh()
        except Exception as exc:  # noqa: BLE001
            logger.warning("[reconcile] manual refresh failed: %s", exc)
            return False
        with self._lock:
            stale = [
                task_id
                for task_id, entry in self._overrides.items()
                if entry.state == STATE_PENDING_REFRESH and entry.handle is None
            ]
            for task_id in stale:
                del self._overrides[task_id]
        return True

    def close(self) -> None:
        """Cancel every pending timer; later callbacks become no-ops."""

        with self._lock:
            self._closed = True
            for entry in self._overrides.values():
                if entry.handle is not None:
                    entry.handle.cancel()
            self._overrides.clear()

    # -- internals ---------------------------------------------------------

    def _set_override(self, task_id: str, column_key: str) -> int:
        with self._lock:
            previous = self._overrides.get(task_id)
            if previous is not None and previous.handle is not None:
                previous.handle.cancel()
            self._generation += 1
            self._overrides[task_id] = _Override(column_key, STATE_PENDING_REFRESH, self._generation)
            return self._generation

    def _drop(self, task_id: str, generation: int) -> None:
        with self._lock:
            entry = self._overrides.get(task_id)
            if entry is not None and entry.generation == generation:
                del self._overrides[task_id]

    def _current(self, task_id: str, generation: int) -> Optional[_Override]:
        entry = self._overrides.get(task_id)
        if entry is None or entry.generation != generation or self._closed:
            return None
        return entry

    def _schedule(self, task_id: str, generation: int, delay_s: float, callback: Callable[[str, int], None]) -> None:
        with self._lock:
            entry = self._current(task_id, generation)
            if entry is None:
                return
            entry.handle = self._scheduler.call_later(delay_s, lambda: callback(task_id, generation))

    def _on_refresh_due(self, task_id: str, generation: int) -> None:
        with self._lock:
            entry = self._current(task_id, generation)
            if entry is None:
                return
            entry.handle = None

        try:
            self._refresh()
        except Exception as exc:  # noqa: BLE001
            logger.warning("[reconcile] %s: refresh failed, keeping optimistic column: %s", task_id, exc)
            return

        with self._lock:
            entry = self._current(task_id, generation)
            if entry is None:
                return
            entry.state = STATE_PENDING_CLEAR
        self._schedule(task_id, generation, self._clear_delay_s, self._on_clear_due)

    def _on_clear_due(self, task_id: str, generation: int) -> None:
        self._drop(task_id, generation)
        logger.debug("[reconcile] %s: optimistic column cleared", task_id)
