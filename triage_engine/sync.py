"""Per-source sync: fetch, normalize, then swap the source's task set."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Mapping, Optional

from triage_engine.collaborators import RecordFetcher
from triage_engine.config import TriageConfig
from triage_engine.normalizer import normalize_batch
from triage_engine.schema import SOURCES, SyncResult, Task

logger = logging.getLogger(__name__)

# These can legitimately come back empty; other sources returning nothing is
# treated as an upstream glitch and the previous set is kept.
EPHEMERAL_SOURCES = frozenset({"calendar", "email"})


class TaskStore:
    """In-memory normalized task sets, replaced wholesale per source."""

    def __init__(self) -> None:
        self._by_source: dict[str, dict[str, Task]] = {}
        self._lock = threading.Lock()

    def tasks(self, source: Optional[str] = None) -> list[Task]:
        with self._lock:
            if source is not None:
                return list(self._by_source.get(source, {}).values())
            return [task for tasks in self._by_source.values() for task in tasks.values()]

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            for tasks in self._by_source.values():
                if task_id in tasks:
                    return tasks[task_id]
        return None

    def replace_source(self, source: str, tasks: Iterable[Task]) -> int:
        """Swap in a fresh set for ``source``; returns how many old tasks vanished.

        User-owned state (pin, dismissal) is carried over by task id because
        sync never undoes a user action.
        """

        fresh = {task.id: task for task in tasks}
        with self._lock:
            previous = self._by_source.get(source, {})
            for task_id, task in fresh.items():
                old = previous.get(task_id)
                if old is None:
                    continue
                task.is_pinned = old.is_pinned
                if old.status == "dismissed":
                    task.status = "dismissed"
            self._by_source[source] = fresh
        return len(set(previous) - set(fresh))

    def set_pinned(self, task_id: str, pinned: bool) -> bool:
        with self._lock:
            for tasks in self._by_source.values():
                if task_id in tasks:
                    tasks[task_id].is_pinned = pinned
                    return True
        return False

    def dismiss(self, task_id: str) -> bool:
        with self._lock:
            for tasks in self._by_source.values():
                if task_id in tasks:
                    tasks[task_id].status = "dismissed"
                    return True
        return False


class TaskSyncer:
    def __init__(
        self,
        fetcher: RecordFetcher,
        store: Optional[TaskStore] = None,
        config: Optional[TriageConfig] = None,
        credentials: Optional[Mapping[str, Mapping[str, str]]] = None,
    ) -> None:
        self.fetcher = fetcher
        self.store = store or TaskStore()
        self.config = config or TriageConfig()
        self.credentials = credentials or {}

    def sync_source(self, source: str) -> SyncResult:
        """Fetch and normalize one source; the store changes only on full success."""

        if not self.config.is_enabled(source):
            logger.info("[sync] %s: skipped, sync disabled", source)
            return SyncResult(source=source, skipped=True)

        try:
            records = self.fetcher.fetch_raw_records(source, self.credentials.get(source))
            tasks = normalize_batch(source, records or [], jira_base_url=self.config.jira_base_url)
        except Exception as exc:  # noqa: BLE001
            logger.error("[sync] %s: sync failed: %s", source, exc)
            return SyncResult(source=source, error=str(exc))

        if not tasks and source not in EPHEMERAL_SOURCES:
            logger.warning("[sync] %s: returned 0 tasks, keeping previous set to avoid an accidental purge", source)
            return SyncResult(source=source)

        removed = self.store.replace_source(source, tasks)
        logger.info("[sync] %s: synced %d tasks, removed %d stale", source, len(tasks), removed)
        return SyncResult(source=source, count=len(tasks), removed=removed)

    def sync_all(self, sources: Iterable[str] = SOURCES) -> list[SyncResult]:
        return [self.sync_source(source) for source in sources]
