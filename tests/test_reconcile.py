import pytest

from triage_engine.board import build_board
from triage_engine.config import TriageConfig
from triage_engine.normalizer import normalize
from triage_engine.reconcile import (
    STATE_PENDING_CLEAR,
    STATE_PENDING_REFRESH,
    STATE_SYNCED,
    ReconciliationController,
)


class _Handle:
    def __init__(self, scheduler, due, callback):
        self.scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler driven by ``advance``."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay_s, callback):
        handle = _Handle(self, self.now + delay_s, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.handles.remove(handle)
            self.now = handle.due
            handle.callback()
        self.now = target

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]


class FakeGateway:
    def __init__(self, candidates=None, fail_apply=False):
        self.candidates = candidates if candidates is not None else [
            {"id": "11", "name": "Escalate", "to": {"name": "Waiting for Support"}},
            {"id": "21", "name": "Close"},
        ]
        self.fail_apply = fail_apply
        self.applied = []

    def fetch_transition_candidates(self, task_id):
        return self.candidates

    def apply_transition(self, task_id, transition_id, field_updates=None, comment=None):
        if self.fail_apply:
            raise RuntimeError("HTTP 400 transition not allowed")
        self.applied.append((task_id, transition_id, field_updates, comment))


class FakeRefresh:
    def __init__(self):
        self.calls = 0
        self.fail = False

    def __call__(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("search index unavailable")


def _task(status="Open"):
    return normalize("jira", {"key": "SD-1", "fields": {"status": {"name": status}}})


@pytest.fixture
def harness():
    scheduler = ManualScheduler()
    gateway = FakeGateway()
    refresh = FakeRefresh()
    controller = ReconciliationController(gateway, refresh, scheduler=scheduler)
    return controller, scheduler, gateway, refresh


def test_override_lifecycle(harness):
    controller, scheduler, gateway, refresh = harness
    task = _task()

    outcome = controller.commit_transition(task, "waiting-agent", comment="Chasing support")
    assert outcome.ok
    assert outcome.transition_id == "11"
    assert gateway.applied == [("jira:SD-1", "11", None, "Chasing support")]
    assert controller.state(task.id) == STATE_PENDING_REFRESH
    assert build_board([task], controller.overrides())["waiting-agent"] == [task]

    scheduler.advance(4.9)
    assert refresh.calls == 0
    scheduler.advance(0.2)
    assert refresh.calls == 1
    assert controller.state(task.id) == STATE_PENDING_CLEAR
    assert controller.override_for(task.id) == "waiting-agent"

    scheduler.advance(3.0)
    assert controller.state(task.id) == STATE_SYNCED
    assert controller.overrides() == {}
    # Synced data wins once the override clears, even if it disagrees.
    assert build_board([task], controller.overrides())["open"] == [task]


def test_apply_failure_reverts_immediately(harness):
    controller, scheduler, gateway, refresh = harness
    gateway.fail_apply = True

    outcome = controller.commit_transition(_task(), "waiting-agent")
    assert not outcome.ok
    assert "not allowed" in outcome.error
    assert controller.overrides() == {}
    assert scheduler.pending == []


def test_no_matching_transition_applies_nothing(harness):
    controller, scheduler, gateway, refresh = harness
    gateway.candidates = [{"id": "21", "name": "Close"}]

    outcome = controller.commit_transition(_task(), "waiting-partner")
    assert not outcome.ok
    assert outcome.error == "no matching transition"
    assert outcome.details["candidates"] == ["Close"]
    assert gateway.applied == []
    assert controller.overrides() == {}


def test_explicit_transition_id_skips_scoring(harness):
    controller, scheduler, gateway, refresh = harness
    gateway.candidates = []

    outcome = controller.commit_transition(_task(), "wip", transition_id="31", field_updates={"resolution": "Fixed"})
    assert outcome.ok
    assert gateway.applied == [("jira:SD-1", "31", {"resolution": "Fixed"}, None)]


def test_drop_on_current_column_is_a_no_op(harness):
    controller, scheduler, gateway, refresh = harness
    outcome = controller.commit_transition(_task("Waiting for Support"), "waiting-agent")
    assert outcome.ok
    assert outcome.details == {"unchanged": True}
    assert gateway.applied == []


def test_unknown_target_column_raises(harness):
    controller = harness[0]
    with pytest.raises(ValueError):
        controller.commit_transition(_task(), "archive")


def test_refresh_failure_keeps_override_until_manual_refresh(harness):
    controller, scheduler, gateway, refresh = harness
    task = _task()
    refresh.fail = True

    controller.commit_transition(task, "waiting-agent")
    scheduler.advance(10)
    assert refresh.calls == 1
    assert controller.override_for(task.id) == "waiting-agent"
    assert controller.state(task.id) == STATE_PENDING_REFRESH

    assert controller.manual_refresh() is False
    assert controller.override_for(task.id) == "waiting-agent"

    refresh.fail = False
    assert controller.manual_refresh() is True
    assert controller.overrides() == {}


def test_recommit_supersedes_pending_timers(harness):
    controller, scheduler, gateway, refresh = harness
    task = _task()

    controller.commit_transition(task, "waiting-agent")
    scheduler.advance(3)
    controller.commit_transition(task, "wip", transition_id="41")
    assert controller.override_for(task.id) == "wip"

    scheduler.advance(2)
    assert refresh.calls == 0
    scheduler.advance(3)
    assert refresh.calls == 1
    assert controller.state(task.id) == STATE_PENDING_CLEAR


def test_close_cancels_everything(harness):
    controller, scheduler, gateway, refresh = harness
    controller.commit_transition(_task(), "waiting-agent")
    controller.close()

    assert scheduler.pending == []
    scheduler.advance(10)
    assert refresh.calls == 0
    assert controller.overrides() == {}
    assert not controller.commit_transition(_task(), "wip").ok


def test_delays_come_from_config():
    scheduler = ManualScheduler()
    refresh = FakeRefresh()
    config = TriageConfig(refresh_delay_s=1.0, clear_delay_s=0.5)
    controller = ReconciliationController.from_config(FakeGateway(), refresh, config, scheduler=scheduler)

    controller.commit_transition(_task(), "waiting-agent")
    scheduler.advance(1.0)
    assert refresh.calls == 1
    scheduler.advance(0.5)
    assert controller.overrides() == {}
