from datetime import datetime, timezone

from triage_engine.attention import (
    SLA_APPROACHING_MS,
    UPDATE_SILENCE_MS,
    classify,
    classify_all,
    needs_attention,
    update_staleness_ms,
)
from triage_engine.normalizer import normalize

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


def _jira(key, **fields):
    fields.setdefault("status", {"name": "Open"})
    return normalize("jira", {"key": key, "fields": fields})


def _sla(millis):
    return {"remainingTime": {"millis": millis}}


def test_waiting_on_partner_is_excluded_from_update_check():
    task = _jira("SD-1", status={"name": "Waiting On Partner"}, **{"Agent Next Update": "2025-03-10T09:00:00Z"})
    result = classify(task, NOW)
    assert result.reasons == frozenset()
    assert result.urgency_score == 0
    assert result.sla_remaining_ms is None


def test_breached_sla_in_unknown_custom_field_outranks_approaching():
    breached = classify(_jira("SD-1", customfield_99123=_sla(-500000)), NOW)
    approaching = classify(_jira("SD-2", customfield_10020=_sla(1000)), NOW)

    assert breached.reasons == frozenset({"sla_breached"})
    assert breached.sla_remaining_ms == -500000
    assert approaching.reasons == frozenset({"sla_approaching"})
    assert breached.urgency_score > approaching.urgency_score


def test_breached_and_approaching_are_mutually_exclusive():
    result = classify(_jira("SD-1", customfield_1={"ongoingCycle": {"breached": True, "remainingTime": {"millis": 1000}}}), NOW)
    assert result.reasons == frozenset({"sla_breached"})


def test_approaching_window_boundaries():
    assert "sla_approaching" in classify(_jira("A", cf=_sla(0)), NOW).reasons
    assert "sla_approaching" in classify(_jira("B", cf=_sla(SLA_APPROACHING_MS)), NOW).reasons
    assert classify(_jira("C", cf=_sla(SLA_APPROACHING_MS + 1)), NOW).reasons == frozenset()


def test_ranking_within_bands():
    more_overdue = classify(_jira("A", cf=_sla(-7200000)), NOW)
    less_overdue = classify(_jira("B", cf=_sla(-60000)), NOW)
    assert more_overdue.urgency_score > less_overdue.urgency_score

    less_left = classify(_jira("C", cf=_sla(60000)), NOW)
    more_left = classify(_jira("D", cf=_sla(1200000)), NOW)
    assert less_left.urgency_score > more_left.urgency_score

    overdue_only = classify(_jira("E", **{"Agent Next Update": "2025-03-01T09:00:00Z"}), NOW)
    assert overdue_only.reasons == frozenset({"overdue_update"})
    assert more_left.urgency_score > overdue_only.urgency_score
    assert overdue_only.urgency_score > 0


def test_next_update_must_be_strictly_before_now():
    on_time = _jira("SD-1", **{"Agent Next Update": NOW.isoformat()})
    assert update_staleness_ms(on_time, NOW) is None
    late = _jira("SD-2", **{"Agent Next Update": "2025-03-10T14:59:00Z"})
    assert update_staleness_ms(late, NOW) == 60000


def test_silence_window_on_last_public_comment():
    quiet = _jira("SD-1", **{"Last Agent Public Comment": "2025-03-10T10:00:00Z"})
    assert update_staleness_ms(quiet, NOW) == 5 * 60 * 60 * 1000 - UPDATE_SILENCE_MS
    recent = _jira("SD-2", **{"Last Agent Public Comment": "2025-03-10T11:00:00Z"})
    assert update_staleness_ms(recent, NOW) is None


def test_either_update_condition_is_enough():
    task = _jira(
        "SD-1",
        **{"Agent Next Update": "2025-03-11T09:00:00Z", "Last Agent Public Comment": "2025-03-09T09:00:00Z"},
    )
    assert "overdue_update" in classify(task, NOW).reasons


def test_update_check_exclusions():
    stale = {"Agent Next Update": "2025-03-01T09:00:00Z"}
    assert update_staleness_ms(_jira("A", status={"name": "Resolved"}, **stale), NOW) is None
    assert update_staleness_ms(_jira("B", status={"name": "waiting on requestor"}, **stale), NOW) is None
    assert update_staleness_ms(_jira("C", queue={"name": "Development"}, **stale), NOW) is None
    assert update_staleness_ms(_jira("D", **{"Request Type": {"name": "Onboarding"}}, **stale), NOW) is None
    assert update_staleness_ms(_jira("E", queue={"name": "Service Desk"}, **stale), NOW) is not None


def test_update_check_is_jira_only():
    task = normalize("todo", {"id": "t1", "title": "x", "Agent Next Update": "2025-03-01T09:00:00Z"})
    assert classify(task, NOW).reasons == frozenset()


def test_malformed_dates_are_absent():
    task = _jira("SD-1", **{"Agent Next Update": "next tuesday", "Last Agent Public Comment": {"note": "soon"}})
    result = classify(task, NOW)
    assert "overdue_update" not in result.reasons


def test_naive_now_is_treated_as_utc():
    task = _jira("SD-1", **{"Agent Next Update": "2025-03-10T14:00:00Z"})
    assert classify(task, datetime(2025, 3, 10, 15, 0)) == classify(task, NOW)


def test_needs_attention_orders_by_urgency_then_id():
    tasks = [
        _jira("SD-3", **{"Agent Next Update": "2025-03-10T09:00:00Z"}),
        _jira("SD-1", cf=_sla(900000)),
        _jira("SD-2", cf=_sla(-900000)),
        _jira("SD-4", status={"name": "Open"}),
    ]
    ranked = needs_attention(tasks, NOW)
    assert [task.id for task, _ in ranked] == ["jira:SD-2", "jira:SD-1", "jira:SD-3"]
    assert set(classify_all(tasks, NOW)) == {"jira:SD-1", "jira:SD-2", "jira:SD-3", "jira:SD-4"}


def test_overdue_update_never_outranks_deeper_breach():
    stale = {"Agent Next Update": "2025-03-10T14:00:00Z"}
    barely_breached = classify(_jira("SD-1", cf=_sla(-1), **stale), NOW)
    deeply_breached = classify(_jira("SD-2", cf=_sla(-600000)), NOW)
    assert barely_breached.reasons == frozenset({"sla_breached", "overdue_update"})
    assert deeply_breached.urgency_score > barely_breached.urgency_score

    tasks = [_jira("SD-1", cf=_sla(-1), **stale), _jira("SD-2", cf=_sla(-600000))]
    assert [task.id for task, _ in needs_attention(tasks, NOW)] == ["jira:SD-2", "jira:SD-1"]


def test_overdue_update_never_outranks_less_remaining_time():
    stale = {"Agent Next Update": "2025-03-10T14:00:00Z"}
    more_left = classify(_jira("SD-1", cf=_sla(1000), **stale), NOW)
    less_left = classify(_jira("SD-2", cf=_sla(500)), NOW)
    assert "overdue_update" in more_left.reasons
    assert less_left.urgency_score > more_left.urgency_score


def test_overdue_update_breaks_ties_in_ranking():
    stale = {"Agent Next Update": "2025-03-10T14:00:00Z"}
    tasks = [_jira("SD-1", cf=_sla(600000)), _jira("SD-2", cf=_sla(600000), **stale)]
    assert [task.id for task, _ in needs_attention(tasks, NOW)] == ["jira:SD-2", "jira:SD-1"]


def test_missing_status_skips_update_check():
    task = normalize("jira", {"key": "SD-1", "fields": {"Agent Next Update": "2025-03-01T09:00:00Z"}})
    assert update_staleness_ms(task, NOW) is None
    assert classify(task, NOW).reasons == frozenset()


def test_queue_exclusion_reads_fields_array_entries_keyed_by_key():
    task = normalize(
        "jira",
        {
            "key": "SD-1",
            "fields": [
                {"name": "status", "value": {"name": "Open"}},
                {"name": None, "key": "Queue", "value": "Development"},
                {"name": "Agent Next Update", "value": "2025-03-01T09:00:00Z"},
            ],
        },
    )
    assert update_staleness_ms(task, NOW) is None
