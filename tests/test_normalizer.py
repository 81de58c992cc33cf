import copy

from triage_engine.normalizer import normalize, normalize_batch, task_id


def _jira_issue():
    return {
        "key": "SD-101",
        "fields": {
            "summary": "Printer queue stuck",
            "status": {"name": "In Progress"},
            "priority": {"name": "High"},
            "duedate": "2025-03-11",
        },
    }


def test_jira_issue_normalizes_to_canonical_task():
    task = normalize("jira", _jira_issue(), jira_base_url="https://acme.atlassian.net")
    assert task.id == "jira:SD-101"
    assert task.source_id == "SD-101"
    assert task.title == "Printer queue stuck"
    assert task.status == "in_progress"
    assert task.priority == 80
    assert task.due_date.date().isoformat() == "2025-03-11"
    assert task.source_url == "https://acme.atlassian.net/browse/SD-101"
    assert task.is_pinned is False


def test_normalize_is_deterministic_and_keeps_raw_record():
    raw = _jira_issue()
    snapshot = copy.deepcopy(raw)
    first = normalize("jira", raw)
    second = normalize("jira", raw)
    assert first == second
    assert first.raw_data is raw
    assert raw == snapshot


def test_missing_source_id_gets_stable_hash_id():
    raw = {"subject": "Standup", "start": {"dateTime": "2025-03-10T09:00:00"}}
    first = normalize("calendar", raw)
    second = normalize("calendar", copy.deepcopy(raw))
    assert first.source_id is None
    assert first.id.startswith("calendar:h-")
    assert first.id == second.id
    assert first.id != normalize("calendar", {**raw, "subject": "Retro"}).id


def test_task_id_prefers_source_id():
    assert task_id("todo", "abc", "Title", {}) == "todo:abc"


def test_empty_record_falls_back_to_defaults():
    task = normalize("jira", {})
    assert task.title == "Untitled"
    assert task.status == "open"
    assert task.priority == 50
    assert task.due_date is None
    assert task.sla_breach_at is None


def test_unknown_source_uses_generic_mapping_and_clamps_priority():
    task = normalize("crm", {"id": "c1", "title": "Renewal", "status": "In Progress", "priority": 250})
    assert task.id == "crm:c1"
    assert task.status == "in_progress"
    assert task.priority == 100


def test_batch_skips_non_object_records():
    tasks = normalize_batch("jira", [_jira_issue(), "garbage", None, {"key": "SD-2"}])
    assert [task.id for task in tasks] == ["jira:SD-101", "jira:SD-2"]


def test_generic_category_is_kept_only_when_known():
    assert normalize("crm", {"id": "c1", "category": "Admin"}).category == "admin"
    assert normalize("crm", {"id": "c2", "category": "misc"}).category is None
