from triage_engine.sla import find_sla_object, get_remaining_time_ms, is_breached, sla_breach_at


def test_locator_finds_sla_under_unknown_custom_field():
    record = {"fields": {"summary": "x", "customfield_99123": {"remainingTime": {"millis": -500000}}}}
    assert find_sla_object(record) == {"remainingTime": {"millis": -500000}}
    assert get_remaining_time_ms(record) == -500000
    assert is_breached(record) is True


def test_locator_scans_one_level_into_arrays():
    record = {"fields": {"customfield_1": [{"ongoingCycle": {"breached": False, "remainingTime": {"millis": "1000"}}}]}}
    assert get_remaining_time_ms(record) == 1000
    assert is_breached(record) is False


def test_locator_handles_fields_array_shape():
    record = {"fields": [{"name": "Time to first response", "value": {"remainingTime": {"millis": 60000}}}]}
    assert get_remaining_time_ms(record) == 60000


def test_locator_ignores_non_sla_objects():
    record = {"fields": {"status": {"name": "Open"}, "remainingTime": None, "customfield_2": {"millis": 5}}}
    assert find_sla_object(record) is None
    assert get_remaining_time_ms(record) is None
    assert is_breached(record) is False


def test_direct_remaining_time_field_is_preferred():
    record = {
        "Remaining Time": "120000",
        "fields": {"customfield_1": {"remainingTime": {"millis": -1}}},
    }
    assert get_remaining_time_ms(record) == 120000


def test_explicit_breached_flag_wins_over_remaining_time():
    record = {"fields": {"customfield_1": {"ongoingCycle": {"breached": True, "remainingTime": {"millis": 5000}}}}}
    assert is_breached(record) is True


def test_invalid_millis_is_absent():
    record = {"fields": {"customfield_1": {"remainingTime": {"millis": "soon"}}}}
    assert get_remaining_time_ms(record) is None
    assert is_breached(record) is False


def test_breach_time_read_from_ongoing_cycle():
    record = {"fields": {"customfield_1": {"ongoingCycle": {"breached": False, "breachTime": {"epochMillis": 1741597200000}}}}}
    assert sla_breach_at(record).isoformat() == "2025-03-10T09:00:00+00:00"
    assert sla_breach_at({"fields": {}}) is None
