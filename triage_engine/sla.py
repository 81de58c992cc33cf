"""SLA lookup for records whose SLA field id varies per deployment."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from triage_engine.fields import parse_datetime, resolve, to_int

REMAINING_TIME_KEYS = ("remainingTime", "Remaining Time")
ONGOING_CYCLE_KEYS = ("ongoingCycle", "Ongoing Cycle")


def _is_sla_shaped(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    ongoing = value.get("ongoingCycle")
    if isinstance(ongoing, dict) and ("breached" in ongoing or "remainingTime" in ongoing):
        return True
    remaining = value.get("remainingTime")
    return isinstance(remaining, dict) and "millis" in remaining


def find_sla_object(record: Any) -> Optional[dict]:
    """Return the first SLA-shaped object under ``record["fields"]``.

    Scans every field value in insertion order, and one level into list
    values, since the SLA usually sits under an opaque ``customfield_*`` id.
    """

    if not isinstance(record, dict):
        return None
    fields = record.get("fields")
    if isinstance(fields, dict):
        values = list(fields.values())
    elif isinstance(fields, list):
        values = [entry.get("value") if isinstance(entry, dict) and "value" in entry else entry for entry in fields]
    else:
        return None

    for value in values:
        if _is_sla_shaped(value):
            return value
        if isinstance(value, list):
            for item in value:
                if _is_sla_shaped(item):
                    return item
    return None


def _millis(value: Any) -> Optional[int]:
    if isinstance(value, dict):
        return to_int(value.get("millis"))
    return to_int(value)


def get_remaining_time_ms(record: Any) -> Optional[int]:
    """Milliseconds left on the ongoing SLA cycle; negative once breached."""

    direct = resolve(record, REMAINING_TIME_KEYS)
    if direct is not None:
        millis = _millis(direct)
        if millis is not None:
            return millis

    sla = find_sla_object(record)
    if sla is None:
        return None
    remaining = sla.get("remainingTime")
    if isinstance(remaining, dict):
        return to_int(remaining.get("millis"))
    ongoing = sla.get("ongoingCycle")
    if isinstance(ongoing, dict) and isinstance(ongoing.get("remainingTime"), dict):
        return to_int(ongoing["remainingTime"].get("millis"))
    return None


def is_breached(record: Any) -> bool:
    direct = resolve(record, ONGOING_CYCLE_KEYS)
    if isinstance(direct, dict) and isinstance(direct.get("breached"), bool):
        return direct["breached"]

    sla = find_sla_object(record)
    if sla is not None and isinstance(sla.get("ongoingCycle"), dict):
        breached = sla["ongoingCycle"].get("breached")
        if isinstance(breached, bool):
            return breached

    remaining = get_remaining_time_ms(record)
    return remaining is not None and remaining < 0


def sla_breach_at(record: Any) -> Optional[datetime]:
    """Absolute breach instant of the ongoing cycle, when the vendor reports one."""

    sla = find_sla_object(record)
    if sla is None:
        return None
    ongoing = sla.get("ongoingCycle")
    if not isinstance(ongoing, dict):
        return None
    return parse_datetime(ongoing.get("breachTime"))
