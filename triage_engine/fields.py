"""Shape-independent field lookup over raw vendor records.

Vendors hand back the same logical field in three layouts:

- flat keys on the record itself (``{"status": ...}``)
- a nested ``fields`` object (Jira REST, ``{"fields": {"status": ...}}``)
- an array of typed entries (``{"fields": [{"name": "Queue", "value": ...}]}``)

Every lookup runs the same ordered strategy list so no field gets a
special-cased path. Lookups never raise; a miss is ``None``.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Optional

_MISSING = object()

_BASIC_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def _lowered(keys: Iterable[str]) -> set[str]:
    return {str(key).lower() for key in keys}


def _match_mapping(mapping: Any, wanted: set[str]) -> Any:
    if not isinstance(mapping, dict):
        return _MISSING
    for key, value in mapping.items():
        if str(key).lower() in wanted:
            return value
    return _MISSING


def _top_level(record: dict, wanted: set[str]) -> Any:
    return _match_mapping(record, wanted)


def _nested_fields(record: dict, wanted: set[str]) -> Any:
    return _match_mapping(record.get("fields"), wanted)


def _fields_array(record: dict, wanted: set[str]) -> Any:
    entries = record.get("fields")
    if not isinstance(entries, list):
        return _MISSING
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = next((entry[key] for key in ("name", "key", "label") if entry.get(key) is not None), None)
        if isinstance(name, str) and name.lower() in wanted:
            if entry.get("value") is not None:
                return entry["value"]
            if entry.get("displayValue") is not None:
                return entry["displayValue"]
            return entry
    return _MISSING


STRATEGIES: tuple[Callable[[dict, set[str]], Any], ...] = (_top_level, _nested_fields, _fields_array)


def resolve(record: Any, candidate_keys: Iterable[str]) -> Any:
    """Return the first value stored under any of ``candidate_keys``, or None."""

    if not isinstance(record, dict):
        return None
    wanted = _lowered(candidate_keys)
    for strategy in STRATEGIES:
        value = strategy(record, wanted)
        if value is not _MISSING and value is not None:
            return value
    return None


def unwrap_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        for key in ("name", "displayName", "value"):
            inner = value.get(key)
            if inner is None:
                continue
            if isinstance(inner, str):
                return inner
            if isinstance(inner, (int, float)) and not isinstance(inner, bool):
                return str(inner)
            if isinstance(inner, dict):
                return unwrap_string(inner)
    return ""


def resolve_string(record: Any, candidate_keys: Iterable[str]) -> str:
    """Resolve a field and unwrap ``{name|displayName|value}`` objects to text."""

    return unwrap_string(resolve(record, candidate_keys))


def resolve_date(record: Any, candidate_keys: Iterable[str]) -> str:
    """Resolve a field to its ``YYYY-MM-DD`` portion, or ``""`` if it does not parse."""

    value = resolve(record, candidate_keys)
    if isinstance(value, dict):
        value = value.get("dateTime") or value.get("date")
    if not isinstance(value, str):
        return ""
    portion = value.strip().split("T", maxsplit=1)[0]
    try:
        return date.fromisoformat(portion).isoformat()
    except ValueError:
        return ""


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse strings, epoch milliseconds and date-ish objects into aware datetimes."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, dict):
        for key in ("dateTime", "iso8601", "value", "startedTime", "displayValue", "date", "epochMillis"):
            if value.get(key) is not None:
                return parse_datetime(value[key])
        return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _BASIC_OFFSET_RE.sub(r"\1:\2", text) if "T" in text else text
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resolve_datetime(record: Any, candidate_keys: Iterable[str]) -> Optional[datetime]:
    return parse_datetime(resolve(record, candidate_keys))


def to_int(value: Any) -> Optional[int]:
    """Coerce ints, floats and numeric strings; anything else is None."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                return to_int(float(text))
            except ValueError:
                return None
    return None


def resolve_int(record: Any, candidate_keys: Iterable[str]) -> Optional[int]:
    value = resolve(record, candidate_keys)
    if isinstance(value, dict):
        value = value.get("value", value.get("millis"))
    return to_int(value)
