"""JSON adapter for raw record exports."""

from __future__ import annotations

import json

_ENVELOPE_KEYS = ("issues", "value", "tasks", "items", "records")


def _unwrap(payload) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in _ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
        data = payload.get("data")
        if isinstance(data, (dict, list)):
            return _unwrap(data)
    raise ValueError(f"JSON payload must be a list of objects or wrap one under {list(_ENVELOPE_KEYS)}")


def parse_text(text: str) -> list[dict]:
    """Parse a JSON document into raw records, accepting common vendor envelopes."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON: {exc.msg} (line {exc.lineno})") from exc

    records = _unwrap(payload)
    for index, item in enumerate(records, start=1):
        if not isinstance(item, dict):
            raise ValueError(f"Item {index}: expected an object, got {type(item).__name__}")
    return records


def parse(file_path: str) -> list[dict]:
    """Parse a JSON export file into raw records."""

    with open(file_path, encoding="utf-8") as handle:
        return parse_text(handle.read())
