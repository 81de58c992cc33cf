"""Run triage over a raw JSON export and print the report."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from triage_engine.adapters import json_adapter
from triage_engine.collaborators import system_clock
from triage_engine.config import TriageConfig
from triage_engine.fields import parse_datetime
from triage_engine.normalizer import normalize_batch
from triage_engine.report import build_report
from triage_engine.schema import SOURCES


def _parse_now(value: str | None) -> datetime:
    if not value:
        return system_clock()
    parsed = parse_datetime(value)
    if parsed is None:
        raise SystemExit(f"--now: could not parse '{value}' as an ISO-8601 instant")
    return parsed


def main() -> None:
    config = TriageConfig.from_env()
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Run triage-engine over a raw record export")
    parser.add_argument("--data", required=True, help="Path to a JSON export of raw records")
    parser.add_argument("--source", default="jira", choices=SOURCES, help="Source the records came from")
    parser.add_argument("--now", default=None, help="Evaluate as of this ISO-8601 instant (default: now)")
    args = parser.parse_args()

    try:
        records = json_adapter.parse(args.data)
    except ValueError as exc:
        raise SystemExit(f"Input error: {exc}") from exc

    tasks = normalize_batch(args.source, records, jira_base_url=config.jira_base_url)
    report = build_report(tasks, _parse_now(args.now), high_priority=config.high_priority)

    print(json.dumps(report, indent=2))

    outputs_dir = Path("outputs")
    outputs_dir.mkdir(parents=True, exist_ok=True)
    out_path = outputs_dir / "triage_report.json"
    out_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"Saved triage report to {out_path}")


if __name__ == "__main__":
    main()
