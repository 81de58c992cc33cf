"""Demo script for triage-engine."""

import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from triage_engine.adapters.json_adapter import parse
from triage_engine.attention import needs_attention
from triage_engine.board import build_board
from triage_engine.normalizer import normalize_batch


def main() -> None:
    now = datetime.fromisoformat("2025-03-10T15:00:00+00:00")
    tasks = normalize_batch("jira", parse("examples/sample_issues.json"))

    for column, column_tasks in build_board(tasks).items():
        print(f"{column}:", [task.source_id for task in column_tasks])

    for task, result in needs_attention(tasks, now):
        print(f"{task.source_id} {result.urgency_score:6.2f} {sorted(result.reasons)}")


if __name__ == "__main__":
    main()
