"""Streamlit demo UI for triage-engine."""

from __future__ import annotations

import sys
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from triage_engine.adapters import json_adapter
from triage_engine.columns import COLUMNS
from triage_engine.config import TriageConfig
from triage_engine.filters import OWNERSHIP_FILTERS, filter_by_ownership
from triage_engine.normalizer import normalize_batch
from triage_engine.report import build_report
from triage_engine.schema import SOURCES

DEMO_DATASET = "examples/sample_issues.json"
REASON_LABELS = {
    "sla_breached": "SLA breached",
    "sla_approaching": "SLA approaching",
    "overdue_update": "Needs update",
}


def run_engine(records: list[dict], source: str, now: datetime, ownership: str, user_name: str) -> dict[str, Any]:
    """Normalize, filter and triage records into a UI-friendly payload."""

    config = TriageConfig.from_env()
    tasks = normalize_batch(source, records, jira_base_url=config.jira_base_url)
    tasks = filter_by_ownership(tasks, ownership, user_name)
    return build_report(tasks, now, high_priority=config.high_priority)


def _fmt_remaining(remaining_ms: int | None) -> str:
    if remaining_ms is None:
        return "-"
    sign = "-" if remaining_ms < 0 else ""
    minutes = abs(remaining_ms) // 60000
    return f"{sign}{minutes // 60}h {minutes % 60:02d}m"


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Triage Engine Demo", layout="wide")
    st.title("Triage Engine: Service Desk Board")

    with st.sidebar:
        st.header("Controls")
        uploaded = st.file_uploader("Upload raw record export", type=["json"])
        use_demo = st.checkbox("Load demo dataset", value=True)
        source = st.selectbox("Source", options=list(SOURCES), index=0)
        ownership = st.selectbox("Ownership", options=list(OWNERSHIP_FILTERS), index=2)
        user_name = st.text_input("Your name", value="")
        as_of_date = st.date_input("As of date", value=datetime.now(timezone.utc).date())
        as_of_time = st.time_input("As of time (UTC)", value=time(15, 0))
        run = st.button("Run triage", type="primary")

    if not run:
        st.info("Configure inputs in the sidebar and click **Run triage**.")
        return

    try:
        if use_demo:
            records = json_adapter.parse(DEMO_DATASET)
            data_source = f"demo dataset ({DEMO_DATASET})"
        elif uploaded is not None:
            records = json_adapter.parse_text(uploaded.getvalue().decode("utf-8"))
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.error("Please upload a JSON export or enable 'Load demo dataset'.")
            return

        if not records:
            st.error("No records were found in the selected input.")
            return

        now = datetime.combine(as_of_date, as_of_time, tzinfo=timezone.utc)
        result = run_engine(records, source, now, ownership, user_name)

        st.success(f"Loaded {len(records)} records from {data_source}.")

        st.subheader("A) Overview")
        kpis = result["kpis"]
        c1, c2, c3, c4, c5, c6 = st.columns(6)
        c1.metric("Total", kpis["total"])
        c2.metric("Active", kpis["active"])
        c3.metric("Needing updates", kpis["needing_updates"])
        c4.metric("SLA breached", kpis["sla_breached"])
        c5.metric("Breaching next", kpis["breaching_next"])
        c6.metric("Avg age", f"{kpis['avg_age_days']}d")

        st.subheader("B) Needs Attention")
        attention = result["needs_attention"]
        if attention:
            st.table(
                [
                    {
                        "task": item["id"],
                        "title": item["title"],
                        "urgency": f"{item['urgency_score']:.1f}",
                        "reasons": ", ".join(REASON_LABELS.get(r, r) for r in item["reasons"]),
                        "SLA remaining": _fmt_remaining(item["sla_remaining_ms"]),
                    }
                    for item in attention
                ]
            )
        else:
            st.write("Nothing needs attention right now.")

        st.subheader("C) Board")
        colors = {column.key: column.color for column in COLUMNS}
        board_columns = st.columns(len(result["board"]))
        for container, column in zip(board_columns, result["board"]):
            container.markdown(
                f"<span style='color:{colors[column['key']]}'>**{column['label']}**</span> ({len(column['tasks'])})",
                unsafe_allow_html=True,
            )
            for task in column["tasks"]:
                pin = "📌 " if task["is_pinned"] else ""
                container.write(f"{pin}{task['id']}: {task['title']} (P{task['priority']})")

    except ValueError as exc:
        st.error(f"Input error: {exc}")
    except Exception:
        st.error("Something went wrong while running the demo. Please verify the input format.")


if __name__ == "__main__":
    main()
