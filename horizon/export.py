"""Time-log exports: CSV, JSON and a Markdown summary."""

from __future__ import annotations

import csv
import io
from datetime import tzinfo
from typing import Any

from horizon.clock import day_key, fmt_duration, to_datetime, to_iso
from horizon.ledger import TimeEntry
from horizon.models import AppState, Project, Task
from horizon.tasks import find_project, find_task

CSV_HEADER = ["Task", "Project", "Date", "Duration (min)", "StartedAt", "EndedAt"]


def _owner(state: AppState, entry: TimeEntry) -> tuple[Task | None, Project | None]:
    task = find_task(state, entry.task_id)
    project = find_project(state, task.project_id) if task and task.project_id else None
    return task, project


def export_filename(kind: str, now: int, tz: tzinfo | None = None) -> str:
    return f"horizon-timelog-{day_key(now, tz)}.{kind}"


def export_csv(state: AppState, tz: tzinfo | None = None) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for e in state.ledger:
        task, project = _owner(state, e)
        writer.writerow([
            task.title if task else "",
            project.name if project else "",
            day_key(e.started_at, tz),
            round(e.duration / 60_000),
            to_iso(e.started_at, tz),
            to_iso(e.ended_at, tz),
        ])
    return buf.getvalue()


def export_json(state: AppState, now: int, tz: tzinfo | None = None) -> dict[str, Any]:
    entries = []
    for e in state.ledger:
        task, project = _owner(state, e)
        entries.append({
            "task": task.title if task else "",
            "project": project.name if project else "",
            "startedAt": to_iso(e.started_at, tz),
            "endedAt": to_iso(e.ended_at, tz),
            "durationMs": e.duration,
            "durationMin": round(e.duration / 60_000),
        })
    return {
        "exportedAt": to_iso(now, tz),
        "totalDurationMs": state.ledger.total(),
        "entries": entries,
    }


def markdown_summary(state: AppState, now: int, tz: tzinfo | None = None) -> str:
    """Per-project focus table, largest first, with a total line."""
    by_project: dict[str, dict[str, Any]] = {}
    for e in state.ledger:
        _, project = _owner(state, e)
        key = project.id if project else "__none__"
        row = by_project.setdefault(
            key, {"name": project.name if project else "No Project", "ms": 0, "sessions": 0}
        )
        row["ms"] += e.duration
        row["sessions"] += 1

    rows = sorted(by_project.values(), key=lambda r: r["ms"], reverse=True)
    dt = to_datetime(now, tz)
    date_str = f"{dt:%b} {dt.day}, {dt.year}"
    lines = [
        f"## Horizon Focus Summary — {date_str}",
        "",
        "| Project | Time | Sessions |",
        "|---------|------|----------|",
    ]
    lines += [f"| {r['name']} | {fmt_duration(r['ms'])} | {r['sessions']} |" for r in rows]
    lines += [
        "",
        f"**Total:** {fmt_duration(state.ledger.total())} across {len(state.ledger)} sessions",
    ]
    return "\n".join(lines)
