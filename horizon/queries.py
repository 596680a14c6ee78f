"""Time aggregation queries over the ledger and the running session.

Everything here is a pure read: nothing mutates the ledger or the session,
so these are safe to call on every display refresh.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta, tzinfo
from typing import Any

from horizon.clock import day_key, to_datetime
from horizon.models import AppState
from horizon.session import Phase, elapsed
from horizon.tasks import find_project, find_task, tasks_for_project

SESSION_LENGTH_BUCKETS = (
    ("<5m", 0, 5 * 60_000),
    ("5–15m", 5 * 60_000, 15 * 60_000),
    ("15–25m", 15 * 60_000, 25 * 60_000),
    ("25m+", 25 * 60_000, None),
)


def in_flight(state: AppState, task_id: str, now: int) -> int:
    """Unrecorded work time currently running against ``task_id``."""
    session = state.session
    if session.phase is not Phase.WORK or session.target_id != task_id:
        return 0
    return elapsed(session, now)


def time_for_task(state: AppState, task_id: str, now: int) -> int:
    """Recorded time on the task plus the running work phase targeting it."""
    return state.ledger.total_for_task(task_id) + in_flight(state, task_id, now)


def time_for_project(state: AppState, project_id: str, now: int) -> int:
    """Direct tasks only; subprojects are not rolled up."""
    return sum(time_for_task(state, t.id, now) for t in tasks_for_project(state, project_id))


# ── Dashboard stats ───────────────────────────────────────────


def focus_today(state: AppState, now: int, tz: tzinfo | None = None) -> dict[str, Any]:
    """Recorded focus for the local day containing ``now``."""
    today = day_key(now, tz)
    entries = state.ledger.entries_on(today, tz)
    total = sum(e.duration for e in entries)
    goal_ms = state.focus_goal_minutes * 60_000
    return {
        "day": today,
        "sessions": len(entries),
        "totalMs": total,
        "goalMinutes": state.focus_goal_minutes,
        "goalProgress": round(min(1.0, total / goal_ms), 3) if goal_ms else 0.0,
    }


def daily_totals(state: AppState, now: int, tz: tzinfo | None = None, days: int = 30) -> list[dict[str, Any]]:
    """Per-day totals for the last ``days`` days, oldest first."""
    by_day: dict[str, list[int]] = defaultdict(list)
    for e in state.ledger:
        by_day[day_key(e.started_at, tz)].append(e.duration)
    end = date.fromisoformat(day_key(now, tz))
    out = []
    for i in range(days - 1, -1, -1):
        d = (end - timedelta(days=i)).isoformat()
        durations = by_day.get(d, [])
        out.append({"day": d, "totalMs": sum(durations), "sessions": len(durations)})
    return out


def longest_streak(state: AppState, tz: tzinfo | None = None) -> int:
    """Longest run of consecutive days with at least one recorded session."""
    days = sorted({date.fromisoformat(day_key(e.started_at, tz)) for e in state.ledger})
    best = cur = 0
    prev: date | None = None
    for d in days:
        cur = cur + 1 if prev is not None and (d - prev).days == 1 else 1
        best = max(best, cur)
        prev = d
    return best


def session_length_buckets(state: AppState) -> list[dict[str, Any]]:
    out = []
    for label, lo, hi in SESSION_LENGTH_BUCKETS:
        count = sum(1 for e in state.ledger if e.duration >= lo and (hi is None or e.duration < hi))
        out.append({"label": label, "count": count})
    return out


def top_tasks(state: AppState, limit: int = 5) -> list[dict[str, Any]]:
    """Tasks with the most recorded time, largest first."""
    totals: dict[str, int] = defaultdict(int)
    for e in state.ledger:
        totals[e.task_id] += e.duration
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    out = []
    for task_id, ms in ranked:
        task = find_task(state, task_id)
        if task is None:
            continue
        out.append({"taskId": task_id, "title": task.title, "totalMs": ms})
        if len(out) >= limit:
            break
    return out


def project_totals(state: AppState, now: int) -> list[dict[str, Any]]:
    """Projects with any time on them, largest first."""
    rows = [
        {"projectId": p.id, "name": p.name, "totalMs": time_for_project(state, p.id, now)}
        for p in state.projects
    ]
    return sorted((r for r in rows if r["totalMs"] > 0), key=lambda r: r["totalMs"], reverse=True)


# ── Analytics ─────────────────────────────────────────────────


def hour_heatmap(state: AppState, tz: tzinfo | None = None) -> list[dict[str, Any]]:
    """Recorded minutes by local hour of day the entry started in, 0-23."""
    totals = [0] * 24
    for e in state.ledger:
        totals[to_datetime(e.started_at, tz).hour] += e.duration
    return [{"hour": h, "totalMin": round(ms / 60_000)} for h, ms in enumerate(totals)]


def week_bounds(now: int, tz: tzinfo | None = None, weeks_back: int = 0) -> tuple[str, str]:
    """(monday, sunday) day keys of the week containing ``now``."""
    today = date.fromisoformat(day_key(now, tz))
    monday = today - timedelta(days=today.weekday(), weeks=weeks_back)
    return monday.isoformat(), (monday + timedelta(days=6)).isoformat()


def _started_between(state: AppState, first: str, last: str, tz: tzinfo | None):
    return [e for e in state.ledger if first <= day_key(e.started_at, tz) <= last]


def weekly_summary(state: AppState, now: int, tz: tzinfo | None = None) -> dict[str, Any]:
    """Focus and completed tasks for the Monday-start week containing ``now``."""
    first, last = week_bounds(now, tz)
    entries = _started_between(state, first, last, tz)
    completed = [t for t in state.tasks if t.completed and t.date and first <= t.date <= last]
    return {
        "weekStart": first,
        "weekEnd": last,
        "totalMs": sum(e.duration for e in entries),
        "sessions": len(entries),
        "tasksCompleted": len(completed),
    }


def project_totals_today(state: AppState, now: int, tz: tzinfo | None = None) -> list[dict[str, Any]]:
    """Today's recorded time per project, largest first; projects without time are left out."""
    totals: dict[str, int] = defaultdict(int)
    for e in state.ledger.entries_on(day_key(now, tz), tz):
        task = find_task(state, e.task_id)
        if task is not None and task.project_id:
            totals[task.project_id] += e.duration
    out = []
    for project_id, ms in sorted(totals.items(), key=lambda kv: kv[1], reverse=True):
        project = find_project(state, project_id)
        if project is None:
            continue
        out.append({"projectId": project_id, "name": project.name, "color": project.color, "totalMs": ms})
    return out


def activity_strip(state: AppState, now: int, tz: tzinfo | None = None, days: int = 14) -> list[dict[str, Any]]:
    """Whether anything was recorded on each of the last ``days`` days, oldest first."""
    return [{"day": d["day"], "active": d["sessions"] > 0} for d in daily_totals(state, now, tz, days)]


def project_trends(state: AppState, now: int, tz: tzinfo | None = None) -> list[dict[str, Any]]:
    """This week's recorded time per project against last week's."""
    this_week = week_bounds(now, tz)
    last_week = week_bounds(now, tz, weeks_back=1)
    out = []
    for p in state.projects:
        ids = {t.id for t in tasks_for_project(state, p.id)}
        current = sum(e.duration for e in _started_between(state, *this_week, tz) if e.task_id in ids)
        previous = sum(e.duration for e in _started_between(state, *last_week, tz) if e.task_id in ids)
        if current or previous:
            out.append({"projectId": p.id, "name": p.name, "thisWeekMs": current, "lastWeekMs": previous})
    return out
