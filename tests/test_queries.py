"""Tests for horizon/queries.py — live time aggregation and dashboard stats."""

from zoneinfo import ZoneInfo

from horizon import session as sm
from horizon.ledger import Ledger, TimeEntry
from horizon.models import Task
from horizon.queries import (
    activity_strip,
    daily_totals,
    focus_today,
    hour_heatmap,
    in_flight,
    longest_streak,
    project_totals,
    project_totals_today,
    project_trends,
    session_length_buckets,
    time_for_project,
    time_for_task,
    top_tasks,
    week_bounds,
    weekly_summary,
)
from horizon.tasks import complete_task

from conftest import T0

MIN = 60_000
DAY = 86_400_000


def _with_entries(state, *specs):
    """specs: (task_id, minutes, end_ms)"""
    entries = [
        TimeEntry.record(task_id, end, minutes * MIN, entry_id=f"e{i}")
        for i, (task_id, minutes, end) in enumerate(specs)
    ]
    return state.with_(ledger=Ledger(entries))


def test_time_for_task_recorded_only(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0), ("t-write", 10, T0), ("t-plots", 5, T0))
    assert time_for_task(state, "t-write", T0) == 35 * MIN
    assert time_for_task(state, "t-email", T0) == 0
    assert time_for_task(state, "unknown", T0) == 0


def test_time_for_task_includes_running_work(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0))
    state = state.with_(session=sm.start(state.session, "t-write", T0).session)
    assert in_flight(state, "t-write", T0 + 3 * MIN) == 3 * MIN
    assert time_for_task(state, "t-write", T0 + 3 * MIN) == 28 * MIN
    assert time_for_task(state, "t-plots", T0 + 3 * MIN) == 0


def test_time_for_task_ignores_break_and_eye_rest(seeded_state):
    working = sm.start(seeded_state.session, "t-write", T0).session
    on_break = seeded_state.with_(session=sm.complete_work(working, T0 + 2 * MIN).session)
    assert time_for_task(on_break, "t-write", T0 + 4 * MIN) == 0
    eye_rest = seeded_state.with_(session=sm.start(seeded_state.session, None, T0).session)
    assert time_for_task(eye_rest, "t-write", T0 + 4 * MIN) == 0


def test_time_for_task_conserved_across_pause(seeded_state):
    s = sm.start(seeded_state.session, "t-write", T0).session
    s = sm.pause_or_resume(s, T0 + 10_000).session
    state = seeded_state.with_(session=s)
    assert time_for_task(state, "t-write", T0 + 20_000) == 10_000
    assert time_for_task(state, "t-write", T0 + 90_000) == 10_000


def test_queries_are_idempotent(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0))
    state = state.with_(session=sm.start(state.session, "t-write", T0).session)
    before = state
    first = time_for_project(state, "p-thesis", T0 + MIN)
    second = time_for_project(state, "p-thesis", T0 + MIN)
    assert first == second == 26 * MIN
    assert state == before
    assert len(state.ledger) == 1


def test_time_for_project_sums_direct_tasks(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0), ("t-plots", 5, T0), ("t-email", 15, T0))
    assert time_for_project(state, "p-thesis", T0) == 30 * MIN
    assert time_for_project(state, "p-admin", T0) == 15 * MIN
    assert time_for_project(state, "p-none", T0) == 0


def test_focus_today(seeded_state):
    state = _with_entries(
        seeded_state,
        ("t-write", 25, T0),
        ("t-plots", 35, T0 + MIN),
        ("t-write", 25, T0 - DAY),
    ).with_(focus_goal_minutes=120)
    today = focus_today(state, T0 + MIN)
    assert today == {
        "day": "2026-02-11",
        "sessions": 2,
        "totalMs": 60 * MIN,
        "goalMinutes": 120,
        "goalProgress": 0.5,
    }


def test_focus_today_without_goal(seeded_state):
    assert focus_today(seeded_state, T0)["goalProgress"] == 0.0


def test_focus_today_caps_progress(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 90, T0)).with_(focus_goal_minutes=30)
    assert focus_today(state, T0)["goalProgress"] == 1.0


def test_focus_today_local_day(seeded_state):
    ny = ZoneInfo("America/New_York")
    # 03:00Z on the 12th is still the 11th in New York
    state = _with_entries(seeded_state, ("t-write", 25, T0 + 18 * 3_600_000))
    assert focus_today(state, T0 + 18 * 3_600_000, ny)["day"] == "2026-02-11"
    assert focus_today(state, T0, ny)["sessions"] == 1


def test_daily_totals_oldest_first(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0), ("t-write", 10, T0 - 2 * DAY))
    rows = daily_totals(state, T0, days=3)
    assert [r["day"] for r in rows] == ["2026-02-09", "2026-02-10", "2026-02-11"]
    assert [r["totalMs"] for r in rows] == [10 * MIN, 0, 25 * MIN]
    assert [r["sessions"] for r in rows] == [1, 0, 1]


def test_longest_streak(seeded_state):
    state = _with_entries(
        seeded_state,
        ("t-write", 25, T0),
        ("t-write", 25, T0 - DAY),
        ("t-write", 25, T0 - DAY),
        ("t-write", 25, T0 - 2 * DAY),
        ("t-write", 25, T0 - 5 * DAY),
    )
    assert longest_streak(state) == 3
    assert longest_streak(seeded_state) == 0


def test_session_length_buckets(seeded_state):
    state = _with_entries(
        seeded_state,
        ("t-write", 1, T0),
        ("t-write", 5, T0),
        ("t-write", 20, T0),
        ("t-write", 25, T0),
        ("t-write", 50, T0),
    )
    assert session_length_buckets(state) == [
        {"label": "<5m", "count": 1},
        {"label": "5–15m", "count": 1},
        {"label": "15–25m", "count": 1},
        {"label": "25m+", "count": 2},
    ]


def test_top_tasks_skips_deleted(seeded_state):
    state = _with_entries(
        seeded_state,
        ("t-write", 10, T0),
        ("t-plots", 30, T0),
        ("gone", 99, T0),
        ("t-write", 5, T0),
    )
    assert top_tasks(state) == [
        {"taskId": "t-plots", "title": "Make plots", "totalMs": 30 * MIN},
        {"taskId": "t-write", "title": "Write chapter 2", "totalMs": 15 * MIN},
    ]
    assert len(top_tasks(state, limit=1)) == 1


def test_project_totals(seeded_state):
    state = _with_entries(seeded_state, ("t-email", 40, T0), ("t-write", 10, T0))
    assert project_totals(state, T0) == [
        {"projectId": "p-admin", "name": "Admin", "totalMs": 40 * MIN},
        {"projectId": "p-thesis", "name": "Thesis", "totalMs": 10 * MIN},
    ]


def test_hour_heatmap(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0), ("t-plots", 30, T0 + 2 * 3_600_000))
    rows = hour_heatmap(state)
    assert len(rows) == 24
    assert rows[8] == {"hour": 8, "totalMin": 25}
    assert rows[10] == {"hour": 10, "totalMin": 30}
    assert sum(r["totalMin"] for r in rows) == 55
    # 08:35 UTC is 03:35 in New York
    assert hour_heatmap(state, ZoneInfo("America/New_York"))[3]["totalMin"] == 25


def test_week_bounds_start_on_monday():
    assert week_bounds(T0) == ("2026-02-09", "2026-02-15")
    assert week_bounds(T0, weeks_back=1) == ("2026-02-02", "2026-02-08")


def test_weekly_summary(seeded_state):
    state = _with_entries(
        seeded_state,
        ("t-write", 25, T0),
        ("t-plots", 10, T0 - 2 * DAY),
        ("t-email", 99, T0 - 3 * DAY),
    )
    state = state.with_(tasks=state.tasks + (Task(id="t-old", title="Old", date="2026-02-05", completed=True),))
    state, _ = complete_task(state, "t-write")
    assert weekly_summary(state, T0) == {
        "weekStart": "2026-02-09",
        "weekEnd": "2026-02-15",
        "totalMs": 35 * MIN,
        "sessions": 2,
        "tasksCompleted": 1,
    }


def test_project_totals_today(seeded_state):
    state = _with_entries(
        seeded_state,
        ("t-email", 40, T0),
        ("t-write", 10, T0),
        ("t-plots", 30, T0 - DAY),
        ("gone", 5, T0),
    )
    assert project_totals_today(state, T0) == [
        {"projectId": "p-admin", "name": "Admin", "color": "#16a34a", "totalMs": 40 * MIN},
        {"projectId": "p-thesis", "name": "Thesis", "color": "#4f46e5", "totalMs": 10 * MIN},
    ]
    assert project_totals_today(seeded_state, T0) == []


def test_activity_strip(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 25, T0), ("t-plots", 10, T0 - 2 * DAY))
    assert activity_strip(state, T0, days=3) == [
        {"day": "2026-02-09", "active": True},
        {"day": "2026-02-10", "active": False},
        {"day": "2026-02-11", "active": True},
    ]
    strip = activity_strip(state, T0)
    assert len(strip) == 14
    assert strip[-1]["day"] == "2026-02-11"


def test_project_trends(seeded_state):
    state = _with_entries(seeded_state, ("t-write", 20, T0), ("t-plots", 15, T0 - 7 * DAY))
    assert project_trends(state, T0) == [
        {"projectId": "p-thesis", "name": "Thesis", "thisWeekMs": 20 * MIN, "lastWeekMs": 15 * MIN},
    ]
