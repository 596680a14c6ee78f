"""Tests for ui/app.py — the HTTP surface that drives the focus engine."""

import pytest
from fastapi.testclient import TestClient

from horizon.bridge import SyncBridge
from horizon.config import Settings
from horizon.controller import FocusController
from horizon.ledger import TimeEntry
from horizon.models import Task
from horizon.store import MemoryBlobStore
from ui.app import app, get_controller

from conftest import T0

SEC = 1000
MIN = 60 * SEC


@pytest.fixture
def client(controller, monkeypatch):
    monkeypatch.delenv("HORIZON_USERNAME", raising=False)
    monkeypatch.delenv("HORIZON_PASSWORD", raising=False)
    app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": "true"}


def test_focus_lifecycle(client, clock):
    r = client.post("/api/focus/start", json={"task_id": "t-write"})
    assert r.status_code == 200
    assert r.json()["session"]["phase"] == "work"

    clock.advance(minutes=10)
    current = client.get("/api/focus/current").json()["session"]
    assert current["elapsedMs"] == 10 * MIN
    assert current["countdown"] == "15:00"

    r = client.post("/api/focus/stop")
    body = r.json()
    assert body["session"]["phase"] == "idle"
    assert body["recorded"]["taskId"] == "t-write"
    assert body["recorded"]["duration"] == 10 * MIN

    assert client.get("/api/time/task/t-write").json() == {"taskId": "t-write", "totalMs": 10 * MIN}
    assert client.get("/api/time/project/p-thesis").json()["totalMs"] == 10 * MIN


def test_stop_short_session_records_nothing(client, clock):
    client.post("/api/focus/start", json={"task_id": "t-write"})
    clock.advance(2 * SEC)
    assert client.post("/api/focus/stop").json()["recorded"] is None


def test_start_unknown_task(client):
    r = client.post("/api/focus/start", json={"task_id": "nope"})
    assert r.status_code == 404


def test_start_eye_rest(client):
    session = client.post("/api/focus/start", json={}).json()["session"]
    assert session["eyeRest"] is True
    assert session["targetId"] is None


def test_pause_and_skip(client, clock):
    client.post("/api/focus/start", json={"task_id": "t-write"})
    clock.advance(seconds=30)
    paused = client.post("/api/focus/pause").json()["session"]
    assert paused["paused"] is True
    clock.advance(minutes=60)
    assert client.get("/api/focus/current").json()["session"]["elapsedMs"] == 30 * SEC

    client.post("/api/focus/pause")
    clock.advance(minutes=25)
    on_break = client.post("/api/focus/tick").json()["session"]
    assert on_break["phase"] == "break"
    assert on_break["sessionsCompletedToday"] == 1

    skipped = client.post("/api/focus/skip").json()["session"]
    assert skipped["phase"] == "work"


def test_current_runs_tick(client, clock):
    client.post("/api/focus/start", json={"task_id": "t-write"})
    clock.advance(minutes=25)
    assert client.get("/api/focus/current").json()["session"]["phase"] == "break"


def test_time_unknown_ids(client):
    assert client.get("/api/time/task/nope").status_code == 404
    assert client.get("/api/time/project/nope").status_code == 404


def test_stats(client, clock):
    client.post("/api/focus/start", json={"task_id": "t-email"})
    clock.advance(minutes=25)
    client.get("/api/focus/current")

    today = client.get("/api/stats/today").json()
    assert today["sessions"] == 1
    assert today["totalMs"] == 25 * MIN

    summary = client.get("/api/stats/summary", params={"days": 7}).json()
    assert len(summary["daily"]) == 7
    assert summary["longestStreak"] == 1
    assert summary["topTasks"][0]["taskId"] == "t-email"
    assert summary["projects"][0]["projectId"] == "p-admin"
    assert summary["sessionLengths"][-1] == {"label": "25m+", "count": 1}
    assert summary["projectsToday"][0]["totalMs"] == 25 * MIN
    assert summary["week"]["sessions"] == 1
    assert summary["hourHeatmap"][9]["totalMin"] == 25
    assert summary["activity"][-1] == {"day": "2026-02-11", "active": True}
    assert summary["projectTrends"][0]["thisWeekMs"] == 25 * MIN


def test_exports(client, clock):
    client.post("/api/focus/start", json={"task_id": "t-write"})
    clock.advance(minutes=20)
    client.post("/api/focus/stop")

    r = client.get("/api/export/csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="horizon-timelog-2026-02-11.csv"' in r.headers["content-disposition"]
    assert "Write chapter 2,Thesis,2026-02-11,20," in r.text

    data = client.get("/api/export/json").json()
    assert data["totalDurationMs"] == 20 * MIN

    md = client.get("/api/export/markdown").text
    assert "| Thesis | 20m | 1 |" in md


def test_complete_task_keeps_session(client, controller):
    client.post("/api/focus/start", json={"task_id": "t-write"})
    r = client.post("/api/tasks/t-plots/complete", json={})
    assert r.json() == {"ok": True, "task_id": "t-plots", "completed": True}
    assert controller.session.phase.value == "work"
    assert client.post("/api/tasks/nope/complete", json={}).status_code == 404


def test_delete_task_removes_entries(client, clock):
    client.post("/api/focus/start", json={"task_id": "t-plots"})
    clock.advance(minutes=5)
    client.post("/api/focus/stop")

    r = client.delete("/api/tasks/t-plots")
    assert r.json() == {"ok": True, "task_id": "t-plots", "entries_removed": 1}
    assert client.get("/api/time/task/t-plots").status_code == 404
    assert client.get("/api/export/json").json()["entries"] == []


def test_basic_auth_required_when_configured(client, monkeypatch):
    monkeypatch.setenv("HORIZON_USERNAME", "ana")
    monkeypatch.setenv("HORIZON_PASSWORD", "s3cret")
    assert client.get("/api/focus/current").status_code == 401
    assert client.get("/api/focus/current", auth=("ana", "wrong")).status_code == 401
    assert client.get("/api/focus/current", auth=("ana", "s3cret")).status_code == 200


@pytest.fixture
def shared(seeded_state, clock, monkeypatch):
    """API client on a deferred store, plus a second surface writing to it."""
    monkeypatch.delenv("HORIZON_USERNAME", raising=False)
    monkeypatch.delenv("HORIZON_PASSWORD", raising=False)
    store = MemoryBlobStore(deferred=True)
    main = SyncBridge(store, origin="main")
    main.commit(seeded_state)
    widget = SyncBridge(store, origin="widget")
    widget.hydrate()
    controller = FocusController(main, clock=clock, settings=Settings())
    app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(app), widget
    app.dependency_overrides.clear()


def test_exports_see_other_surface_writes(shared):
    client, widget = shared
    entry = TimeEntry.record("t-email", T0, 15 * MIN, entry_id="e-widget")
    widget.update(lambda s: s.with_(ledger=s.ledger.appended(entry)))

    assert client.get("/api/export/json").json()["totalDurationMs"] == 15 * MIN
    assert "Answer email,Admin,2026-02-11,15," in client.get("/api/export/csv").text


def test_task_commands_see_other_surface_tasks(shared):
    client, widget = shared
    added = Task(id="t-new", title="Fresh from widget")
    widget.update(lambda s: s.with_(tasks=s.tasks + (added,)))

    r = client.post("/api/tasks/t-new/complete", json={})
    assert r.status_code == 200
    assert client.delete("/api/tasks/t-new").json()["ok"] is True


def test_stop_does_not_report_other_surface_entry(shared, clock):
    client, widget = shared
    client.post("/api/focus/start", json={"task_id": "t-write"})
    clock.advance(2 * SEC)
    entry = TimeEntry.record("t-email", T0, 60 * SEC, entry_id="e-widget")
    widget.refresh()
    widget.update(lambda s: s.with_(ledger=s.ledger.appended(entry)))

    body = client.post("/api/focus/stop").json()
    assert body["recorded"] is None
    assert body["session"]["phase"] == "idle"
