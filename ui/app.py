"""Horizon main surface — HTTP API over the focus engine.

This process drives phase transitions: every read of the current session
runs a tick first, so completion is detected whenever anyone looks.
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.responses import PlainTextResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from horizon import (
    FocusController,
    activity_strip,
    daily_totals,
    export_csv,
    export_filename,
    export_json,
    focus_today,
    hour_heatmap,
    longest_streak,
    markdown_summary,
    open_controller,
    project_totals,
    project_totals_today,
    project_trends,
    session_length_buckets,
    top_tasks,
    weekly_summary,
    workspace_root,
)
from horizon.logs import configure_logging
from horizon.tasks import complete_task, delete_task, find_project, find_task

configure_logging()

app = FastAPI(title="Horizon", version="0.1.0")

security = HTTPBasic(auto_error=False)


# ── Auth ──────────────────────────────────────────────────────

def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("HORIZON_USERNAME", "")
    expected_password = os.environ.get("HORIZON_PASSWORD", "")

    if credentials is None:
        if not expected_username or not expected_password:
            return "guest"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    if not expected_username or not expected_password:
        return credentials.username

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Controller ────────────────────────────────────────────────

_controllers: dict[Path, FocusController] = {}


def get_controller() -> FocusController:
    """One driving controller per workspace root, opened on first use."""
    root = workspace_root()
    controller = _controllers.get(root)
    if controller is None:
        controller = _controllers[root] = open_controller(root, drives_phases=True)
    return controller


def _current(controller: FocusController) -> dict[str, Any]:
    controller.tick()
    return {"ok": True, "session": controller.snapshot()}


# ── Focus commands ────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.post("/api/focus/start")
def api_focus_start(
    payload: dict[str, Any] = Body(default={}),
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    """Start a work phase on a task, or an eye-rest session without one."""
    task_id = payload.get("task_id") or None
    controller.tick()
    if task_id is not None and find_task(controller.state, str(task_id)) is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    controller.start(str(task_id) if task_id else None)
    return _current(controller)


@app.post("/api/focus/pause")
def api_focus_pause(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    """Toggle pause on the running phase."""
    controller.pause_or_resume()
    return _current(controller)


@app.post("/api/focus/stop")
def api_focus_stop(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    controller.refresh()
    recorded_before = len(controller.state.ledger)
    controller.stop()
    ledger = controller.state.ledger
    entry = ledger[-1].to_dict() if len(ledger) > recorded_before else None
    return {"ok": True, "session": controller.snapshot(), "recorded": entry}


@app.post("/api/focus/skip")
def api_focus_skip(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    """Skip the rest of a break."""
    controller.complete_break()
    return _current(controller)


@app.post("/api/focus/tick")
def api_focus_tick(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    return _current(controller)


@app.get("/api/focus/current")
def api_focus_current(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    return _current(controller)


# ── Queries ───────────────────────────────────────────────────

@app.get("/api/time/task/{task_id}")
def api_time_for_task(
    task_id: str,
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    controller.tick()
    if find_task(controller.state, task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return {"taskId": task_id, "totalMs": controller.time_for_task(task_id)}


@app.get("/api/time/project/{project_id}")
def api_time_for_project(
    project_id: str,
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    controller.tick()
    if find_project(controller.state, project_id) is None:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    return {"projectId": project_id, "totalMs": controller.time_for_project(project_id)}


@app.get("/api/stats/today")
def api_stats_today(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    controller.tick()
    return focus_today(controller.state, controller.clock.now(), controller.settings.tz)


@app.get("/api/stats/summary")
def api_stats_summary(
    days: int = 30,
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    controller.tick()
    state, now, tz = controller.state, controller.clock.now(), controller.settings.tz
    return {
        "today": focus_today(state, now, tz),
        "daily": daily_totals(state, now, tz, days=max(1, min(days, 366))),
        "longestStreak": longest_streak(state, tz),
        "sessionLengths": session_length_buckets(state),
        "topTasks": top_tasks(state),
        "projects": project_totals(state, now),
        "projectsToday": project_totals_today(state, now, tz),
        "projectTrends": project_trends(state, now, tz),
        "week": weekly_summary(state, now, tz),
        "hourHeatmap": hour_heatmap(state, tz),
        "activity": activity_strip(state, now, tz),
    }


# ── Exports ───────────────────────────────────────────────────

@app.get("/api/export/csv")
def api_export_csv(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> Response:
    controller.tick()
    tz = controller.settings.tz
    filename = export_filename("csv", controller.clock.now(), tz)
    return Response(
        content=export_csv(controller.state, tz),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/export/json")
def api_export_json(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    controller.tick()
    return export_json(controller.state, controller.clock.now(), controller.settings.tz)


@app.get("/api/export/markdown")
def api_export_markdown(
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> PlainTextResponse:
    controller.tick()
    return PlainTextResponse(
        markdown_summary(controller.state, controller.clock.now(), controller.settings.tz)
    )


# ── Task commands ─────────────────────────────────────────────

@app.post("/api/tasks/{task_id}/complete")
def api_complete_task(
    task_id: str,
    payload: dict[str, Any] = Body(default={}),
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    """Mark a task done. Safe from either surface; the focus session is untouched."""
    completed = bool(payload.get("completed", True))
    controller.tick()
    if find_task(controller.state, task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    controller.edit(lambda state: complete_task(state, task_id, completed)[0])
    return {"ok": True, "task_id": task_id, "completed": completed}


@app.delete("/api/tasks/{task_id}")
def api_delete_task(
    task_id: str,
    username: str = Depends(get_current_user),
    controller: FocusController = Depends(get_controller),
) -> dict[str, Any]:
    """Delete a task together with its recorded time."""
    controller.tick()
    if find_task(controller.state, task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    removed = len(controller.state.ledger.for_task(task_id))
    controller.edit(lambda state: delete_task(state, task_id)[0])
    return {"ok": True, "task_id": task_id, "entries_removed": removed}
