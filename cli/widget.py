#!/usr/bin/env python3
"""Horizon companion widget — a small Textual view mirroring the focus session.

The widget never drives phase transitions. It re-reads the shared blob on
every refresh and only issues non-conflicting commands (completing a task).
"""

from __future__ import annotations

import logging
import sys

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Label, Static

from horizon import (
    FocusController,
    day_key,
    fmt_duration,
    focus_today,
    open_controller,
    workspace_root,
)
from horizon.logs import configure_logging
from horizon.tasks import complete_task, find_task, todays_tasks

logger = logging.getLogger(__name__)

TOMATO = "🍅"

WIDGET_CSS = """
Screen {
    layout: vertical;
}

#session-panel {
    height: auto;
    padding: 1 2;
    border: round $accent;
}

#session-countdown {
    text-style: bold;
}

#today-summary {
    padding: 0 2;
    color: $text-muted;
}

.section-title {
    text-style: bold;
    padding: 1 2 0 2;
}

#tasks-table {
    height: 1fr;
}
"""


def _tomatoes(n: int) -> str:
    return TOMATO * min(n, 6) + (f"+{n - 6}" if n > 6 else "")


class HorizonWidget(App):
    """Horizon — companion focus widget."""

    TITLE = "Horizon"
    CSS = WIDGET_CSS
    AUTO_FOCUS = "#tasks-table"

    BINDINGS = [
        Binding("c", "complete_task", "Complete"),
        Binding("r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, controller: FocusController) -> None:
        super().__init__()
        self.controller = controller
        self._row_task_ids: list[str] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield Vertical(
            Label(id="session-label"),
            Label(id="session-target"),
            Static(id="session-countdown"),
            id="session-panel",
        )
        yield Static(id="today-summary")
        yield Label("Today", classes="section-title")
        yield DataTable(id="tasks-table", cursor_type="row")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#tasks-table", DataTable)
        table.add_columns("", "Task", "When")
        self.action_refresh()
        self.set_interval(self.controller.settings.tick_interval_ms / 1000, self._on_tick)

    def _on_tick(self) -> None:
        revision = self.controller.bridge.revision
        self.controller.tick()
        self._render_session()
        if self.controller.bridge.revision != revision:
            logger.debug("Snapshot r%d applied, re-rendering tasks", self.controller.bridge.revision)
            self._render_tasks()

    def _render_session(self) -> None:
        snap = self.controller.snapshot()
        state = self.controller.state
        if snap["phase"] == "idle":
            label = "IDLE"
            target = "No focus session"
        else:
            kind = "MISC" if snap["eyeRest"] else ("FOCUS" if snap["phase"] == "work" else "BREAK")
            label = f"{kind} · {_tomatoes(snap['sessionsCompletedToday'])}"
            if snap["targetId"] is None:
                target = "⏱ Misc"
            else:
                task = find_task(state, snap["targetId"])
                target = task.title if task else "—"
                target += f"  ({fmt_duration(self.controller.time_for_task(snap['targetId']))} total)"
        countdown = snap["countdown"] + ("  (paused)" if snap["paused"] else "")
        self.query_one("#session-label", Label).update(label)
        self.query_one("#session-target", Label).update(target)
        self.query_one("#session-countdown", Static).update(countdown)

        today = focus_today(state, self.controller.clock.now(), self.controller.settings.tz)
        summary = f"{TOMATO} {today['sessions']} · {fmt_duration(today['totalMs'])} today"
        if today["goalMinutes"]:
            summary += f" · {round(today['goalProgress'] * 100)}% of {fmt_duration(today['goalMinutes'] * 60_000)} goal"
        self.query_one("#today-summary", Static).update(summary)

    def _render_tasks(self) -> None:
        state = self.controller.state
        today = day_key(self.controller.clock.now(), self.controller.settings.tz)
        table = self.query_one("#tasks-table", DataTable)
        table.clear()
        self._row_task_ids = []
        for section, task in todays_tasks(state, today):
            when = {"overdue": f"over ({task.deadline})", "due": "due today", "today": "today"}[section]
            table.add_row("○", task.title, when)
            self._row_task_ids.append(task.id)

    def action_refresh(self) -> None:
        self.controller.tick()
        self._render_session()
        self._render_tasks()

    def action_complete_task(self) -> None:
        table = self.query_one("#tasks-table", DataTable)
        if not self._row_task_ids:
            return
        row = table.cursor_row
        if row < 0 or row >= len(self._row_task_ids):
            return
        task_id = self._row_task_ids[row]
        self.controller.edit(lambda state: complete_task(state, task_id)[0])
        self.notify("Task completed", title="Horizon")
        self._render_tasks()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    configure_logging()
    root = workspace_root()
    if not root.exists():
        print(f"Workspace not found: {root}")
        print("Set HORIZON_ROOT to the workspace directory.")
        sys.exit(1)

    controller = open_controller(root, drives_phases=False)
    app = HorizonWidget(controller)
    app.run()


if __name__ == "__main__":
    main()
