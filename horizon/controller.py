"""Focus controller: the command surface of the focus engine.

A controller sits on top of one surface's SyncBridge. Each command pulls in
pending external snapshots, applies a pure session transition, appends the
resulting entries to the ledger, commits the new state, and then hands the
transition's signals to subscribers.

Only the surface that drives phases (``drives_phases=True``) applies the
system-triggered completions from ``tick()``. A mirroring surface ticks only
to refresh, so two surfaces never both complete the same phase.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from horizon import session as sm
from horizon import queries
from horizon.bridge import SyncBridge
from horizon.clock import Clock, SystemClock, fmt_countdown
from horizon.config import Settings, load_settings
from horizon.hooks import HookSink
from horizon.models import AppState
from horizon.session import Session, Signal, Transition
from horizon.store import FileBlobStore
from horizon.workspace import storage_dir, workspace_root

logger = logging.getLogger(__name__)

Subscriber = Callable[[Signal], None]


class FocusController:
    def __init__(
        self,
        bridge: SyncBridge,
        clock: Clock | None = None,
        settings: Settings | None = None,
        drives_phases: bool = True,
    ) -> None:
        self.bridge = bridge
        self.clock = clock or SystemClock()
        self.settings = settings or Settings()
        self.drives_phases = drives_phases
        self._subscribers: list[Subscriber] = []

    # ── Plumbing ──────────────────────────────────────────────

    @property
    def state(self) -> AppState:
        return self.bridge.state

    @property
    def session(self) -> Session:
        return self.bridge.state.session

    def subscribe(self, fn: Subscriber) -> None:
        self._subscribers.append(fn)

    def _emit(self, signals: tuple[Signal, ...]) -> None:
        for signal in signals:
            for fn in list(self._subscribers):
                try:
                    fn(signal)
                except Exception:
                    logger.exception("Signal subscriber failed on %s", signal.name)

    def _apply(self, name: str, step: Callable[[Session, int], Transition]) -> Session:
        self.bridge.refresh()
        now = self.clock.now()
        state = self.bridge.state
        t = step(state.session, now)
        if t.session == state.session and not t.entries and not t.signals:
            logger.debug("%s: no-op in %s", name, state.session.phase.value)
            return state.session
        new_state = state.with_(session=t.session, ledger=state.ledger.appended(*t.entries))
        self.bridge.commit(new_state)
        logger.debug(
            "%s: %s -> %s (%d entries)",
            name, state.session.phase.value, t.session.phase.value, len(t.entries),
        )
        for e in t.entries:
            logger.info("Recorded %d ms on %s", e.duration, e.task_id)
        self._emit(t.signals)
        return t.session

    # ── Commands ──────────────────────────────────────────────

    def start(self, target_id: str | None = None) -> Session:
        return self._apply("start", lambda s, now: sm.start(s, target_id, now))

    def pause_or_resume(self) -> Session:
        return self._apply("pause_or_resume", sm.pause_or_resume)

    def stop(self) -> Session:
        return self._apply("stop", sm.stop)

    def complete_work(self) -> Session:
        return self._apply("complete_work", sm.complete_work)

    def complete_break(self) -> Session:
        return self._apply("complete_break", sm.complete_break)

    def edit(self, fn: Callable[[AppState], AppState]) -> AppState:
        """Commit a non-session edit (task completion, focus goal) on fresh state."""
        self.bridge.refresh()
        return self.bridge.update(fn)

    def refresh(self) -> AppState:
        """Apply pending snapshots from other surfaces without touching phases."""
        self.bridge.refresh()
        return self.state

    def tick(self) -> Session:
        """Poll for phase completion; mirroring surfaces only refresh."""
        if not self.drives_phases:
            self.bridge.refresh()
            return self.session
        durations = self.settings.durations
        return self._apply("tick", lambda s, now: sm.tick(s, now, durations))

    # ── Queries ───────────────────────────────────────────────

    def time_for_task(self, task_id: str) -> int:
        return queries.time_for_task(self.state, task_id, self.clock.now())

    def time_for_project(self, project_id: str) -> int:
        return queries.time_for_project(self.state, project_id, self.clock.now())

    def snapshot(self) -> dict[str, Any]:
        """What a countdown display needs right now."""
        now = self.clock.now()
        s = self.session
        remaining = sm.remaining(s, now, self.settings.durations)
        return {
            "phase": s.phase.value,
            "targetId": s.target_id,
            "eyeRest": s.is_eye_rest,
            "paused": s.paused,
            "elapsedMs": sm.elapsed(s, now),
            "remainingMs": remaining,
            "countdown": fmt_countdown(remaining),
            "sessionsCompletedToday": s.sessions_completed_today,
        }


def open_controller(
    root: Path | None = None,
    *,
    drives_phases: bool = True,
    clock: Clock | None = None,
    origin: str | None = None,
) -> FocusController:
    """Wire a controller to the workspace's file-backed blob and hooks."""
    if root is None:
        root = workspace_root()
    settings = load_settings(root)
    bridge = SyncBridge(FileBlobStore(storage_dir(root)), origin=origin, key=settings.storage_key)
    bridge.hydrate()
    if bridge.revision == 0 and settings.focus_goal_minutes:
        bridge.set_local(focus_goal_minutes=settings.focus_goal_minutes)
    controller = FocusController(bridge, clock=clock, settings=settings, drives_phases=drives_phases)
    controller.subscribe(HookSink(root))
    logger.info(
        "Opened %s surface on %s (revision %d)",
        "driving" if drives_phases else "mirroring", storage_dir(root), bridge.revision,
    )
    return controller
