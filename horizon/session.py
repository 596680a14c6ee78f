"""Focus session state machine.

The session is a single immutable value. Every transition is a pure function
``(Session, now, ...) -> Transition``; the Transition carries the new session
plus its side effects (ledger entries to append, signals to emit) so callers
decide how to apply them.

    idle --start--> work --complete_work--> break --complete_break--> work
    work|break --stop--> idle
    work|break --pause_or_resume--> same phase, paused flag toggled

Every transition is total: calls that make no sense in the current state
(pausing while idle, completing a break during work) return the session
unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from horizon.clock import as_int, from_iso, to_iso
from horizon.config import Durations
from horizon.ledger import MIN_ENTRY_MS, TimeEntry, new_entry_id

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    WORK = "work"
    BREAK = "break"


# ── Signals ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SessionCompleted:
    target_id: str | None
    sessions_completed_today: int

    name = "session_completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.name,
            "target": self.target_id,
            "sessionsCompletedToday": self.sessions_completed_today,
        }


@dataclass(frozen=True)
class BreakCompleted:
    name = "break_completed"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.name}


Signal = SessionCompleted | BreakCompleted


# ── Session ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Session:
    target_id: str | None = None
    phase: Phase = Phase.IDLE
    anchor: int | None = None
    sessions_completed_today: int = 0
    paused: bool = False
    paused_elapsed: int = 0

    @property
    def active(self) -> bool:
        return self.phase is not Phase.IDLE

    @property
    def is_eye_rest(self) -> bool:
        """An untracked session: runs the timer but never records time."""
        return self.active and self.target_id is None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Session:
        """Parse a persisted session, repairing anything inconsistent to idle."""
        if not d or not isinstance(d, dict):
            return cls()
        try:
            phase = Phase(d.get("phase", "idle"))
        except ValueError:
            phase = Phase.IDLE
        target = d.get("targetId")
        counter = max(0, as_int(d.get("sessionsCompletedToday")) or 0)
        paused = bool(d.get("paused", False))
        paused_elapsed = as_int(d.get("pausedElapsed")) or 0
        anchor = from_iso(d.get("anchor"))

        if phase is Phase.IDLE:
            return cls(sessions_completed_today=counter)
        if paused:
            return cls(
                target_id=str(target) if target else None,
                phase=phase,
                sessions_completed_today=counter,
                paused=True,
                paused_elapsed=max(0, paused_elapsed),
            )
        if anchor is None:
            logger.warning("Running %s session without anchor; resetting to idle", phase.value)
            return cls(sessions_completed_today=counter)
        return cls(
            target_id=str(target) if target else None,
            phase=phase,
            anchor=anchor,
            sessions_completed_today=counter,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetId": self.target_id,
            "phase": self.phase.value,
            "anchor": to_iso(self.anchor) if self.anchor is not None else None,
            "sessionsCompletedToday": self.sessions_completed_today,
            "paused": self.paused,
            "pausedElapsed": self.paused_elapsed,
        }


@dataclass(frozen=True)
class Transition:
    session: Session
    entries: tuple[TimeEntry, ...] = field(default_factory=tuple)
    signals: tuple[Signal, ...] = field(default_factory=tuple)


def _unchanged(session: Session) -> Transition:
    return Transition(session=session)


def elapsed(session: Session, now: int) -> int:
    """Elapsed ms in the current phase: frozen while paused, zero when idle."""
    if session.paused:
        return session.paused_elapsed
    if session.anchor is None:
        return 0
    return max(0, now - session.anchor)


def remaining(session: Session, now: int, durations: Durations) -> int:
    if not session.active:
        return 0
    return max(0, durations.for_phase(session.phase.value) - elapsed(session, now))


def _record(session: Session, now: int, entry_id: str | None) -> tuple[TimeEntry, ...]:
    """The ledger entry a finishing work phase produces, if any."""
    if session.phase is not Phase.WORK or session.target_id is None:
        return ()
    spent = elapsed(session, now)
    if spent < MIN_ENTRY_MS:
        return ()
    return (TimeEntry.record(session.target_id, now, spent, entry_id or new_entry_id()),)


# ── Transitions ───────────────────────────────────────────────


def start(session: Session, target_id: str | None, now: int) -> Transition:
    """Begin a work phase on ``target_id`` (None for an eye-rest session).

    The daily counter is preserved. Unsaved elapsed time of a running work
    session is discarded, even when restarting on the same target; callers
    should stop() first.
    """
    if session.phase is Phase.WORK and session.target_id is not None:
        lost = elapsed(session, now)
        if lost > 0:
            logger.warning(
                "start(%s) discards %d ms unsaved on %s", target_id, lost, session.target_id
            )
    return Transition(
        session=Session(
            target_id=target_id,
            phase=Phase.WORK,
            anchor=now,
            sessions_completed_today=session.sessions_completed_today,
        )
    )


def pause_or_resume(session: Session, now: int) -> Transition:
    if not session.active:
        return _unchanged(session)
    if session.paused:
        return Transition(
            session=replace(
                session,
                anchor=now - session.paused_elapsed,
                paused=False,
                paused_elapsed=0,
            )
        )
    return Transition(
        session=replace(
            session,
            anchor=None,
            paused=True,
            paused_elapsed=elapsed(session, now),
        )
    )


def stop(session: Session, now: int, entry_id: str | None = None) -> Transition:
    """Finish for now: record the work phase if long enough, go idle, clear the counter."""
    entries = _record(session, now, entry_id)
    return Transition(session=Session(), entries=entries)


def complete_work(session: Session, now: int, entry_id: str | None = None) -> Transition:
    if session.phase is not Phase.WORK:
        return _unchanged(session)
    entries = _record(session, now, entry_id)
    counter = session.sessions_completed_today + 1
    return Transition(
        session=Session(
            target_id=session.target_id,
            phase=Phase.BREAK,
            anchor=now,
            sessions_completed_today=counter,
        ),
        entries=entries,
        signals=(SessionCompleted(session.target_id, counter),),
    )


def complete_break(session: Session, now: int) -> Transition:
    """End (or skip) a break and resume focus on the same target."""
    if session.phase is not Phase.BREAK:
        return _unchanged(session)
    return Transition(
        session=Session(
            target_id=session.target_id,
            phase=Phase.WORK,
            anchor=now,
            sessions_completed_today=session.sessions_completed_today,
        )
    )


def tick(session: Session, now: int, durations: Durations) -> Transition:
    """Poll for phase completion. At most one transition per call."""
    if not session.active or session.paused:
        return _unchanged(session)
    spent = elapsed(session, now)
    if session.phase is Phase.WORK and spent >= durations.work_ms:
        return complete_work(session, now)
    if session.phase is Phase.BREAK and spent >= durations.break_ms:
        t = complete_break(session, now)
        return replace(t, signals=t.signals + (BreakCompleted(),))
    return _unchanged(session)
