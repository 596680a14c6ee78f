"""Typed dataclasses for the Horizon persisted state.

All models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Keys this engine does not model are carried through untouched in ``extra``
so a write never drops fields another surface relies on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from horizon.clock import as_int
from horizon.ledger import Ledger
from horizon.session import Session


def _opt_str(v: Any) -> str | None:
    return str(v) if v not in (None, "") else None


# ── Tasks & projects ──────────────────────────────────────────


@dataclass(frozen=True)
class Task:
    id: str = ""
    title: str = ""
    project_id: str | None = None
    date: str | None = None  # work date (YYYY-MM-DD)
    deadline: str | None = None
    completed: bool = False
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _KEYS = ("id", "title", "projectId", "date", "deadline", "completed")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            project_id=_opt_str(d.get("projectId")),
            date=_opt_str(d.get("date")),
            deadline=_opt_str(d.get("deadline")),
            completed=bool(d.get("completed", False)),
            extra={k: v for k, v in d.items() if k not in cls._KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d.update({
            "id": self.id,
            "title": self.title,
            "projectId": self.project_id,
            "date": self.date,
            "deadline": self.deadline,
            "completed": self.completed,
        })
        return d


@dataclass(frozen=True)
class Project:
    id: str = ""
    name: str = ""
    color: str = ""
    parent_id: str | None = None
    deadline: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _KEYS = ("id", "name", "color", "parentId", "deadline")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Project:
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            color=str(d.get("color", "")),
            parent_id=_opt_str(d.get("parentId")),
            deadline=_opt_str(d.get("deadline")),
            extra={k: v for k, v in d.items() if k not in cls._KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d.update({
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "parentId": self.parent_id,
            "deadline": self.deadline,
        })
        return d


# ── Application state ─────────────────────────────────────────


@dataclass(frozen=True)
class AppState:
    """One surface's replica of the shared state."""

    tasks: tuple[Task, ...] = ()
    projects: tuple[Project, ...] = ()
    ledger: Ledger = field(default_factory=Ledger)
    session: Session = field(default_factory=Session)
    focus_goal_minutes: int = 0
    hide_completed: bool = False
    think_pad_notes: str = ""
    # transient, never persisted
    hovered_project_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _KEYS = (
        "tasks",
        "projects",
        "timeEntries",
        "session",
        "focusGoalMinutes",
        "hideCompleted",
        "thinkPadNotes",
    )

    def with_(self, **changes: Any) -> AppState:
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AppState:
        """Build state from the blob's ``state`` object.

        Raises ValueError/TypeError when a section has the wrong shape.
        """
        if not isinstance(d, dict):
            raise ValueError("state must be an object")
        tasks = d.get("tasks") or []
        projects = d.get("projects") or []
        if not isinstance(tasks, list) or not isinstance(projects, list):
            raise ValueError("tasks and projects must be lists")
        goal = as_int(d.get("focusGoalMinutes")) or 0
        return cls(
            tasks=tuple(Task.from_dict(t) for t in tasks if isinstance(t, dict)),
            projects=tuple(Project.from_dict(p) for p in projects if isinstance(p, dict)),
            ledger=Ledger.from_list(d.get("timeEntries")),
            session=Session.from_dict(d.get("session") or {}),
            focus_goal_minutes=max(0, goal),
            hide_completed=bool(d.get("hideCompleted", False)),
            think_pad_notes=str(d.get("thinkPadNotes", "")),
            extra={k: v for k, v in d.items() if k not in cls._KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        """The whitelisted, persisted subset."""
        d: dict[str, Any] = dict(self.extra)
        d.update({
            "tasks": [t.to_dict() for t in self.tasks],
            "projects": [p.to_dict() for p in self.projects],
            "timeEntries": self.ledger.to_list(),
            "session": self.session.to_dict(),
            "focusGoalMinutes": self.focus_goal_minutes,
            "hideCompleted": self.hide_completed,
            "thinkPadNotes": self.think_pad_notes,
        })
        return d
