"""Task and project helpers used by the focus engine and its surfaces.

Task management proper lives elsewhere; these are the lookups the
aggregation queries need plus the few commands the companion surface
issues (complete a task) and the cascading delete that prunes the ledger.
"""

from __future__ import annotations

from dataclasses import replace

from horizon.models import AppState, Project, Task


def find_task(state: AppState, task_id: str) -> Task | None:
    for t in state.tasks:
        if t.id == task_id:
            return t
    return None


def find_project(state: AppState, project_id: str) -> Project | None:
    for p in state.projects:
        if p.id == project_id:
            return p
    return None


def tasks_for_project(state: AppState, project_id: str) -> list[Task]:
    return [t for t in state.tasks if t.project_id == project_id]


def complete_task(state: AppState, task_id: str, completed: bool = True) -> tuple[AppState, list[str]]:
    """Mark a task (in)complete. Leaves the focus session alone."""
    if not find_task(state, task_id):
        return state, [f"Task not found: {task_id}"]
    tasks = tuple(replace(t, completed=completed) if t.id == task_id else t for t in state.tasks)
    return state.with_(tasks=tasks), []


def delete_task(state: AppState, task_id: str) -> tuple[AppState, list[str]]:
    """Remove a task and every ledger entry recorded against it."""
    if not find_task(state, task_id):
        return state, [f"Task not found: {task_id}"]
    return state.with_(
        tasks=tuple(t for t in state.tasks if t.id != task_id),
        ledger=state.ledger.without_task(task_id),
    ), []


def todays_tasks(state: AppState, today: str) -> list[tuple[str, Task]]:
    """Open tasks the companion view lists, as (section, task) pairs.

    Sections in order: overdue (deadline passed), due (deadline today),
    today (scheduled for today). A task appears in the first section it fits.
    """
    overdue, due, scheduled = [], [], []
    for t in state.tasks:
        if t.completed:
            continue
        if t.deadline and t.deadline < today:
            overdue.append(t)
        elif t.deadline == today:
            due.append(t)
        elif t.date == today:
            scheduled.append(t)
    overdue.sort(key=lambda t: t.deadline or "")
    return (
        [("overdue", t) for t in overdue]
        + [("due", t) for t in due]
        + [("today", t) for t in scheduled]
    )
