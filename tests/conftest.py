"""Shared test fixtures for Horizon tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from horizon.bridge import SyncBridge
from horizon.clock import ManualClock
from horizon.config import Settings
from horizon.controller import FocusController
from horizon.models import AppState, Project, Task
from horizon.store import MemoryBlobStore

# 2026-02-11T09:00:00Z
T0 = 1_770_800_400_000


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a profile and empty storage."""
    root = tmp_path / "workspace"
    (root / "storage").mkdir(parents=True)

    profile = {
        "timezone": "UTC",
        "focus": {
            "work_minutes": 25,
            "break_minutes": 5,
            "goal_minutes": 120,
            "tick_interval_ms": 500,
        },
    }
    (root / "profile.yaml").write_text(
        yaml.dump(profile, default_flow_style=False), encoding="utf-8"
    )

    os.environ["HORIZON_ROOT"] = str(root)
    yield root
    if "HORIZON_ROOT" in os.environ:
        del os.environ["HORIZON_ROOT"]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def seeded_state() -> AppState:
    """Two projects (one nested) and three tasks, no time recorded yet."""
    return AppState(
        projects=(
            Project(id="p-thesis", name="Thesis", color="#4f46e5"),
            Project(id="p-admin", name="Admin", color="#16a34a"),
        ),
        tasks=(
            Task(id="t-write", title="Write chapter 2", project_id="p-thesis", date="2026-02-11"),
            Task(id="t-plots", title="Make plots", project_id="p-thesis", deadline="2026-02-11"),
            Task(id="t-email", title="Answer email", project_id="p-admin", deadline="2026-02-09"),
        ),
    )


@pytest.fixture
def store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def bridge(store: MemoryBlobStore, seeded_state: AppState) -> SyncBridge:
    b = SyncBridge(store, origin="main")
    b.commit(seeded_state)
    return b


@pytest.fixture
def controller(bridge: SyncBridge, clock: ManualClock) -> FocusController:
    return FocusController(bridge, clock=clock, settings=Settings(), drives_phases=True)
