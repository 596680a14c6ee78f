"""Focus engine settings, loaded from profile.yaml.

Unknown keys are ignored; missing or invalid values fall back to defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from horizon.fileio import read_yaml
from horizon.workspace import profile_path, workspace_root

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "calendar-storage"


def _positive_int(value: Any, default: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


@dataclass(frozen=True)
class Durations:
    """Phase lengths in milliseconds."""

    work_ms: int = 25 * 60 * 1000
    break_ms: int = 5 * 60 * 1000

    def for_phase(self, phase: str) -> int:
        return self.break_ms if phase == "break" else self.work_ms


@dataclass(frozen=True)
class Settings:
    timezone: str = "UTC"
    work_minutes: int = 25
    break_minutes: int = 5
    focus_goal_minutes: int = 0
    tick_interval_ms: int = 500
    storage_key: str = DEFAULT_STORAGE_KEY

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        focus = d.get("focus") if isinstance(d.get("focus"), dict) else {}
        goal = focus.get("goal_minutes", 0)
        try:
            goal = max(0, int(goal))
        except (TypeError, ValueError):
            goal = 0
        return cls(
            timezone=str(d.get("timezone", "UTC")),
            work_minutes=_positive_int(focus.get("work_minutes"), 25),
            break_minutes=_positive_int(focus.get("break_minutes"), 5),
            focus_goal_minutes=goal,
            tick_interval_ms=_positive_int(focus.get("tick_interval_ms"), 500),
            storage_key=str(d.get("storage_key") or DEFAULT_STORAGE_KEY),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "storage_key": self.storage_key,
            "focus": {
                "work_minutes": self.work_minutes,
                "break_minutes": self.break_minutes,
                "goal_minutes": self.focus_goal_minutes,
                "tick_interval_ms": self.tick_interval_ms,
            },
        }

    @property
    def durations(self) -> Durations:
        return Durations(
            work_ms=self.work_minutes * 60 * 1000,
            break_ms=self.break_minutes * 60 * 1000,
        )

    @property
    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using UTC", self.timezone)
            return ZoneInfo("UTC")


def load_settings(root: Path | None = None) -> Settings:
    """Load settings from the workspace profile.yaml."""
    if root is None:
        root = workspace_root()
    try:
        data = read_yaml(profile_path(root))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read profile.yaml: %s", e)
        data = {}
    return Settings.from_dict(data)
