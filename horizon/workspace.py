"""Workspace root and path helpers for Horizon."""

from __future__ import annotations

import os
from pathlib import Path


def workspace_root() -> Path:
    """Get the workspace root directory (holds profile.yaml, hooks.yaml and storage/)."""
    return Path(
        os.environ.get("HORIZON_ROOT", str(Path.home() / "horizon"))
    ).expanduser().resolve()


# ── Path helpers ──────────────────────────────────────────────

def profile_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "profile.yaml"


def storage_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "storage"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "hooks.yaml"
