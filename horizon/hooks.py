"""Shell hooks for Horizon's outbound signals.

Signals the focus engine emits for the host shell are delivered by running
the shell commands configured in hooks.yaml, with the signal payload passed
as JSON on stdin. Delivery is fire-and-forget: no acknowledgement, no retry.

hooks.yaml maps a hook point to a list of commands, each either a string or
``{command: ..., timeout: seconds}``:

    on_session_completed:
      - notify-send "Focus session done"
    on_break_completed:
      - command: ./scripts/back-to-work.sh
        timeout: 5
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

import yaml

from horizon.fileio import read_yaml
from horizon.session import Signal
from horizon.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

VALID_HOOK_POINTS = {
    "on_session_completed",
    "on_break_completed",
}

DEFAULT_TIMEOUT = 30
OUTPUT_CAP = 4096


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    """Load hooks configuration from hooks.yaml; {} when missing or unreadable."""
    path = hooks_config_path(root or workspace_root())
    try:
        return read_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return {}


def _commands(config: dict[str, Any], hook_point: str) -> list[tuple[str, float]]:
    """(command, timeout) pairs for a hook point, skipping malformed entries."""
    hooks = config.get(hook_point)
    if not isinstance(hooks, list):
        return []
    out = []
    for hook in hooks:
        if isinstance(hook, str):
            command, timeout = hook, DEFAULT_TIMEOUT
        elif isinstance(hook, dict):
            command, timeout = hook.get("command", ""), hook.get("timeout", DEFAULT_TIMEOUT)
        else:
            continue
        if command:
            out.append((str(command), timeout))
    return out


def _run_one(command: str, timeout: float, hook_point: str, payload: str, root: Path) -> dict[str, Any]:
    result: dict[str, Any] = {"command": command, "hook_point": hook_point}
    try:
        proc = subprocess.run(
            command,
            shell=True,
            input=payload,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(root),
        )
    except subprocess.TimeoutExpired:
        logger.warning("Hook %r (%s) timed out after %ss", command, hook_point, timeout)
        return {**result, "exit_code": -1, "error": f"Hook timed out after {timeout}s"}
    except OSError as e:
        logger.warning("Hook %r (%s) failed: %s", command, hook_point, e)
        return {**result, "exit_code": -1, "error": str(e)}

    if proc.returncode != 0:
        logger.warning("Hook %r (%s) exited %d", command, hook_point, proc.returncode)
    return {
        **result,
        "exit_code": proc.returncode,
        "stdout": proc.stdout[:OUTPUT_CAP],
        "stderr": proc.stderr[:OUTPUT_CAP],
    }


def run_hooks(
    hook_point: str,
    context: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run every command registered for ``hook_point``, in order.

    ``context`` is passed as JSON on each command's stdin. Returns one result
    per command with its exit code and (capped) output.
    """
    if hook_point not in VALID_HOOK_POINTS:
        return []
    root = root or workspace_root()
    commands = _commands(load_hooks_config(root), hook_point)
    if not commands:
        return []
    payload = json.dumps(context, ensure_ascii=False)
    return [_run_one(command, timeout, hook_point, payload, root) for command, timeout in commands]


class HookSink:
    """Controller subscriber that forwards signals to the configured hooks."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root

    def __call__(self, signal: Signal) -> None:
        results = run_hooks(f"on_{signal.name}", signal.to_dict(), self.root)
        if results:
            logger.debug("Ran %d hook(s) for %s", len(results), signal.name)
