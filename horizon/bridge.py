"""Persistence/sync bridge between a surface's replica and the shared blob.

Every commit serializes the whole whitelisted state into one blob under a
fixed key (last writer wins). When another surface writes that key, the
store notifies us and we throw away the in-memory replica and re-read the
blob. There is no merge, no vector clock and no conflict detection.

Reading is best-effort: a missing or malformed blob keeps the current
replica and is only logged, so a corrupt blob never takes a surface down.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Callable

from horizon.config import DEFAULT_STORAGE_KEY
from horizon.models import AppState
from horizon.store import BlobStore

logger = logging.getLogger(__name__)

BLOB_VERSION = 1

StateListener = Callable[[AppState], None]


def encode_blob(state: AppState, origin: str, revision: int) -> str:
    blob = {
        "state": state.to_dict(),
        "version": BLOB_VERSION,
        "origin": origin,
        "revision": revision,
    }
    return json.dumps(blob, indent=2, ensure_ascii=False) + "\n"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} in blob")


def decode_blob(text: str) -> tuple[AppState, int]:
    """Parse blob text into (state, revision). Raises ValueError if unusable."""
    data = json.loads(text, parse_constant=_reject_constant)
    if not isinstance(data, dict) or not isinstance(data.get("state"), dict):
        raise ValueError("blob has no state object")
    version = data.get("version", BLOB_VERSION)
    if isinstance(version, int) and version > BLOB_VERSION:
        logger.warning("Blob version %s is newer than supported %s", version, BLOB_VERSION)
    revision = data.get("revision", 0)
    return AppState.from_dict(data["state"]), revision if isinstance(revision, int) else 0


class SyncBridge:
    """Owns one surface's replica and keeps it in step with the shared blob."""

    def __init__(
        self,
        store: BlobStore,
        origin: str | None = None,
        key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        self.store = store
        self.origin = origin or uuid.uuid4().hex
        self.key = key
        self._state = AppState()
        self._revision = 0
        self._applying = False
        self._listeners: list[StateListener] = []
        store.subscribe(self.origin, self.on_change)

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def revision(self) -> int:
        """Revision of the last blob written or applied."""
        return self._revision

    def add_listener(self, fn: StateListener) -> None:
        """Called with the new replica after every external snapshot is applied."""
        self._listeners.append(fn)

    def hydrate(self) -> AppState:
        """Initial load; falls back to defaults when the blob is missing or bad."""
        self._load()
        return self._state

    def commit(self, state: AppState) -> bool:
        """Replace the replica and write it out. Returns False if refused."""
        if self._applying:
            logger.warning("Ignoring commit while applying an external snapshot")
            return False
        # transient fields stay local; the blob never carries them
        self._state = state
        self._revision += 1
        self.store.write(self.key, encode_blob(state, self.origin, self._revision), self.origin)
        logger.debug("%s committed revision %d", self.origin[:8], self._revision)
        return True

    def update(self, fn: Callable[[AppState], AppState]) -> AppState:
        """Commit ``fn(state)``; convenience for single-step edits."""
        new_state = fn(self._state)
        self.commit(new_state)
        return self._state

    def set_local(self, **changes: Any) -> AppState:
        """Change transient fields only, without writing."""
        self._state = self._state.with_(**changes)
        return self._state

    def on_change(self, key: str) -> bool:
        """External change notification. Returns True if a snapshot was applied."""
        if key != self.key:
            return False
        if self._applying:
            return False
        return self._load()

    def refresh(self) -> int:
        """Deliver any pending store notifications (pull-based stores)."""
        return self.store.poll()

    def _load(self) -> bool:
        try:
            text = self.store.read(self.key)
            if not text:
                logger.debug("No blob under %s; keeping current state", self.key)
                return False
            snapshot, revision = decode_blob(text)
        except (OSError, ValueError, TypeError, OverflowError) as e:
            logger.warning("Skipping unreadable blob %s: %s", self.key, e)
            return False

        self._applying = True
        try:
            self._state = snapshot.with_(hovered_project_id=self._state.hovered_project_id)
            self._revision = max(self._revision, revision)
            for fn in list(self._listeners):
                try:
                    fn(self._state)
                except Exception:
                    logger.exception("State listener failed")
        finally:
            self._applying = False
        return True
