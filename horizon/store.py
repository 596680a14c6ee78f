"""Keyed blob stores shared between Horizon surfaces.

A store holds opaque JSON text per key and tells each subscriber when a
key was written by some *other* origin. It never reports a subscriber's
own writes back to it.

Two adapters:

- MemoryBlobStore: in-process, for tests and simulations. Notifications are
  pushed immediately, or queued until ``poll()`` when ``deferred=True`` so
  races between replicas can be staged deliberately.
- FileBlobStore: one ``<key>.json`` file per key under a directory, written
  atomically. Other processes are detected by ``poll()`` comparing the file
  content fingerprint and the ``origin`` recorded in the blob.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Callable

from horizon.fileio import read_text, write_text_atomic

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class BlobStore:
    def read(self, key: str) -> str | None:
        raise NotImplementedError

    def write(self, key: str, text: str, origin: str) -> None:
        raise NotImplementedError

    def subscribe(self, origin: str, listener: Listener) -> None:
        """Call ``listener(key)`` whenever another origin writes ``key``."""
        raise NotImplementedError

    def poll(self) -> int:
        """Deliver pending change notifications. Returns how many were sent."""
        return 0


def _notify(listener: Listener, key: str) -> None:
    try:
        listener(key)
    except Exception:
        logger.exception("Blob change listener failed for %s", key)


class MemoryBlobStore(BlobStore):
    def __init__(self, deferred: bool = False) -> None:
        self.deferred = deferred
        self._blobs: dict[str, str] = {}
        self._subscribers: list[tuple[str, Listener]] = []
        self._pending: list[tuple[Listener, str]] = []

    def read(self, key: str) -> str | None:
        return self._blobs.get(key)

    def write(self, key: str, text: str, origin: str) -> None:
        self._blobs[key] = text
        for sub_origin, listener in list(self._subscribers):
            if sub_origin == origin:
                continue
            if self.deferred:
                self._pending.append((listener, key))
            else:
                _notify(listener, key)

    def subscribe(self, origin: str, listener: Listener) -> None:
        self._subscribers.append((origin, listener))

    def poll(self) -> int:
        pending, self._pending = self._pending, []
        for listener, key in pending:
            _notify(listener, key)
        return len(pending)

    def corrupt(self, key: str, text: str) -> None:
        """Overwrite a blob without notifying anyone (test helper)."""
        self._blobs[key] = text


class FileBlobStore(BlobStore):
    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self._subscribers: list[tuple[str, Listener]] = []
        # fingerprint of the blob content each origin has accounted for, per key
        self._seen: dict[tuple[str, str], str | None] = {}

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _raw(self, key: str) -> bytes | None:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read %s: %s", self.path_for(key), e)
            return None

    @staticmethod
    def _fingerprint(raw: bytes | None) -> str | None:
        return hashlib.sha1(raw).hexdigest() if raw is not None else None

    @staticmethod
    def _writer(raw: bytes | None) -> str | None:
        if not raw:
            return None
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError:
            return None
        return data.get("origin") if isinstance(data, dict) else None

    def read(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            text = read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None
        return text or None

    def write(self, key: str, text: str, origin: str) -> None:
        write_text_atomic(self.path_for(key), text)
        mark = self._fingerprint(text.encode("utf-8"))
        for sub_origin, _ in self._subscribers:
            if sub_origin == origin:
                self._seen[(sub_origin, key)] = mark

    def subscribe(self, origin: str, listener: Listener) -> None:
        self._subscribers.append((origin, listener))
        self.prime(origin)

    def _keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def poll(self) -> int:
        sent = 0
        for key in self._keys():
            raw = self._raw(key)
            mark = self._fingerprint(raw)
            for origin, listener in list(self._subscribers):
                if self._seen.get((origin, key)) == mark:
                    continue
                self._seen[(origin, key)] = mark
                if self._writer(raw) == origin:
                    continue
                _notify(listener, key)
                sent += 1
        return sent

    def prime(self, origin: str) -> None:
        """Mark the current files as already seen by ``origin``."""
        for key in self._keys():
            self._seen[(origin, key)] = self._fingerprint(self._raw(key))
