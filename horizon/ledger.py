"""Append-only ledger of completed focus sessions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Iterable, Iterator

from horizon.clock import as_int, day_key, from_iso, to_iso

# Work sessions shorter than this are never recorded.
MIN_ENTRY_MS = 5000


def new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TimeEntry:
    id: str
    task_id: str
    started_at: int
    ended_at: int
    duration: int

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"TimeEntry {self.id}: negative duration {self.duration}")
        if self.ended_at - self.started_at != self.duration:
            raise ValueError(
                f"TimeEntry {self.id}: duration {self.duration} != "
                f"ended_at - started_at ({self.ended_at - self.started_at})"
            )

    @classmethod
    def record(cls, task_id: str, ended_at: int, elapsed: int, entry_id: str | None = None) -> TimeEntry:
        """Build the entry for a session that ran ``elapsed`` ms up to ``ended_at``."""
        return cls(
            id=entry_id or new_entry_id(),
            task_id=task_id,
            started_at=ended_at - elapsed,
            ended_at=ended_at,
            duration=elapsed,
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TimeEntry:
        """Parse a persisted entry. Raises ValueError if it is unusable."""
        if not isinstance(d, dict):
            raise ValueError("TimeEntry must be an object")
        started = from_iso(d.get("startedAt"))
        ended = from_iso(d.get("endedAt"))
        if started is None or ended is None:
            raise ValueError(f"TimeEntry {d.get('id')!r}: bad timestamps")
        duration = as_int(d.get("duration"))
        if duration is None:
            duration = ended - started
        # ISO strings only carry ms precision; trust endedAt and duration.
        return cls(
            id=str(d.get("id") or new_entry_id()),
            task_id=str(d.get("taskId", "")),
            started_at=ended - duration,
            ended_at=ended,
            duration=duration,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "startedAt": to_iso(self.started_at),
            "endedAt": to_iso(self.ended_at),
            "duration": self.duration,
        }


class Ledger:
    """Immutable, insertion-ordered collection of TimeEntry.

    Every "mutation" returns a new Ledger; existing entries are never edited
    or reordered.
    """

    __slots__ = ("_entries", "_ids")

    def __init__(self, entries: Iterable[TimeEntry] = ()) -> None:
        self._entries: tuple[TimeEntry, ...] = tuple(entries)
        self._ids = frozenset(e.id for e in self._entries)
        if len(self._ids) != len(self._entries):
            raise ValueError("Ledger contains duplicate entry ids")

    def __iter__(self) -> Iterator[TimeEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> TimeEntry:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ledger):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"Ledger({len(self._entries)} entries)"

    @property
    def entries(self) -> tuple[TimeEntry, ...]:
        return self._entries

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._ids

    def appended(self, *entries: TimeEntry) -> Ledger:
        for e in entries:
            if e.id in self._ids:
                raise ValueError(f"TimeEntry already recorded: {e.id}")
        return Ledger(self._entries + entries)

    def without_task(self, task_id: str) -> Ledger:
        """Drop every entry referencing ``task_id`` (cascading task delete)."""
        return Ledger(e for e in self._entries if e.task_id != task_id)

    def for_task(self, task_id: str) -> list[TimeEntry]:
        return [e for e in self._entries if e.task_id == task_id]

    def total_for_task(self, task_id: str) -> int:
        return sum(e.duration for e in self._entries if e.task_id == task_id)

    def total(self) -> int:
        return sum(e.duration for e in self._entries)

    def entries_on(self, day: str, tz: tzinfo | None = None) -> list[TimeEntry]:
        """Entries that started on the given local day (YYYY-MM-DD)."""
        return [e for e in self._entries if day_key(e.started_at, tz) == day]

    @classmethod
    def from_list(cls, items: Any) -> Ledger:
        """Parse persisted entries, skipping unusable ones and later duplicates."""
        entries: list[TimeEntry] = []
        seen: set[str] = set()
        for item in items or []:
            try:
                entry = TimeEntry.from_dict(item)
            except (ValueError, TypeError, OverflowError):
                continue
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
        return cls(entries)

    def to_list(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._entries]
