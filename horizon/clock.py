"""Clock source and time utilities.

Timestamps are integer epoch milliseconds everywhere in the engine.
Durations are always ``now() - timestamp``; nothing accumulates by ticking.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone, tzinfo


class Clock:
    """Source of the current time in epoch milliseconds."""

    def now(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> int:
        return int(time.time() * 1000)


class ManualClock(Clock):
    """A clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: int = 0) -> None:
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, ms: int) -> None:
        self._now = int(ms)

    def advance(self, ms: int = 0, *, seconds: float = 0, minutes: float = 0) -> int:
        self._now += int(ms + seconds * 1000 + minutes * 60_000)
        return self._now


# ── Conversions ───────────────────────────────────────────────


def to_datetime(ms: int, tz: tzinfo | None = None) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz or timezone.utc)


def to_iso(ms: int, tz: tzinfo | None = None) -> str:
    """Epoch ms -> ISO-8601 string with millisecond precision."""
    return to_datetime(ms, tz).isoformat(timespec="milliseconds")


def from_iso(text: str | None) -> int | None:
    """ISO-8601 string -> epoch ms. Naive values are taken as UTC.

    Returns None for anything unparseable.
    """
    if not text or not isinstance(text, str):
        return None
    s = text.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return round(dt.timestamp() * 1000)


def day_key(ms: int, tz: tzinfo | None = None) -> str:
    """The local calendar day (YYYY-MM-DD) a timestamp falls on."""
    return to_datetime(ms, tz).date().isoformat()


# ── Display formatting ────────────────────────────────────────


def fmt_duration(ms: int) -> str:
    """Whole minutes as '45m' or '1h 5m'."""
    minutes = max(0, int(ms)) // 60_000
    if minutes < 60:
        return f"{minutes}m"
    return f"{minutes // 60}h {minutes % 60}m"


def fmt_countdown(ms: int) -> str:
    """Remaining time as MM:SS, rounding partial seconds up."""
    total = max(0, math.ceil(ms / 1000))
    return f"{total // 60:02d}:{total % 60:02d}"


def as_int(value: object) -> int | None:
    """A persisted number as int; None for bools, non-numbers, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)
