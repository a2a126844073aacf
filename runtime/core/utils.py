"""Small utility helpers used across the core runtime."""

from __future__ import annotations

import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

# [d.]hh:mm:ss[.fraction]
_TIMESPAN_RE = re.compile(r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2}):(?P<seconds>\d{1,2}(?:\.\d+)?)$")

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_rfc3339(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timespan(raw: Any, default: timedelta) -> timedelta:
    """Parse `[d.]hh:mm:ss[.fff]` strings or a number of seconds.

    Missing or unparseable values return `default` instead of raising, so a
    typo in an interval deactivates an agent rather than breaking startup.
    """
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, timedelta):
        return raw
    try:
        return _to_timedelta(raw, default)
    except (ValueError, OverflowError):
        # nan, inf and out-of-range values
        return default


def _to_timedelta(raw: Any, default: timedelta) -> timedelta:
    if isinstance(raw, (int, float)):
        return timedelta(seconds=raw)

    s = str(raw).strip()
    if not s:
        return default
    m = _TIMESPAN_RE.match(s)
    if m is None:
        return timedelta(seconds=float(s))

    hours = int(m.group("hours"))
    minutes = int(m.group("minutes"))
    seconds = float(m.group("seconds"))
    if hours > 23 or minutes > 59 or seconds >= 60:
        return default
    return timedelta(
        days=int(m.group("days") or 0),
        hours=hours,
        minutes=minutes,
        seconds=seconds,
    )


def parse_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return default


def first_non_empty(*values: Any) -> str:
    """Return the first value that is a non-empty string, else ""."""
    for v in values:
        if isinstance(v, str) and v:
            return v
    return ""


class Once(Generic[T]):
    """Compute a value exactly once, even under concurrent first access.

    Readers take a lock-free fast path once the value is set. Concurrent first
    callers block until the single initializer finishes and then share its
    result.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._done = False
        self._value: T | None = None

    @property
    def done(self) -> bool:
        return self._done

    def get(self) -> T:
        if self._done:
            return self._value  # type: ignore[return-value]
        with self._lock:
            if not self._done:
                self._value = self._factory()
                self._done = True
        return self._value  # type: ignore[return-value]
