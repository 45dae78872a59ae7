"""Scheduler health counters and the bounded error log.

This module provides the ObservabilityState class which tracks:
- When the last live poll cycle started and when its API calls finished
- How many live cycles have run and how many calls debug mode blocked
- How many runs were active at the last snapshot update
- The most recent fetch errors (fixed capacity, oldest evicted first)

Readers get a :class:`DebugInfo` snapshot from :meth:`ObservabilityState.snapshot`;
the live counters are never handed out.  A lock guards every mutation so the
debug panel, which runs on the dashboard server thread, can take snapshots
while the event loop is updating counters.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any

# Number of error records retained
ERROR_LOG_CAPACITY = 10


@dataclass(frozen=True)
class ErrorRecord:
    """A single recorded fetch failure."""

    time: datetime
    message: str
    context: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "message": self.message,
            "context": self.context,
        }


@dataclass(frozen=True)
class DebugInfo:
    """Point-in-time copy of the scheduler's observability state."""

    last_polled: datetime | None
    poll_count: int
    active_runs: int
    api_calls_blocked: int
    last_api_call_time: datetime | None
    errors: tuple[ErrorRecord, ...]

    def recent_errors(self, limit: int = 3) -> tuple[ErrorRecord, ...]:
        """Return up to ``limit`` most recent errors, newest last."""
        if limit <= 0:
            return ()
        return self.errors[-limit:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_polled": self.last_polled.isoformat() if self.last_polled else None,
            "poll_count": self.poll_count,
            "active_runs": self.active_runs,
            "api_calls_blocked": self.api_calls_blocked,
            "last_api_call_time": (
                self.last_api_call_time.isoformat() if self.last_api_call_time else None
            ),
            "errors": [error.to_dict() for error in self.errors],
        }


class ObservabilityState:
    """Mutable counters, timestamps and error log owned by one scheduler."""

    def __init__(self, error_capacity: int = ERROR_LOG_CAPACITY) -> None:
        self._lock = threading.Lock()
        self.last_polled: datetime | None = None
        self.poll_count = 0
        self.active_runs = 0
        self.api_calls_blocked = 0
        self.last_api_call_time: datetime | None = None
        self._errors: deque[ErrorRecord] = deque(maxlen=error_capacity)

    @property
    def error_capacity(self) -> int:
        return self._errors.maxlen or 0

    def set_active_runs(self, count: int) -> None:
        with self._lock:
            self.active_runs = count

    def record_blocked(self, calls: int) -> int:
        """Add suppressed calls to the blocked counter and return the new total."""
        with self._lock:
            self.api_calls_blocked += calls
            return self.api_calls_blocked

    def record_cycle_start(self, now: datetime) -> int:
        """Mark the start of a live cycle and return the new poll count."""
        with self._lock:
            self.last_polled = now
            self.poll_count += 1
            return self.poll_count

    def record_cycle_end(self, now: datetime) -> None:
        with self._lock:
            self.last_api_call_time = now

    def record_error(self, time: datetime, message: str, context: str) -> ErrorRecord:
        """Append an error, evicting the oldest once capacity is reached."""
        record = ErrorRecord(time=time, message=message, context=context)
        with self._lock:
            self._errors.append(record)
        return record

    def snapshot(self) -> DebugInfo:
        with self._lock:
            return DebugInfo(
                last_polled=self.last_polled,
                poll_count=self.poll_count,
                active_runs=self.active_runs,
                api_calls_blocked=self.api_calls_blocked,
                last_api_call_time=self.last_api_call_time,
                errors=tuple(self._errors),
            )
