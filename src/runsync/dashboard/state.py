"""Read-only state accessor for the debug panel.

This module provides a thread-safe, read-only view of a PollingScheduler for
the debug panel.  The dashboard server runs in its own thread with its own
event loop, so the accessor only reads immutable snapshots and hands manual
poll requests back to the scheduler's loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from runsync.logging import get_logger
from runsync.observability import DebugInfo, ErrorRecord

if TYPE_CHECKING:
    from runsync.polling_config import PollingConfiguration

logger = get_logger(__name__)

# Number of errors shown on the HTML panel
PANEL_ERROR_LIMIT = 3


class SchedulerStateProvider(Protocol):
    """Public scheduler surface the dashboard depends on."""

    @property
    def config(self) -> PollingConfiguration:
        """Return the current polling configuration."""
        ...

    @property
    def is_running(self) -> bool:
        """Return whether the recurring timer is active."""
        ...

    def get_debug_info(self) -> DebugInfo:
        """Return a copy of the observability state."""
        ...

    def trigger_poll(self) -> asyncio.Task[None] | None:
        """Start one poll cycle now."""
        ...


@dataclass(frozen=True)
class DebugPanelState:
    """Immutable snapshot of scheduler state for template rendering."""

    poll_count: int
    last_polled: datetime | None
    last_api_call_time: datetime | None
    active_runs: int
    api_calls_blocked: int
    recent_errors: tuple[ErrorRecord, ...]
    error_count: int
    debug_mode: bool
    polling_enabled: bool
    interval_ms: int
    is_running: bool


class SchedulerStateAccessor:
    """Thread-safe, read-only accessor for scheduler state.

    The only write it allows is the manual poll trigger, which is forwarded
    to the scheduler's own event loop.
    """

    def __init__(
        self,
        scheduler: SchedulerStateProvider,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialize the state accessor.

        Args:
            scheduler: An object implementing SchedulerStateProvider.
            loop: The event loop the scheduler runs on.  When given, manual
                poll requests from other threads are scheduled onto it with
                ``call_soon_threadsafe``.
        """
        self._scheduler = scheduler
        self._loop = loop

    def get_debug_info(self) -> DebugInfo:
        return self._scheduler.get_debug_info()

    def get_state(self) -> DebugPanelState:
        """Get a snapshot of the current scheduler state."""
        info = self._scheduler.get_debug_info()
        config = self._scheduler.config
        return DebugPanelState(
            poll_count=info.poll_count,
            last_polled=info.last_polled,
            last_api_call_time=info.last_api_call_time,
            active_runs=info.active_runs,
            api_calls_blocked=info.api_calls_blocked,
            recent_errors=tuple(reversed(info.recent_errors(PANEL_ERROR_LIMIT))),
            error_count=len(info.errors),
            debug_mode=config.enable_debug_mode,
            polling_enabled=config.enable_polling,
            interval_ms=config.interval_ms,
            is_running=self._scheduler.is_running,
        )

    def trigger_poll(self) -> None:
        """Request a manual poll cycle on the scheduler's event loop."""
        if self._loop is None or self._is_current_loop(self._loop):
            self._scheduler.trigger_poll()
            return
        if self._loop.is_closed():
            raise RuntimeError("Scheduler event loop is closed")
        self._loop.call_soon_threadsafe(self._scheduler.trigger_poll)
        logger.debug("Manual poll scheduled onto scheduler loop")

    @staticmethod
    def _is_current_loop(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False
