"""Polling scheduler for the run sync service.

This module provides the PollingScheduler class which manages:
- The recurring timer that starts a poll cycle every ``interval_ms``
- The start/stop lifecycle and the manual ``trigger_poll()``
- The run snapshot handed over by the host (``update_runs``)
- Read-only access to the scheduler's observability state

Component Boundaries
--------------------
PollingScheduler owns *when* cycles run.  What a cycle does lives in
:class:`runsync.executor.SyncExecutor`; whether live calls are allowed is
resolved once by :class:`runsync.debug_gate.DebugGate`.

Concurrency
-----------
Every cycle runs as its own asyncio task.  The timer does not wait for the
previous cycle, so a slow cycle, or a manual trigger during a timer cycle,
overlaps with the next one.  Set ``single_flight`` on the configuration to
skip cycles requested while one is still in flight instead.

``stop()`` only cancels the timer.  Cycles already running finish normally,
including their per-run pauses and callbacks; use :meth:`wait_idle` to await
them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace
from enum import StrEnum

from runsync.clients import FlightService, TrafficService
from runsync.debug_gate import DebugGate, DebugResolver
from runsync.executor import ClockFunc, SleepFunc, SyncExecutor, utc_now
from runsync.logging import get_logger
from runsync.observability import ERROR_LOG_CAPACITY, DebugInfo, ObservabilityState
from runsync.polling_config import PollingConfiguration
from runsync.run_registry import RunSetRegistry
from runsync.types import Run

logger = get_logger(__name__)


class SchedulerState(StrEnum):
    """Lifecycle state of a PollingScheduler."""

    STOPPED = "stopped"
    RUNNING = "running"


class PollingScheduler:
    """Periodically refreshes flight and traffic data for active runs.

    Usage:
        scheduler = PollingScheduler(flight_client, traffic_client, debug_mode=False)
        scheduler.update_runs(runs)
        scheduler.start()          # requires a running event loop
        ...
        scheduler.stop()
        await scheduler.wait_idle()
    """

    def __init__(
        self,
        flight_service: FlightService,
        traffic_service: TrafficService,
        config: PollingConfiguration | None = None,
        debug_mode: bool | DebugResolver | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = utc_now,
        error_capacity: int = ERROR_LOG_CAPACITY,
    ) -> None:
        """Initialize the scheduler.

        Debug mode is resolved here, once.  An explicit ``debug_mode`` (flag
        or resolver) always wins and is written into the configuration.
        Without one, a ``config`` that sets ``enable_debug_mode`` keeps that
        value; when it is left as None, debug mode is detected from the
        process environment.

        Args:
            flight_service: Flight status collaborator.
            traffic_service: Traffic data collaborator.
            config: Initial configuration; copied, never mutated.
            debug_mode: Explicit debug flag or resolver.
            sleep: Awaitable sleep for the timer and per-run pauses.
            clock: Timestamp source for the observability state.
            error_capacity: Number of error records retained.
        """
        if debug_mode is None and config is not None:
            debug_mode = config.enable_debug_mode
        self._debug_gate = DebugGate.resolve(debug_mode)

        self._config = replace(
            config or PollingConfiguration(), enable_debug_mode=self._debug_gate.active
        )
        self._registry = RunSetRegistry()
        self._observability = ObservabilityState(error_capacity=error_capacity)
        self._sleep = sleep
        self._executor = SyncExecutor(
            registry=self._registry,
            observability=self._observability,
            flight_service=flight_service,
            traffic_service=traffic_service,
            get_config=lambda: self._config,
            sleep=sleep,
            clock=clock,
        )
        self._state = SchedulerState.STOPPED
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

        logger.info(
            "Polling scheduler initialized: interval=%sms debug_mode=%s polling_enabled=%s",
            self._config.interval_ms,
            self._config.enable_debug_mode,
            self._config.enable_polling,
        )

    @property
    def config(self) -> PollingConfiguration:
        return self._config

    @config.setter
    def config(self, value: PollingConfiguration) -> None:
        if value.enable_debug_mode is None:
            value = replace(value, enable_debug_mode=self._debug_gate.active)
        self._config = value

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def executor(self) -> SyncExecutor:
        return self._executor

    def start(self) -> None:
        """Start the recurring timer and run the first cycle immediately.

        Does nothing if already running, if polling is disabled, or if
        ``interval_ms`` is not positive.  The timer interval is read once here;
        restart to apply a new ``interval_ms``.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        if self._state is SchedulerState.RUNNING:
            logger.warning("Polling already started")
            return

        if not self._config.enable_polling:
            logger.info("Polling disabled in config")
            return

        if self._config.interval_ms <= 0:
            logger.error(
                "Refusing to start polling: interval_ms must be positive, got %s",
                self._config.interval_ms,
            )
            return

        loop = asyncio.get_running_loop()
        logger.info(
            "Starting polling: interval=%sms debug_mode=%s",
            self._config.interval_ms,
            self._config.enable_debug_mode,
        )

        self._timer = loop.create_task(
            self._run_timer(self._config.interval_seconds), name="runsync-poll-timer"
        )
        self._spawn_cycle("initial")
        self._state = SchedulerState.RUNNING

    def stop(self) -> None:
        """Cancel the timer.  Cycles already in flight run to completion."""
        if self._state is SchedulerState.STOPPED:
            logger.warning("Polling not running")
            return

        logger.info("Stopping polling")
        self._state = SchedulerState.STOPPED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def trigger_poll(self) -> asyncio.Task[None] | None:
        """Start one poll cycle now, whatever the scheduler state.

        Returns:
            The task running the cycle, or None if it was skipped because
            ``single_flight`` is set and a cycle is already in flight.
        """
        logger.info("Manual poll trigger")
        return self._spawn_cycle("manual")

    async def poll_active_runs(self) -> None:
        """Run one poll cycle inline and wait for it to finish."""
        await self._executor.poll_active_runs()

    def update_runs(self, runs: Iterable[Run]) -> None:
        """Replace the tracked run snapshot.  Does not start a cycle."""
        active_count = self._registry.update(runs)
        self._observability.set_active_runs(active_count)
        logger.info(
            "Updated runs list: %s total, %s active, statuses=%s",
            len(self._registry),
            active_count,
            self._registry.status_counts(),
        )

    def get_debug_info(self) -> DebugInfo:
        """Return a copy of the current observability state."""
        return self._observability.snapshot()

    async def wait_idle(self) -> None:
        """Wait until no poll cycle is in flight."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _run_timer(self, interval_seconds: float) -> None:
        while True:
            await self._sleep(interval_seconds)
            self._spawn_cycle("timer")

    def _spawn_cycle(self, trigger: str) -> asyncio.Task[None] | None:
        if self._config.single_flight and self._in_flight:
            logger.info(
                "Skipping %s poll: %s cycle(s) already in flight", trigger, len(self._in_flight)
            )
            return None

        task = asyncio.get_running_loop().create_task(
            self._executor.poll_active_runs(), name=f"runsync-poll-{trigger}"
        )
        self._in_flight.add(task)
        task.add_done_callback(self._on_cycle_done)
        return task

    def _on_cycle_done(self, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            logger.debug("Poll cycle %s was cancelled", task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Poll cycle %s failed: %s",
                task.get_name(),
                error,
                exc_info=error,
                extra={"error_type": type(error).__name__},
            )
