"""Per-cycle synchronization of flight and traffic data for active runs.

This module provides the SyncExecutor class which performs one poll cycle:

1. Select the active runs from the registry (nothing to do -> return).
2. Under debug mode, count the calls that would have been made and return.
3. Otherwise stamp the cycle, then for each active run, strictly in order:
   fetch flight status, fetch traffic data, pause ``run_delay_ms``.
4. Stamp the time the cycle's API calls finished.

Every fetch failure is recorded in the bounded error log, forwarded to the
``on_error`` callback and swallowed, so one run's failure never aborts the
rest of the cycle.

The pause after each run (including the last one) throttles the call rate
against free-tier provider quotas.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from runsync.clients import FlightService, TrafficService
from runsync.invalidation import InvalidationDispatcher
from runsync.logging import get_logger, short_id
from runsync.observability import ObservabilityState
from runsync.polling_config import PollingConfiguration
from runsync.run_registry import RunSetRegistry
from runsync.types import Run

logger = get_logger(__name__)

# Each active run costs one flight call and one traffic call
CALLS_PER_RUN = 2

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SyncExecutor:
    """Runs poll cycles against the flight and traffic collaborators.

    The executor holds no configuration of its own: ``get_config`` is called
    whenever a setting is needed, so a scheduler can swap its configuration
    between (or during) cycles.

    Thread Safety:
        Designed for a single asyncio event loop.  Overlapping cycles on that
        loop are allowed and share the observability state.
    """

    def __init__(
        self,
        registry: RunSetRegistry,
        observability: ObservabilityState,
        flight_service: FlightService,
        traffic_service: TrafficService,
        get_config: Callable[[], PollingConfiguration],
        dispatcher: InvalidationDispatcher | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = utc_now,
    ) -> None:
        """Initialize the executor.

        Args:
            registry: Source of the current run snapshot.
            observability: Counters and error log to update.
            flight_service: Flight status collaborator.
            traffic_service: Traffic data collaborator.
            get_config: Returns the scheduler's current configuration.
            dispatcher: Callback dispatcher; built from ``get_config`` if omitted.
            sleep: Awaitable sleep used for the per-run pause.
            clock: Source of timestamps for the observability state.
        """
        self._registry = registry
        self._observability = observability
        self._flight_service = flight_service
        self._traffic_service = traffic_service
        self._get_config = get_config
        self._dispatcher = dispatcher or InvalidationDispatcher(get_config)
        self._sleep = sleep
        self._clock = clock

    async def poll_active_runs(self) -> None:
        """Run one poll cycle over the currently active runs."""
        active_runs = self._registry.active_runs()

        if not active_runs:
            logger.debug("No active runs to poll")
            return

        config = self._get_config()
        if config.enable_debug_mode:
            total_blocked = self._observability.record_blocked(len(active_runs) * CALLS_PER_RUN)
            logger.info(
                "Debug mode: blocking API calls for %s active run(s), %s blocked in total",
                len(active_runs),
                total_blocked,
            )
            return

        cycle = self._observability.record_cycle_start(self._clock())
        logger.info(
            "Polling %s active run(s): %s",
            len(active_runs),
            ", ".join(short_id(run.id) for run in active_runs),
            extra={"cycle": cycle},
        )

        for run in active_runs:
            try:
                await self.poll_flight_status(run)
                await self.poll_traffic_data(run)
                await self._sleep(self._get_config().run_delay_seconds)
            except Exception as e:
                self.handle_error(e, f"Polling run {run.id}")

        self._observability.record_cycle_end(self._clock())
        logger.debug("Poll cycle %s finished", cycle, extra={"cycle": cycle})

    async def poll_flight_status(self, run: Run) -> None:
        """Fetch flight status for a run and notify the cache layer."""
        run_logger = logger.with_context(run_id=short_id(run.id), flight_number=run.flight_number)
        run_logger.debug("Polling flight status", extra={"diagnostic_tag": "polling"})

        try:
            status = await self._flight_service.get_flight_status(run.flight_number)
        except Exception as e:
            self.handle_error(e, f"Flight status for {run.flight_number}")
            return

        self._dispatcher.flight_updated(run.flight_number, status)
        run_logger.debug("Flight status updated", extra={"diagnostic_tag": "polling"})

    async def poll_traffic_data(self, run: Run) -> None:
        """Fetch traffic data for a run's route and notify the cache layer."""
        route_key = run.route_key
        run_logger = logger.with_context(run_id=short_id(run.id), route=route_key)
        run_logger.debug("Polling traffic data", extra={"diagnostic_tag": "polling"})

        try:
            data = await self._traffic_service.get_traffic_data(
                run.pickup_location, run.dropoff_location
            )
        except Exception as e:
            self.handle_error(
                e, f"Traffic data for {run.pickup_location} → {run.dropoff_location}"
            )
            return

        self._dispatcher.traffic_updated(route_key, data)
        run_logger.debug("Traffic data updated", extra={"diagnostic_tag": "polling"})

    def handle_error(self, error: Exception, context: str) -> None:
        """Record a failure, log it, then forward it to ``on_error``."""
        message = str(error) or type(error).__name__
        self._observability.record_error(self._clock(), message, context)
        logger.warning(
            "Polling error in %s: %s",
            context,
            message,
            extra={"context": context, "error_type": type(error).__name__},
        )
        self._dispatcher.error(error, context)
