"""Runtime configuration surface of a polling scheduler.

Unlike :class:`runsync.config.Config`, which is frozen and loaded once from
the environment, :class:`PollingConfiguration` is mutable: hosts may flip
``enable_debug_mode`` or swap callbacks on a live scheduler.  Assigning a new
configuration object replaces every field, so change a single field with
``dataclasses.replace(scheduler.config, interval_ms=60_000)``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from runsync.config import DEFAULT_POLL_INTERVAL_MS, DEFAULT_RUN_DELAY_MS
from runsync.types import FlightStatus, InvalidationType, TrafficData

if TYPE_CHECKING:
    from runsync.config import PollingSettings

FlightStatusCallback = Callable[[str, FlightStatus], None]
TrafficDataCallback = Callable[[str, TrafficData], None]
ErrorCallback = Callable[[Exception, str], None]
InvalidationCallback = Callable[[InvalidationType, str], None]


@dataclass
class PollingConfiguration:
    """Scheduler knobs plus the optional notification callbacks.

    Attributes:
        interval_ms: Milliseconds between timer ticks.
        enable_debug_mode: Suppress live calls and count them as blocked.  None
            lets the scheduler detect it from the environment.
        enable_polling: When False, ``start()`` does nothing.
        run_delay_ms: Pause after each run's fetches.
        single_flight: Skip a cycle requested while another is in flight.
        on_flight_status_update: Legacy per-entity callback ``(flight_number, status)``.
        on_traffic_data_update: Legacy per-entity callback ``(route_key, data)``.
        on_error: Called with ``(error, context)`` after the error is recorded.
        on_data_invalidation: Called with ``(type, key)`` after a successful fetch.
    """

    interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    enable_debug_mode: bool | None = None
    enable_polling: bool = True
    run_delay_ms: int = DEFAULT_RUN_DELAY_MS
    single_flight: bool = False
    on_flight_status_update: FlightStatusCallback | None = None
    on_traffic_data_update: TrafficDataCallback | None = None
    on_error: ErrorCallback | None = None
    on_data_invalidation: InvalidationCallback | None = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @property
    def run_delay_seconds(self) -> float:
        return self.run_delay_ms / 1000

    @classmethod
    def from_settings(
        cls, settings: PollingSettings, enable_debug_mode: bool | None = None
    ) -> PollingConfiguration:
        """Build a runtime configuration from loaded polling settings."""
        return cls(
            interval_ms=settings.interval_ms,
            enable_debug_mode=enable_debug_mode,
            enable_polling=settings.enabled,
            run_delay_ms=settings.run_delay_ms,
            single_flight=settings.single_flight,
        )
