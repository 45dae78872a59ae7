"""Notifications from the scheduler to the host's cache layer.

After each successful fetch the scheduler tells the host which cache key went
stale (``on_data_invalidation``) and, for older integrations, hands over the
fresh payload (``on_flight_status_update`` / ``on_traffic_data_update``).
Fetch failures are forwarded through ``on_error`` once they have been
recorded locally.

Hosts can either set those callbacks directly on the
:class:`~runsync.polling_config.PollingConfiguration`, or implement the
:class:`InvalidationListener` capability and install it with
:func:`listener_callbacks`::

    scheduler.config = replace(scheduler.config, **listener_callbacks(cache))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from runsync.polling_config import PollingConfiguration
from runsync.types import FlightStatus, InvalidationType, TrafficData

FLIGHT: InvalidationType = "flight"
TRAFFIC: InvalidationType = "traffic"


@runtime_checkable
class InvalidationListener(Protocol):
    """Capability implemented by whatever cache layer the host uses."""

    def invalidate(self, type: InvalidationType, key: str) -> None:
        """Mark the cached entry for ``key`` stale."""
        ...

    def on_flight_updated(self, flight_number: str, status: FlightStatus) -> None:
        """Receive a freshly fetched flight status."""
        ...

    def on_traffic_updated(self, route_key: str, data: TrafficData) -> None:
        """Receive freshly fetched traffic data for a route."""
        ...

    def on_error(self, error: Exception, context: str) -> None:
        """Receive a fetch failure that the scheduler already recorded."""
        ...


def listener_callbacks(listener: InvalidationListener) -> dict[str, Any]:
    """Map a listener onto the callback fields of PollingConfiguration.

    Args:
        listener: The cache layer to notify.

    Returns:
        Keyword arguments suitable for ``dataclasses.replace`` or the
        ``PollingConfiguration`` constructor.
    """
    return {
        "on_data_invalidation": listener.invalidate,
        "on_flight_status_update": listener.on_flight_updated,
        "on_traffic_data_update": listener.on_traffic_updated,
        "on_error": listener.on_error,
    }


class InvalidationDispatcher:
    """Fires the configured callbacks, reading them at call time.

    The dispatcher never caches callbacks, so replacing the scheduler's
    configuration takes effect for the very next notification, including
    notifications from a cycle that is already running.
    """

    def __init__(self, get_config: Callable[[], PollingConfiguration]) -> None:
        self._get_config = get_config

    def flight_updated(self, flight_number: str, status: FlightStatus) -> None:
        config = self._get_config()
        if config.on_data_invalidation is not None:
            config.on_data_invalidation(FLIGHT, flight_number)
        if config.on_flight_status_update is not None:
            config.on_flight_status_update(flight_number, status)

    def traffic_updated(self, route_key: str, data: TrafficData) -> None:
        config = self._get_config()
        if config.on_data_invalidation is not None:
            config.on_data_invalidation(TRAFFIC, route_key)
        if config.on_traffic_data_update is not None:
            config.on_traffic_data_update(route_key, data)

    def error(self, error: Exception, context: str) -> None:
        config = self._get_config()
        if config.on_error is not None:
            config.on_error(error, context)
