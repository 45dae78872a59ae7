"""In-memory cache of the latest flight and traffic data per key.

RunDataCache is the host-side cache layer the scheduler notifies.  It keeps
the last fetched payload for each flight number and route and expires
everything after ``ttl`` seconds so readers fall back to a fresh fetch.

The scheduler reports an invalidation and then hands over the fresh payload
in the same step, and storing a payload clears its stale mark.  With
:func:`runsync.invalidation.listener_callbacks` wiring both, the stale set is
therefore empty between cycles.  It only holds keys whose payload never
arrived: the host wired ``on_data_invalidation`` alone, or the payload
callback failed after the invalidation.

Keys follow the web client's query keys: ``("flight-status", flight_number)``
and ``("traffic-data", route_key)`` where ``route_key`` is the single
``"<pickup>-<dropoff>"`` string the scheduler reports.
"""

from __future__ import annotations

import threading
from typing import Any

from cachetools import TTLCache

from runsync.logging import get_logger
from runsync.types import FlightStatus, InvalidationType, TrafficData

logger = get_logger(__name__)

FLIGHT_STATUS_NAMESPACE = "flight-status"
TRAFFIC_DATA_NAMESPACE = "traffic-data"

_NAMESPACES: dict[str, str] = {
    "flight": FLIGHT_STATUS_NAMESPACE,
    "traffic": TRAFFIC_DATA_NAMESPACE,
}

CacheKey = tuple[str, str]


class RunDataCache:
    """TTL cache implementing the scheduler's invalidation listener.

    Thread Safety:
        All access goes through a lock, since the debug panel reads from the
        dashboard server thread.
    """

    def __init__(self, maxsize: int = 1024, ttl: float = 900) -> None:
        """Initialize the cache.

        Args:
            maxsize: Maximum number of cached payloads.
            ttl: Seconds before a cached payload expires.
        """
        self._entries: TTLCache[CacheKey, Any] = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: set[CacheKey] = set()
        self._lock = threading.Lock()
        self.error_count = 0

    @staticmethod
    def make_key(type: InvalidationType, key: str) -> CacheKey:
        return (_NAMESPACES[type], key)

    def invalidate(self, type: InvalidationType, key: str) -> None:
        cache_key = self.make_key(type, key)
        with self._lock:
            self._stale.add(cache_key)
        logger.debug("Invalidated %s", cache_key)

    def on_flight_updated(self, flight_number: str, status: FlightStatus) -> None:
        self._store(self.make_key("flight", flight_number), status)

    def on_traffic_updated(self, route_key: str, data: TrafficData) -> None:
        self._store(self.make_key("traffic", route_key), data)

    def on_error(self, error: Exception, context: str) -> None:
        with self._lock:
            self.error_count += 1
        logger.error("Run data refresh failed for %s: %s", context, error)

    def get_flight_status(self, flight_number: str) -> FlightStatus | None:
        with self._lock:
            return self._entries.get(self.make_key("flight", flight_number))

    def get_traffic_data(self, route_key: str) -> TrafficData | None:
        with self._lock:
            return self._entries.get(self.make_key("traffic", route_key))

    def is_stale(self, type: InvalidationType, key: str) -> bool:
        with self._lock:
            return self.make_key(type, key) in self._stale

    def stale_keys(self) -> list[CacheKey]:
        """Keys invalidated without a following payload, in sorted order."""
        with self._lock:
            return sorted(self._stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stale.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _store(self, cache_key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[cache_key] = value
            self._stale.discard(cache_key)
