"""Flight and traffic data collaborators.

The scheduler depends only on the :class:`FlightService` and
:class:`TrafficService` protocols.  This module also ships httpx-based
implementations backed by AviationStack (flight status) and TomTom Routing
(traffic).  They fetch and reshape provider payloads; they do not interpret
delays or classify congestion.

Each client owns its timeout.  Failures raise a :class:`ServiceError`
subclass; the scheduler records and swallows them per run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx

from runsync.logging import get_logger
from runsync.types import FlightStatus, TrafficData

logger = get_logger(__name__)

AVIATIONSTACK_BASE_URL = "https://api.aviationstack.com/v1"
TOMTOM_BASE_URL = "https://api.tomtom.com"
TOMTOM_ROUTING_VERSION = "1"

# Default timeout for provider requests in seconds
DEFAULT_TIMEOUT = 10.0

# Status reported when the provider knows nothing about a flight
UNKNOWN_FLIGHT_STATUS = "unknown"


class ServiceError(Exception):
    """Base error raised by data collaborators."""

    pass


class FlightServiceError(ServiceError):
    """Raised when flight status cannot be fetched."""

    pass


class TrafficServiceError(ServiceError):
    """Raised when traffic data cannot be fetched."""

    pass


@runtime_checkable
class FlightService(Protocol):
    """Fetches the current status of a flight."""

    async def get_flight_status(self, flight_number: str) -> FlightStatus:
        """Return the status for ``flight_number``; raise on failure."""
        ...


@runtime_checkable
class TrafficService(Protocol):
    """Fetches current traffic conditions for a route."""

    async def get_traffic_data(self, pickup_location: str, dropoff_location: str) -> TrafficData:
        """Return traffic data for the route; raise on failure."""
        ...


class _ProviderClient:
    """Shared request plumbing for the provider clients."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self._http_client is not None:
            return await self._http_client.get(
                url, params=params, headers=headers, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params, headers=headers)


class AviationStackFlightClient(_ProviderClient):
    """Flight status from the AviationStack ``/flights`` endpoint.

    Usage:
        client = AviationStackFlightClient(api_key="...")
        status = await client.get_flight_status("AA100")
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = AVIATIONSTACK_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url, timeout, http_client)
        self._api_key = api_key

    async def get_flight_status(self, flight_number: str) -> FlightStatus:
        """Fetch the latest status for a flight.

        Args:
            flight_number: IATA flight number, e.g. ``"AA100"``.

        Returns:
            FlightStatus with the provider's raw status string, or status
            ``"unknown"`` when the provider has no matching flight.

        Raises:
            FlightServiceError: On missing credentials, HTTP errors, timeouts
                or malformed payloads.
        """
        if not self._api_key:
            raise FlightServiceError("AviationStack API key is not configured")

        params = {"access_key": self._api_key, "flight_iata": flight_number, "limit": "1"}
        logger.debug("Fetching flight status for %s from AviationStack", flight_number)

        try:
            response = await self._get(f"{self.base_url}/flights", params)
        except httpx.TimeoutException as e:
            raise FlightServiceError("AviationStack request timed out") from e
        except httpx.HTTPError as e:
            raise FlightServiceError(f"AviationStack request failed: {e}") from e

        if response.status_code == 401:
            raise FlightServiceError("Invalid AviationStack API key")
        if response.status_code == 429:
            raise FlightServiceError("AviationStack API rate limit exceeded")
        if response.is_error:
            raise FlightServiceError(f"AviationStack API error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FlightServiceError("AviationStack returned invalid JSON") from e

        return self._parse_flight(flight_number, payload)

    @staticmethod
    def _parse_flight(flight_number: str, payload: dict[str, Any]) -> FlightStatus:
        now = datetime.now(tz=UTC)
        flights = payload.get("data") or []
        if not flights:
            logger.debug("No flight found for %s", flight_number)
            return FlightStatus(
                flight_number=flight_number,
                status=UNKNOWN_FLIGHT_STATUS,
                last_updated=now,
            )

        flight = flights[0]
        departure = flight.get("departure") or {}
        arrival = flight.get("arrival") or {}
        return FlightStatus(
            flight_number=flight_number,
            status=str(flight.get("flight_status") or UNKNOWN_FLIGHT_STATUS),
            scheduled_departure=departure.get("scheduled"),
            actual_departure=departure.get("actual"),
            scheduled_arrival=arrival.get("scheduled"),
            actual_arrival=arrival.get("actual"),
            delay=departure.get("delay"),
            gate=departure.get("gate"),
            terminal=departure.get("terminal"),
            last_updated=now,
        )


class TomTomTrafficClient(_ProviderClient):
    """Route travel times from the TomTom Routing ``calculateRoute`` endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = TOMTOM_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url, timeout, http_client)
        self._api_key = api_key

    def build_route_url(self, origin: str, destination: str) -> str:
        return (
            f"{self.base_url}/routing/{TOMTOM_ROUTING_VERSION}/calculateRoute/"
            f"{quote(origin, safe='')}:{quote(destination, safe='')}/json"
        )

    async def get_traffic_data(self, pickup_location: str, dropoff_location: str) -> TrafficData:
        """Fetch the current route summary between two locations.

        Args:
            pickup_location: Route origin.
            dropoff_location: Route destination.

        Returns:
            TrafficData with travel time, traffic delay and length.

        Raises:
            TrafficServiceError: On missing credentials, HTTP errors, timeouts
                or payloads without a route.
        """
        if not self._api_key:
            raise TrafficServiceError("TomTom API key is required")

        route_key = f"{pickup_location}-{dropoff_location}"
        url = self.build_route_url(pickup_location, dropoff_location)
        params = {"key": self._api_key, "traffic": "true", "travelMode": "car"}

        try:
            response = await self._get(url, params)
        except httpx.TimeoutException as e:
            raise TrafficServiceError("TomTom API request timed out") from e
        except httpx.HTTPError as e:
            raise TrafficServiceError(f"Failed to fetch traffic data: {e}") from e

        if response.is_error:
            raise TrafficServiceError(
                f"TomTom API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
            summary = payload["routes"][0]["summary"]
            return TrafficData(
                route=route_key,
                travel_time_seconds=int(summary["travelTimeInSeconds"]),
                traffic_delay_seconds=int(summary.get("trafficDelayInSeconds", 0)),
                length_meters=int(summary["lengthInMeters"]),
                last_updated=datetime.now(tz=UTC),
                raw=summary,
            )
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TrafficServiceError(f"Unexpected TomTom response for {route_key}") from e
