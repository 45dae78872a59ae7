"""Tests for the httpx-backed flight and traffic clients."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from runsync.clients import (
    AviationStackFlightClient,
    FlightService,
    FlightServiceError,
    TomTomTrafficClient,
    TrafficService,
    TrafficServiceError,
)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_handler(
    payload: Any, status_code: int = 200, seen: list[httpx.Request] | None = None
) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return handler


FLIGHT_PAYLOAD = {
    "data": [
        {
            "flight_status": "active",
            "departure": {
                "scheduled": "2024-05-01T08:00:00+00:00",
                "actual": "2024-05-01T08:12:00+00:00",
                "delay": 12,
                "gate": "B22",
                "terminal": "8",
            },
            "arrival": {
                "scheduled": "2024-05-01T11:00:00+00:00",
                "actual": None,
            },
        }
    ]
}

ROUTE_PAYLOAD = {
    "routes": [
        {
            "summary": {
                "travelTimeInSeconds": 2460,
                "trafficDelayInSeconds": 360,
                "lengthInMeters": 27400,
            }
        }
    ]
}


class TestAviationStackFlightClient:
    """Tests for flight status fetching."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(AviationStackFlightClient(api_key="k"), FlightService)

    @pytest.mark.asyncio
    async def test_parses_first_flight(self) -> None:
        seen: list[httpx.Request] = []
        async with mock_client(json_handler(FLIGHT_PAYLOAD, seen=seen)) as http:
            client = AviationStackFlightClient(api_key="secret", http_client=http)
            status = await client.get_flight_status("AA100")

        assert status.flight_number == "AA100"
        assert status.status == "active"
        assert status.delay == 12
        assert status.gate == "B22"
        assert status.terminal == "8"
        assert status.actual_arrival is None
        assert status.last_updated is not None

        request = seen[0]
        assert request.url.path == "/v1/flights"
        assert request.url.params["flight_iata"] == "AA100"
        assert request.url.params["access_key"] == "secret"

    @pytest.mark.asyncio
    async def test_no_matching_flight_is_unknown(self) -> None:
        async with mock_client(json_handler({"data": []})) as http:
            client = AviationStackFlightClient(api_key="k", http_client=http)
            status = await client.get_flight_status("ZZ999")

        assert status.status == "unknown"

    @pytest.mark.asyncio
    async def test_missing_api_key(self) -> None:
        client = AviationStackFlightClient(api_key="")

        with pytest.raises(FlightServiceError, match="not configured"):
            await client.get_flight_status("AA100")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status_code", "message"),
        [
            (401, "Invalid AviationStack API key"),
            (429, "rate limit exceeded"),
            (500, "AviationStack API error: 500"),
        ],
    )
    async def test_http_errors(self, status_code: int, message: str) -> None:
        async with mock_client(json_handler({}, status_code=status_code)) as http:
            client = AviationStackFlightClient(api_key="k", http_client=http)
            with pytest.raises(FlightServiceError, match=message):
                await client.get_flight_status("AA100")

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with mock_client(handler) as http:
            client = AviationStackFlightClient(api_key="k", http_client=http)
            with pytest.raises(FlightServiceError, match="timed out"):
                await client.get_flight_status("AA100")

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with mock_client(handler) as http:
            client = AviationStackFlightClient(api_key="k", http_client=http)
            with pytest.raises(FlightServiceError, match="invalid JSON"):
                await client.get_flight_status("AA100")


class TestTomTomTrafficClient:
    """Tests for route summary fetching."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(TomTomTrafficClient(api_key="k"), TrafficService)

    def test_build_route_url_quotes_locations(self) -> None:
        client = TomTomTrafficClient(api_key="k")

        url = client.build_route_url("JFK Terminal 8", "Midtown/5th Ave")

        assert url == (
            "https://api.tomtom.com/routing/1/calculateRoute/"
            "JFK%20Terminal%208:Midtown%2F5th%20Ave/json"
        )

    @pytest.mark.asyncio
    async def test_parses_summary(self) -> None:
        seen: list[httpx.Request] = []
        async with mock_client(json_handler(ROUTE_PAYLOAD, seen=seen)) as http:
            client = TomTomTrafficClient(api_key="secret", http_client=http)
            data = await client.get_traffic_data("JFK", "Midtown")

        assert data.route == "JFK-Midtown"
        assert data.travel_time_seconds == 2460
        assert data.traffic_delay_seconds == 360
        assert data.length_meters == 27400
        assert data.raw["lengthInMeters"] == 27400
        assert seen[0].url.params["key"] == "secret"
        assert seen[0].url.params["traffic"] == "true"

    @pytest.mark.asyncio
    async def test_missing_api_key(self) -> None:
        client = TomTomTrafficClient(api_key="")

        with pytest.raises(TrafficServiceError, match="API key is required"):
            await client.get_traffic_data("A", "B")

    @pytest.mark.asyncio
    async def test_http_error_includes_status(self) -> None:
        async with mock_client(json_handler({}, status_code=503)) as http:
            client = TomTomTrafficClient(api_key="k", http_client=http)
            with pytest.raises(TrafficServiceError, match="TomTom API error: 503"):
                await client.get_traffic_data("A", "B")

    @pytest.mark.asyncio
    async def test_missing_route(self) -> None:
        async with mock_client(json_handler({"routes": []})) as http:
            client = TomTomTrafficClient(api_key="k", http_client=http)
            with pytest.raises(TrafficServiceError, match="Unexpected TomTom response for A-B"):
                await client.get_traffic_data("A", "B")

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as http:
            client = TomTomTrafficClient(api_key="k", http_client=http)
            with pytest.raises(TrafficServiceError, match="Failed to fetch traffic data"):
                await client.get_traffic_data("A", "B")
