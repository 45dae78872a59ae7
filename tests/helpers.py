"""Test helper functions for run sync tests.

These builders provide sensible defaults while allowing customization::

    from tests.helpers import make_config, make_polling_config, make_run

    def test_example():
        run = make_run(flight_number="BA117")
        polling = make_polling_config(run_delay_ms=0)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from runsync.config import (
    Config,
    DashboardConfig,
    DebugSettings,
    LoggingConfig,
    PollingSettings,
    ServicesConfig,
)
from runsync.polling_config import PollingConfiguration
from runsync.types import Run, RunStatus


def make_run(
    id: str = "run-0001",
    status: RunStatus | str = RunStatus.ACTIVE,
    flight_number: str = "AA100",
    pickup_location: str = "JFK Terminal 8",
    dropoff_location: str = "Midtown Manhattan",
    **kwargs: Any,
) -> Run:
    """Create a Run with defaults suitable for most tests."""
    return Run(
        id=id,
        status=RunStatus(status),
        flight_number=flight_number,
        pickup_location=pickup_location,
        dropoff_location=dropoff_location,
        **kwargs,
    )


def make_runs(count: int, status: RunStatus | str = RunStatus.ACTIVE) -> list[Run]:
    """Create ``count`` runs with distinct ids, flights and routes."""
    return [
        make_run(
            id=f"run-{index:04d}",
            status=status,
            flight_number=f"AA{100 + index}",
            pickup_location=f"Terminal {index}",
            dropoff_location=f"Hotel {index}",
        )
        for index in range(1, count + 1)
    ]


def make_polling_config(**kwargs: Any) -> PollingConfiguration:
    """Create a PollingConfiguration with debug mode off by default."""
    kwargs.setdefault("enable_debug_mode", False)
    return PollingConfiguration(**kwargs)


def make_config(
    interval_ms: int = 300000,
    polling_enabled: bool = True,
    run_delay_ms: int = 1000,
    single_flight: bool = False,
    runs_file: Path | None = None,
    debug_override: bool | None = False,
    environment: str = "production",
    log_level: str = "INFO",
    dashboard_enabled: bool = False,
    dashboard_port: int = 8080,
    aviationstack_api_key: str = "",
    tomtom_api_key: str = "",
    http_timeout: float = 10.0,
    cache_ttl: int = 900,
    cache_maxsize: int = 1024,
) -> Config:
    """Create a Config for tests.

    Debug mode is forced off by default so wiring tests never depend on the
    environment they run in.
    """
    return Config(
        polling=PollingSettings(
            interval_ms=interval_ms,
            enabled=polling_enabled,
            run_delay_ms=run_delay_ms,
            single_flight=single_flight,
            runs_file=runs_file,
        ),
        debug=DebugSettings(override=debug_override, environment=environment),
        logging_config=LoggingConfig(level=log_level),
        dashboard=DashboardConfig(enabled=dashboard_enabled, port=dashboard_port),
        services=ServicesConfig(
            aviationstack_api_key=aviationstack_api_key,
            tomtom_api_key=tomtom_api_key,
            http_timeout=http_timeout,
            cache_ttl=cache_ttl,
            cache_maxsize=cache_maxsize,
        ),
    )


def run_payload(run: Run) -> dict[str, Any]:
    """Serialize a Run the way the web client stored it (camelCase keys)."""
    return {
        "id": run.id,
        "status": run.status.value,
        "flightNumber": run.flight_number,
        "pickupLocation": run.pickup_location,
        "dropoffLocation": run.dropoff_location,
        "airline": run.airline,
        "departure": run.departure,
        "arrival": run.arrival,
        "scheduledTime": run.scheduled_time,
        "type": run.type.value,
    }


def write_runs_file(path: Path, runs: list[Run] | list[dict[str, Any]] | Any) -> Path:
    """Write runs (or any JSON payload) to ``path`` and return it."""
    if isinstance(runs, list):
        payload: Any = [run_payload(r) if isinstance(r, Run) else r for r in runs]
    else:
        payload = runs
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
