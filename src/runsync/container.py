"""Dependency Injection container for the run sync service.

This module provides a centralized dependency injection container using the
dependency-injector library. It wires the flight and traffic clients, the
run data cache and the polling scheduler from a single Config.

Usage:
    # Production setup
    container = create_container(config)
    scheduler = container.scheduler()

    # Test setup with fakes
    container = create_container(config)
    container.clients.flight_service.override(providers.Object(fake_flights))
    scheduler = container.scheduler()
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from dependency_injector import containers, providers

from runsync.cache import RunDataCache
from runsync.clients import AviationStackFlightClient, TomTomTrafficClient
from runsync.debug_gate import DebugResolver, DebugSignals, EnvironmentDebugResolver
from runsync.invalidation import listener_callbacks
from runsync.polling_config import PollingConfiguration
from runsync.scheduler import PollingScheduler

if TYPE_CHECKING:
    from runsync.clients import FlightService, TrafficService
    from runsync.config import Config


class ClientsContainer(containers.DeclarativeContainer):
    """Container for the data collaborators.

    Grouping both clients makes it easy to swap the whole set for fakes in
    tests or offline runs.
    """

    config: providers.Dependency[Config] = providers.Dependency()

    flight_service: providers.Dependency[FlightService] = providers.Dependency()
    traffic_service: providers.Dependency[TrafficService] = providers.Dependency()


class SyncContainer(containers.DeclarativeContainer):
    """Root container for the run sync service.

    SyncContainer
    ├── config (Config)
    ├── clients (ClientsContainer)
    │   ├── flight_service
    │   └── traffic_service
    ├── cache (RunDataCache)
    └── scheduler (PollingScheduler)
    """

    config: providers.Dependency[Config] = providers.Dependency()

    clients = providers.Container(
        ClientsContainer,
        config=config,
    )

    cache: providers.Dependency[RunDataCache] = providers.Dependency()
    scheduler: providers.Dependency[PollingScheduler] = providers.Dependency()


def create_flight_client(config: Config) -> FlightService:
    """Create the AviationStack flight status client.

    Args:
        config: Application configuration.

    Returns:
        AviationStackFlightClient using the configured key and timeout.
    """
    return AviationStackFlightClient(
        api_key=config.services.aviationstack_api_key,
        timeout=config.services.http_timeout,
    )


def create_traffic_client(config: Config) -> TrafficService:
    """Create the TomTom traffic client."""
    return TomTomTrafficClient(
        api_key=config.services.tomtom_api_key,
        timeout=config.services.http_timeout,
    )


def create_cache(config: Config) -> RunDataCache:
    return RunDataCache(maxsize=config.services.cache_maxsize, ttl=config.services.cache_ttl)


def create_debug_resolver(config: Config) -> DebugResolver:
    """Build the debug resolver from the [debug] settings and environment."""
    return EnvironmentDebugResolver(DebugSignals.from_settings(config.debug))


def create_scheduler(
    config: Config,
    flight_service: FlightService,
    traffic_service: TrafficService,
    cache: RunDataCache | None = None,
) -> PollingScheduler:
    """Create a PollingScheduler with all dependencies.

    Args:
        config: Application configuration.
        flight_service: Flight status collaborator.
        traffic_service: Traffic data collaborator.
        cache: Optional cache layer to notify after each fetch.

    Returns:
        Configured PollingScheduler, not yet started.
    """
    polling_config = PollingConfiguration.from_settings(config.polling)
    if cache is not None:
        polling_config = replace(polling_config, **listener_callbacks(cache))

    return PollingScheduler(
        flight_service=flight_service,
        traffic_service=traffic_service,
        config=polling_config,
        debug_mode=create_debug_resolver(config),
    )


def create_container(config: Config | None = None) -> containers.DynamicContainer:
    """Create and configure the main DI container.

    Args:
        config: Optional configuration. If not provided, loads from environment.

    Returns:
        A SyncContainer instance (dependency-injector builds it as a
        DynamicContainer) with every provider wired from ``config``.
    """
    from runsync.config import load_config

    if config is None:
        config = load_config()

    container = SyncContainer()
    container.config.override(providers.Object(config))

    container.clients.flight_service.override(providers.Singleton(create_flight_client, config))
    container.clients.traffic_service.override(providers.Singleton(create_traffic_client, config))

    container.cache.override(providers.Singleton(create_cache, config))

    container.scheduler.override(
        providers.Singleton(
            create_scheduler,
            config=container.config,
            flight_service=container.clients.flight_service,
            traffic_service=container.clients.traffic_service,
            cache=container.cache,
        )
    )

    return container


__all__ = [
    "SyncContainer",
    "ClientsContainer",
    "create_container",
    "create_flight_client",
    "create_traffic_client",
    "create_cache",
    "create_debug_resolver",
    "create_scheduler",
]
