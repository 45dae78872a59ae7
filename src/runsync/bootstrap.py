"""Bootstrap and dependency wiring for the run sync service.

This module provides the startup and initialization logic, including:
- Configuration loading with CLI overrides
- Logging setup
- Runs file loading (and change detection for reloads)
- Container creation and scheduler assembly

The bootstrap module acts as the composition root, wiring together all
dependencies before the application starts running.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path
from typing import Any

from dependency_injector import containers

from runsync.config import Config, load_config
from runsync.container import create_container
from runsync.logging import get_logger, setup_logging
from runsync.scheduler import PollingScheduler
from runsync.types import Run

logger = get_logger(__name__)


class RunsFileError(Exception):
    """Raised when the runs file cannot be read or contains invalid runs."""

    pass


def parse_runs(payload: Any) -> list[Run]:
    """Convert a decoded runs file payload into Run snapshots.

    Args:
        payload: Either a list of run mappings or a mapping with a ``runs`` list.

    Returns:
        List of Run instances in file order.

    Raises:
        RunsFileError: If the payload shape or any run is invalid.
    """
    if isinstance(payload, dict):
        payload = payload.get("runs")
    if not isinstance(payload, list):
        raise RunsFileError("Runs file must contain a list of runs or an object with a 'runs' list")

    runs: list[Run] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise RunsFileError(f"Run at index {index} is not an object")
        try:
            runs.append(Run.from_dict(item))
        except KeyError as e:
            raise RunsFileError(f"Run at index {index} is missing field {e}") from e
        except ValueError as e:
            raise RunsFileError(f"Run at index {index} is invalid: {e}") from e
    return runs


def load_runs(path: Path) -> list[Run]:
    """Read and parse a JSON runs file.

    Raises:
        RunsFileError: If the file is unreadable, not JSON, or holds invalid runs.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RunsFileError(f"Cannot read runs file {path}: {e}") from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise RunsFileError(f"Runs file {path} is not valid JSON: {e}") from e

    return parse_runs(payload)


class RunsFileSource:
    """Tracks a runs file and reloads it when its modification time changes."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._mtime_ns: int | None = None

    def load(self) -> list[Run]:
        """Load the file unconditionally and remember its modification time."""
        mtime_ns = self._stat_mtime()
        runs = load_runs(self.path)
        self._mtime_ns = mtime_ns
        return runs

    def reload_if_changed(self) -> list[Run] | None:
        """Reload the file if it changed since the last check.

        Each change is reported once: a file that fails to load, or that
        disappears, is not retried until its modification time moves again.

        Returns:
            The new runs, or None if the file is unchanged.

        Raises:
            RunsFileError: If the changed file cannot be loaded or was removed.
        """
        mtime_ns = self._stat_mtime()
        if mtime_ns == self._mtime_ns:
            return None
        self._mtime_ns = mtime_ns
        if mtime_ns is None:
            raise RunsFileError(f"Runs file {self.path} was removed")
        logger.info("Runs file %s changed, reloading", self.path)
        return load_runs(self.path)

    def _stat_mtime(self) -> int | None:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None


class BootstrapContext:
    """Container for all bootstrapped dependencies."""

    def __init__(
        self,
        config: Config,
        container: containers.DynamicContainer,
        runs_source: RunsFileSource,
        runs: list[Run],
    ) -> None:
        """Initialize the bootstrap context.

        Args:
            config: Application configuration.
            container: Wired dependency container.
            runs_source: Runs file tracker used for reloads.
            runs: Runs loaded at startup.
        """
        self.config = config
        self.container = container
        self.runs_source = runs_source
        self.runs = runs

    @property
    def scheduler(self) -> PollingScheduler:
        return self.container.scheduler()


def apply_cli_overrides(config: Config, parsed: argparse.Namespace) -> Config:
    """Apply CLI argument overrides to the configuration.

    Args:
        config: Base configuration loaded from environment.
        parsed: Parsed command-line arguments.

    Returns:
        New Config instance with CLI overrides applied.
    """
    overrides: dict[str, Any] = {}

    polling_overrides: dict[str, Any] = {}
    if parsed.runs_file:
        polling_overrides["runs_file"] = parsed.runs_file
    if parsed.interval_ms is not None:
        if parsed.interval_ms > 0:
            polling_overrides["interval_ms"] = parsed.interval_ms
        else:
            logger.warning(
                "Ignoring --interval-ms %s: not positive, keeping %sms",
                parsed.interval_ms,
                config.polling.interval_ms,
            )
    if polling_overrides:
        overrides["polling"] = replace(config.polling, **polling_overrides)

    if parsed.debug is not None:
        overrides["debug"] = replace(config.debug, override=parsed.debug)
    if parsed.log_level:
        overrides["logging_config"] = replace(config.logging_config, level=parsed.log_level)

    if overrides:
        return replace(config, **overrides)
    return config


def bootstrap(parsed: argparse.Namespace) -> BootstrapContext | None:
    """Bootstrap the application with all dependencies.

    This is the main entry point for application initialization. It:
    1. Loads and configures settings
    2. Sets up logging
    3. Loads the runs file
    4. Builds the container and hands the runs to the scheduler

    Args:
        parsed: Parsed command-line arguments.

    Returns:
        BootstrapContext with all initialized dependencies, or None if
        initialization failed (missing or invalid runs file).
    """
    config = load_config(parsed.env_file)
    config = apply_cli_overrides(config, parsed)

    setup_logging(
        config.logging_config.level,
        json_format=config.logging_config.json,
        diagnostic_tags=config.logging_config.diagnostic_tags,
    )

    runs_file = config.polling.runs_file
    if runs_file is None:
        logger.error("No runs file configured. Pass --runs-file or set RUNSYNC_RUNS_FILE.")
        return None

    runs_source = RunsFileSource(runs_file)
    logger.info("Loading runs from %s", runs_file)
    try:
        runs = runs_source.load()
    except RunsFileError as e:
        logger.error("Failed to load runs: %s", e, extra={"runs_file": str(runs_file)})
        return None

    if not config.services.flight_configured:
        logger.warning("AVIATIONSTACK_API_KEY is not set; flight status fetches will fail")
    if not config.services.traffic_configured:
        logger.warning("TOMTOM_API_KEY is not set; traffic fetches will fail")

    container = create_container(config)
    scheduler = container.scheduler()
    scheduler.update_runs(runs)

    return BootstrapContext(
        config=config,
        container=container,
        runs_source=runs_source,
        runs=runs,
    )


# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "BootstrapContext",
    "RunsFileError",
    "RunsFileSource",
    "apply_cli_overrides",
    "bootstrap",
    "load_runs",
    "parse_runs",
]
