"""Core application runner for the run sync service.

This module provides the main application runner that coordinates:
- Debug panel server lifecycle
- Polling scheduler lifecycle
- Single-cycle mode execution
- Runs file reloads while polling continuously

It acts as the orchestration layer between bootstrap, the scheduler, and
shutdown components.

Panel-less Operation Mode:
    The debug panel is optional.  When it fails to start (missing
    dependencies, port in use, runtime or configuration errors), a warning is
    logged and polling continues without it.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import TYPE_CHECKING

from runsync.bootstrap import BootstrapContext, RunsFileError, bootstrap
from runsync.cli import parse_args
from runsync.logging import get_logger
from runsync.scheduler import PollingScheduler
from runsync.shutdown import ShutdownHandler, create_shutdown_handler

if TYPE_CHECKING:
    from runsync.dashboard_server import DebugPanelServer

logger = get_logger(__name__)

# Seconds between runs file change checks in continuous mode
RUNS_RELOAD_INTERVAL = 1.0


def start_dashboard(
    context: BootstrapContext,
    scheduler: PollingScheduler,
    loop: asyncio.AbstractEventLoop | None = None,
) -> DebugPanelServer | None:
    """Start the debug panel server if enabled.

    Args:
        context: Bootstrap context with configuration.
        scheduler: Scheduler the panel observes.
        loop: Event loop the scheduler runs on.

    Returns:
        The running DebugPanelServer, or None if it is disabled or failed
        to start.
    """
    config = context.config
    if not config.dashboard.enabled:
        logger.info("Dashboard is disabled via configuration")
        return None

    extra = {"host": config.dashboard.host, "port": config.dashboard.port}
    try:
        from runsync.dashboard_server import DebugPanelServer

        logger.info(
            "Starting dashboard server on %s:%s", config.dashboard.host, config.dashboard.port
        )
        dashboard_server = DebugPanelServer(scheduler, config.dashboard, loop=loop)
        dashboard_server.start()
        return dashboard_server
    except ImportError as e:
        logger.warning(
            "Dashboard startup failed: dependencies not available. "
            "Polling will continue without the debug panel. Error: %s",
            e,
            extra=extra,
        )
        return None
    except OSError as e:
        logger.warning(
            "Dashboard startup failed: network/OS error. "
            "Polling will continue without the debug panel. Error: %s",
            e,
            extra=extra,
        )
        return None
    except RuntimeError as e:
        logger.warning(
            "Dashboard startup failed: runtime error. "
            "Polling will continue without the debug panel. Error: %s",
            e,
            extra=extra,
        )
        return None
    except (ValueError, TypeError) as e:
        logger.warning(
            "Dashboard startup failed: configuration error. "
            "Polling will continue without the debug panel. Error: %s",
            e,
            extra=extra,
        )
        return None
    except Exception as e:
        # The panel is optional and must never stop polling.
        logger.warning(
            "Dashboard startup failed: unexpected error (%s). "
            "Polling will continue without the debug panel. Error: %s",
            type(e).__name__,
            e,
            extra={**extra, "error_type": type(e).__name__},
        )
        return None


def reload_runs(context: BootstrapContext, scheduler: PollingScheduler) -> bool:
    """Hand a changed runs file to the scheduler.

    Returns:
        True if the scheduler received a new snapshot.
    """
    try:
        runs = context.runs_source.reload_if_changed()
    except RunsFileError as e:
        logger.warning("Runs file reload failed, keeping previous runs: %s", e)
        return False

    if runs is None:
        return False

    context.runs = runs
    scheduler.update_runs(runs)
    return True


async def run_once_mode(scheduler: PollingScheduler) -> int:
    """Run exactly one poll cycle and wait for it.

    Args:
        scheduler: Configured scheduler.

    Returns:
        Exit code: 0.  Fetch failures are recorded, not fatal.
    """
    logger.info("Running single poll cycle (--once mode)")
    await scheduler.poll_active_runs()
    info = scheduler.get_debug_info()
    logger.info(
        "Completed: poll_count=%s api_calls_blocked=%s errors=%s",
        info.poll_count,
        info.api_calls_blocked,
        len(info.errors),
    )
    return 0


async def run_continuous_mode(
    context: BootstrapContext,
    scheduler: PollingScheduler,
    shutdown: ShutdownHandler,
    reload_interval: float = RUNS_RELOAD_INTERVAL,
) -> int:
    """Poll until shutdown is requested, reloading the runs file on change.

    Args:
        context: Bootstrap context with the runs file source.
        scheduler: Configured scheduler.
        shutdown: Handler whose request ends the loop.
        reload_interval: Seconds between runs file checks.

    Returns:
        Exit code: 0 for success.
    """
    scheduler.start()
    try:
        while not await shutdown.wait(reload_interval):
            reload_runs(context, scheduler)
    finally:
        if scheduler.is_running:
            scheduler.stop()
        logger.info("Waiting for %s in-flight poll cycle(s)", scheduler.in_flight_count)
        await scheduler.wait_idle()
    return 0


async def _run(parsed: argparse.Namespace, context: BootstrapContext) -> int:
    loop = asyncio.get_running_loop()
    scheduler = context.scheduler
    dashboard_server = await asyncio.to_thread(start_dashboard, context, scheduler, loop)

    try:
        if parsed.once:
            return await run_once_mode(scheduler)

        shutdown = create_shutdown_handler(loop)
        try:
            return await run_continuous_mode(context, scheduler, shutdown)
        finally:
            shutdown.remove_signal_handlers(loop)
    finally:
        if dashboard_server is not None:
            await asyncio.to_thread(dashboard_server.stop)


def run_application(parsed: argparse.Namespace, context: BootstrapContext) -> int:
    """Run the main application with the given context.

    This function coordinates:
    1. Starting the debug panel (if enabled)
    2. Running the appropriate mode (once or continuous)
    3. Cleanup on exit

    Args:
        parsed: Parsed command-line arguments.
        context: Bootstrap context with all dependencies.

    Returns:
        Exit code for the application.
    """
    return asyncio.run(_run(parsed, context))


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Optional list of command-line arguments.

    Returns:
        Exit code for the application.
    """
    parsed = parse_args(args)

    context = bootstrap(parsed)
    if context is None:
        # Bootstrap failed (logged internally)
        return 1

    return run_application(parsed, context)


__all__ = [
    "main",
    "reload_runs",
    "run_application",
    "run_continuous_mode",
    "run_once_mode",
    "start_dashboard",
]
