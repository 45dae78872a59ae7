"""Graceful shutdown handling for the run sync service.

This module provides signal handling and shutdown coordination for:
- SIGINT (Ctrl+C) handling
- SIGTERM handling
- Waking the asyncio main loop so it can stop the scheduler
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Callable
from types import FrameType

from runsync.logging import get_logger

logger = get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """Manages graceful shutdown of the run sync service.

    Shutdown requests from signals or code set an asyncio event that the
    main loop awaits.  The event must be awaited on the loop the handler was
    installed on.
    """

    def __init__(self, on_shutdown: Callable[[], None] | None = None) -> None:
        """Initialize the shutdown handler.

        Args:
            on_shutdown: Optional callback to invoke when shutdown is requested.
                        Typically this stops the polling scheduler.
        """
        self._shutdown_requested = False
        self._on_shutdown = on_shutdown
        self._event = asyncio.Event()

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested

    def request_shutdown(self) -> None:
        """Request graceful shutdown.

        Repeated requests are ignored.
        """
        if self._shutdown_requested:
            return
        logger.info("Shutdown requested")
        self._shutdown_requested = True
        self._event.set()

        if self._on_shutdown is not None:
            self._on_shutdown()

    def handle_signal(self, signum: int, frame: FrameType | None = None) -> None:
        """Handle shutdown signals (SIGINT, SIGTERM).

        Args:
            signum: The signal number received.
            frame: The current stack frame (unused).
        """
        signal_name = signal.Signals(signum).name
        logger.info("Received %s, initiating graceful shutdown...", signal_name)
        self.request_shutdown()

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait for a shutdown request.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            True if shutdown was requested, False on timeout.
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Install signal handlers for SIGINT and SIGTERM on an event loop.

        Falls back to ``signal.signal`` where the loop does not support
        signal handlers (Windows).
        """
        for signum in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(signum, self.handle_signal, signum)
            except NotImplementedError:
                signal.signal(
                    signum,
                    lambda received, frame: loop.call_soon_threadsafe(
                        self.handle_signal, received, frame
                    ),
                )
        logger.debug("Signal handlers installed for SIGINT and SIGTERM")

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for signum in SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(signum)
            except NotImplementedError:
                signal.signal(signum, signal.SIG_DFL)


def create_shutdown_handler(
    loop: asyncio.AbstractEventLoop,
    on_shutdown: Callable[[], None] | None = None,
) -> ShutdownHandler:
    """Create a shutdown handler and install its signal handlers on ``loop``.

    Args:
        loop: The running event loop.
        on_shutdown: Optional callback to invoke when shutdown is requested.

    Returns:
        Configured ShutdownHandler with signal handlers installed.
    """
    handler = ShutdownHandler(on_shutdown)
    handler.install_signal_handlers(loop)
    return handler


__all__ = [
    "ShutdownHandler",
    "create_shutdown_handler",
]
