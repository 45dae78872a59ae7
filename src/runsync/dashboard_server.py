"""Debug panel server for a running scheduler.

The panel is a FastAPI app served by uvicorn on a daemon thread with its own
event loop.  :class:`DebugPanelServer` builds that app for one scheduler,
binds it to the scheduler's loop so manual polls are handed back with
``call_soon_threadsafe``, and owns the thread for its whole lifetime.
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import TYPE_CHECKING

import uvicorn

from runsync.logging import get_logger

if TYPE_CHECKING:
    from runsync.config import DashboardConfig
    from runsync.dashboard.state import SchedulerStateProvider

logger = get_logger(__name__)

STARTUP_TIMEOUT = 5.0
STOP_TIMEOUT = 5.0
_STARTUP_POLL = 0.05


class DebugPanelServer:
    """Serves the debug panel of one scheduler from a background thread.

    ``start()`` and ``stop()`` block, so call them through
    ``asyncio.to_thread`` from code running on the scheduler's loop.
    """

    def __init__(
        self,
        scheduler: SchedulerStateProvider,
        settings: DashboardConfig,
        loop: asyncio.AbstractEventLoop | None = None,
        startup_timeout: float = STARTUP_TIMEOUT,
        stop_timeout: float = STOP_TIMEOUT,
    ) -> None:
        self.settings = settings
        self._scheduler = scheduler
        self._loop = loop
        self._startup_timeout = startup_timeout
        self._stop_timeout = stop_timeout
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        return f"http://{self.settings.host}:{self.settings.port}"

    @property
    def is_running(self) -> bool:
        return (
            self._server is not None
            and self._server.started
            and self._thread is not None
            and self._thread.is_alive()
        )

    def start(self) -> bool:
        """Build the panel app and serve it until :meth:`stop`.

        Returns:
            True once uvicorn reports it is serving, False if it is still
            starting after ``startup_timeout`` (the thread keeps trying).

        Raises:
            RuntimeError: If the server was already started.
            OSError: If the server thread exits before serving, which is
                how uvicorn reports a port it cannot bind.
        """
        from runsync.dashboard import create_app

        if self._server is not None:
            raise RuntimeError(f"Debug panel server at {self.url} already started")

        app = create_app(self._scheduler, loop=self._loop)
        self._server = uvicorn.Server(
            uvicorn.Config(
                app=app,
                host=self.settings.host,
                port=self.settings.port,
                log_level="warning",
                access_log=False,
            )
        )
        self._thread = threading.Thread(
            target=self._server.run, name="runsync-debug-panel", daemon=True
        )
        self._thread.start()
        return self._wait_until_serving(self._server, self._thread)

    def stop(self) -> None:
        """Ask uvicorn to exit and join its thread for up to ``stop_timeout``."""
        server, thread = self._server, self._thread
        if server is None or thread is None:
            return
        self._server = None
        self._thread = None

        server.should_exit = True
        thread.join(timeout=self._stop_timeout)
        if thread.is_alive():
            logger.warning(
                "Debug panel thread still alive %.1fs after stop was requested",
                self._stop_timeout,
            )
        else:
            logger.info("Debug panel server at %s stopped", self.url)

    def _wait_until_serving(self, server: uvicorn.Server, thread: threading.Thread) -> bool:
        deadline = time.monotonic() + self._startup_timeout
        while not server.started:
            if not thread.is_alive():
                self._server = None
                self._thread = None
                raise OSError(f"Debug panel server at {self.url} exited during startup")
            if time.monotonic() >= deadline:
                logger.warning(
                    "Debug panel not serving after %.1fs, leaving it to finish in the background",
                    self._startup_timeout,
                )
                return False
            time.sleep(_STARTUP_POLL)

        logger.info("Debug panel serving at %s", self.url)
        return True


__all__ = ["DebugPanelServer"]
