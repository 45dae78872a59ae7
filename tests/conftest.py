"""Shared pytest fixtures for run sync tests.

Time Control
============

The scheduler and executor accept injectable ``sleep`` and ``clock``
functions.  Tests pass a :class:`FakeClock` instead of ``asyncio.sleep`` so
timer ticks and per-run pauses happen exactly when the test says so::

    clock = FakeClock()
    scheduler = PollingScheduler(..., sleep=clock.sleep, clock=clock.now)
    scheduler.start()
    await clock.settle()          # initial cycle runs
    await clock.advance(300)      # one timer tick

With ``auto_advance=True`` every sleep completes immediately and moves the
clock forward, which suits single-cycle executor tests that only need
elapsed time to be measurable.
"""

from __future__ import annotations

import asyncio
import heapq
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from tests.mocks import MockFlightService, MockTrafficService, RecordingListener

DEFAULT_START = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)

# Loop iterations given to ready tasks after each clock step
SETTLE_ITERATIONS = 20


class FakeClock:
    """Deterministic replacement for ``asyncio.sleep`` and ``datetime.now``."""

    def __init__(self, start: datetime = DEFAULT_START, auto_advance: bool = False) -> None:
        self.start = start
        self.auto_advance = auto_advance
        self.elapsed = 0.0
        self.sleep_calls: list[float] = []
        self._waiters: list[tuple[float, int, asyncio.Future[None]]] = []
        self._sequence = 0

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    @property
    def pending_sleeps(self) -> int:
        return sum(1 for _, _, future in self._waiters if not future.done())

    async def sleep(self, seconds: float) -> None:
        self.sleep_calls.append(seconds)
        if self.auto_advance or seconds <= 0:
            self.elapsed += max(seconds, 0)
            await asyncio.sleep(0)
            return

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._sequence += 1
        heapq.heappush(self._waiters, (self.elapsed + seconds, self._sequence, future))
        await future

    async def settle(self) -> None:
        for _ in range(SETTLE_ITERATIONS):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking sleepers in deadline order."""
        target = self.elapsed + seconds
        await self.settle()
        while self._waiters and self._waiters[0][0] <= target:
            deadline, _, future = heapq.heappop(self._waiters)
            if future.done():
                continue
            self.elapsed = max(self.elapsed, deadline)
            future.set_result(None)
            await self.settle()
        self.elapsed = target
        await self.settle()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def instant_clock() -> FakeClock:
    return FakeClock(auto_advance=True)


@pytest.fixture
def flight_service() -> MockFlightService:
    return MockFlightService()


@pytest.fixture
def traffic_service() -> MockTrafficService:
    return MockTrafficService()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


# Every variable read by load_config plus the hot-reload markers
CONFIG_ENV_VARS = (
    "RUNSYNC_POLL_INTERVAL_MS",
    "RUNSYNC_POLLING_ENABLED",
    "RUNSYNC_RUN_DELAY_MS",
    "RUNSYNC_SINGLE_FLIGHT",
    "RUNSYNC_RUNS_FILE",
    "RUNSYNC_DEBUG_MODE",
    "RUNSYNC_ENV",
    "RUNSYNC_HOSTNAME",
    "RUNSYNC_DEV_SERVER_PORT",
    "RUNSYNC_LOG_LEVEL",
    "RUNSYNC_LOG_JSON",
    "RUNSYNC_DIAGNOSTIC_TAGS",
    "RUNSYNC_DASHBOARD_ENABLED",
    "RUNSYNC_DASHBOARD_HOST",
    "RUNSYNC_DASHBOARD_PORT",
    "RUNSYNC_HTTP_TIMEOUT",
    "RUNSYNC_CACHE_TTL",
    "RUNSYNC_CACHE_MAXSIZE",
    "AVIATIONSTACK_API_KEY",
    "TOMTOM_API_KEY",
    "WERKZEUG_RUN_MAIN",
    "RUN_MAIN",
    "UVICORN_RELOAD",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Unset every config variable and return an empty .env file.

    Variables are unset through monkeypatch so values that load_dotenv writes
    into the environment are removed again at teardown.
    """
    for name in CONFIG_ENV_VARS:
        # setenv first so teardown also removes variables that start out unset
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.touch()
    return env_file
