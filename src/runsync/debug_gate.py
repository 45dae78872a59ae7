"""Debug mode resolution for the sync scheduler.

Debug mode suppresses every live flight and traffic call while still counting
how many would have been made.  It is resolved exactly once, when the
scheduler is constructed, from an injected value:

- a plain ``bool``
- a zero-argument resolver callable returning ``bool``
- ``None``, meaning "detect from the process environment" via
  :class:`EnvironmentDebugResolver`

The resolved value is stored in the scheduler configuration and never
re-evaluated per cycle.

Usage:
    gate = DebugGate.resolve(EnvironmentDebugResolver(DebugSignals.from_settings(settings)))
    if gate.active:
        ...
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from runsync.logging import get_logger

if TYPE_CHECKING:
    from runsync.config import DebugSettings

logger = get_logger(__name__)

# Environment markers set by auto-reloading development servers
HOT_RELOAD_ENV_VARS = ("WERKZEUG_RUN_MAIN", "RUN_MAIN", "UVICORN_RELOAD")

LOCAL_HOSTNAMES = frozenset({"localhost", "127.0.0.1"})

DEVELOPMENT_ENVIRONMENT = "development"

DebugResolver = Callable[[], bool]


@dataclass(frozen=True)
class DebugSignals:
    """Environment facts consulted by the debug mode heuristic."""

    hot_reload: bool = False
    hostname: str = ""
    dev_server_port: str = ""
    environment: str = ""
    manual_override: bool | None = None

    @classmethod
    def from_settings(
        cls,
        settings: DebugSettings,
        environ: Mapping[str, str] | None = None,
    ) -> DebugSignals:
        """Collect signals from configuration and the process environment.

        Args:
            settings: Debug settings loaded from configuration.
            environ: Environment mapping to inspect for hot-reload markers.
                Defaults to ``os.environ``.

        Returns:
            DebugSignals snapshot.
        """
        env = os.environ if environ is None else environ
        return cls(
            hot_reload=any(env.get(name) for name in HOT_RELOAD_ENV_VARS),
            hostname=settings.hostname,
            dev_server_port=settings.dev_server_port,
            environment=settings.environment,
            manual_override=settings.override,
        )


class EnvironmentDebugResolver:
    """Resolve debug mode from development-environment heuristics.

    Debug mode is on when any of the following holds: a hot-reload marker is
    present, the hostname is local, a dev server port is set, the environment
    name is ``development``, or the manual override is ``True``.  A manual
    override of ``False`` forces live calls regardless of the heuristics.
    """

    def __init__(self, signals: DebugSignals) -> None:
        self._signals = signals

    @property
    def signals(self) -> DebugSignals:
        return self._signals

    def __call__(self) -> bool:
        signals = self._signals
        if signals.manual_override is False:
            logger.debug(
                "Debug mode forced off by manual override",
                extra={"diagnostic_tag": "debug_gate"},
            )
            return False

        is_dev = (
            signals.hot_reload
            or signals.hostname in LOCAL_HOSTNAMES
            or signals.dev_server_port != ""
            or signals.environment == DEVELOPMENT_ENVIRONMENT
            or signals.manual_override is True
        )

        logger.debug(
            "Debug mode detection: is_dev=%s hostname=%r port=%r environment=%r hot_reload=%s",
            is_dev,
            signals.hostname or "unknown",
            signals.dev_server_port or "unknown",
            signals.environment or "unknown",
            signals.hot_reload,
            extra={"diagnostic_tag": "debug_gate"},
        )
        return is_dev


class DebugGate:
    """The once-resolved answer to "should live external calls be suppressed?"."""

    __slots__ = ("_active",)

    def __init__(self, active: bool) -> None:
        self._active = active

    @property
    def active(self) -> bool:
        return self._active

    def __bool__(self) -> bool:
        return self._active

    def __repr__(self) -> str:
        return f"DebugGate(active={self._active})"

    @classmethod
    def resolve(cls, source: bool | DebugResolver | None = None) -> DebugGate:
        """Resolve the gate from a bool, a resolver, or the environment.

        Args:
            source: Explicit flag, resolver callable, or None to detect from
                ``os.environ`` with default debug settings.

        Returns:
            DebugGate holding the resolved value.
        """
        if isinstance(source, bool):
            return cls(source)
        if source is None:
            from runsync.config import DebugSettings

            source = EnvironmentDebugResolver(DebugSignals.from_settings(DebugSettings()))
        return cls(bool(source()))
