"""Debug panel for the run sync service.

This package provides a small web surface for watching the polling scheduler:
a FastAPI application factory, route handlers, and read-only state access.

The panel is decoupled from scheduler internals through the
SchedulerStateProvider protocol, so it only sees DebugInfo snapshots and the
public configuration.

Key components:
- SchedulerStateProvider: Protocol implemented by PollingScheduler
- SchedulerStateAccessor: Adapter that converts scheduler state to panel DTOs
- DebugPanelState: Immutable snapshot of state for template rendering
"""

from runsync.dashboard.app import create_app
from runsync.dashboard.state import (
    DebugPanelState,
    SchedulerStateAccessor,
    SchedulerStateProvider,
)

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "create_app",
    "DebugPanelState",
    "SchedulerStateAccessor",
    "SchedulerStateProvider",
]
