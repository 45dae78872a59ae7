"""Airport Run Sync - background flight and traffic refresh for active runs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("airport-run-sync")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source without pip install)
    __version__ = "0.0.0.dev0"

# Re-export core public API
from runsync.app import main
from runsync.polling_config import PollingConfiguration
from runsync.scheduler import PollingScheduler, SchedulerState
from runsync.types import Run, RunStatus

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "__version__",
    "PollingConfiguration",
    "PollingScheduler",
    "Run",
    "RunStatus",
    "SchedulerState",
    "main",
]
