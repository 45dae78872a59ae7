"""Latest known run snapshot and its active subset."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from runsync.types import Run, RunStatus


class RunSetRegistry:
    """Holds the most recent run snapshot handed to the scheduler.

    The snapshot is replaced wholesale on every update and stored as a tuple,
    so a poll cycle that already read it is unaffected by later updates.
    """

    def __init__(self) -> None:
        self._runs: tuple[Run, ...] = ()

    @property
    def runs(self) -> tuple[Run, ...]:
        return self._runs

    def update(self, runs: Iterable[Run]) -> int:
        """Replace the tracked snapshot.

        Args:
            runs: The complete current set of runs.

        Returns:
            Number of active runs in the new snapshot.
        """
        self._runs = tuple(runs)
        return len(self.active_runs())

    def active_runs(self) -> list[Run]:
        return [run for run in self._runs if run.status == RunStatus.ACTIVE]

    def status_counts(self) -> dict[str, int]:
        """Count tracked runs per status value."""
        return dict(Counter(str(run.status) for run in self._runs))

    def __len__(self) -> int:
        return len(self._runs)
