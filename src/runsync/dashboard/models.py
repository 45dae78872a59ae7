"""Pydantic response models for the debug panel API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from runsync.observability import DebugInfo

# NOTE: Update this list when adding new models to this module.
__all__: list[str] = [
    "ErrorRecordResponse",
    "DebugInfoResponse",
    "PollTriggerResponse",
]


class ErrorRecordResponse(BaseModel):
    """A recorded fetch failure."""

    time: datetime
    message: str
    context: str


class DebugInfoResponse(BaseModel):
    """Observability counters plus every retained error, oldest first."""

    last_polled: datetime | None
    poll_count: int
    active_runs: int
    api_calls_blocked: int
    last_api_call_time: datetime | None
    errors: list[ErrorRecordResponse]

    @classmethod
    def from_debug_info(cls, info: DebugInfo) -> DebugInfoResponse:
        return cls(
            last_polled=info.last_polled,
            poll_count=info.poll_count,
            active_runs=info.active_runs,
            api_calls_blocked=info.api_calls_blocked,
            last_api_call_time=info.last_api_call_time,
            errors=[
                ErrorRecordResponse(time=e.time, message=e.message, context=e.context)
                for e in info.errors
            ],
        )


class PollTriggerResponse(BaseModel):
    """Response model for the manual poll trigger."""

    status: Literal["triggered"] = "triggered"
