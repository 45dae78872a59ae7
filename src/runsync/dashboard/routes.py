"""Route handlers for the debug panel.

All handlers read state through the SchedulerStateAccessor, so the panel can
only observe the scheduler, apart from the manual poll trigger.

Endpoints:
- ``/``: HTML debug panel with counters and the 3 most recent errors
- ``/api/debug``: JSON debug info with every retained error
- ``/api/poll`` (POST): start a poll cycle now
- ``/health/live``: liveness probe
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, cast

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse

from runsync.dashboard.models import DebugInfoResponse, PollTriggerResponse
from runsync.logging import get_logger

if TYPE_CHECKING:
    from runsync.dashboard.state import SchedulerStateAccessor

logger = get_logger(__name__)


def create_routes(state_accessor: SchedulerStateAccessor) -> APIRouter:
    """Create debug panel routes with the given state accessor.

    Args:
        state_accessor: The state accessor for reading scheduler state.

    Returns:
        An APIRouter with all debug panel routes configured.
    """
    dashboard_router = APIRouter()

    @dashboard_router.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        """Render the debug panel page."""
        state = state_accessor.get_state()
        templates = request.app.state.templates
        return cast(
            HTMLResponse,
            await templates.TemplateResponse(
                request=request,
                name="debug_panel.html",
                context={"state": state},
            ),
        )

    @dashboard_router.get("/api/debug", response_model=DebugInfoResponse)
    async def api_debug() -> DebugInfoResponse:
        """Return the scheduler's debug info as JSON."""
        return DebugInfoResponse.from_debug_info(state_accessor.get_debug_info())

    @dashboard_router.post("/api/poll", response_model=PollTriggerResponse)
    async def api_poll() -> PollTriggerResponse:
        """Trigger a manual poll cycle.

        Raises:
            HTTPException: 503 if the scheduler's event loop is gone.
        """
        logger.info("Manual poll requested from debug panel")
        try:
            state_accessor.trigger_poll()
        except RuntimeError as e:
            logger.warning("Manual poll could not be scheduled: %s", e)
            raise HTTPException(status_code=503, detail="Scheduler is not available") from e
        return PollTriggerResponse()

    @dashboard_router.get("/health/live")
    async def health_live() -> dict[str, Any]:
        """Liveness probe endpoint.

        Does not check the flight or traffic providers.
        """
        return {"status": "healthy", "timestamp": time.time()}

    return dashboard_router
