"""FastAPI application factory for the debug panel.

This module provides a factory function for creating the FastAPI application
that serves the debug panel. The application is configured with Jinja2
templates and routes for displaying scheduler state.

Custom Jinja2 filters:
    format_timestamp: Formats a datetime for display, or "never" for None.
        Example: datetime(2024, 5, 1, 9, 30, tzinfo=UTC) -> "2024-05-01 09:30:00 UTC"
    format_interval: Formats a millisecond interval as minutes and seconds.
        Example: 300000 -> "5m 0s", 45000 -> "45s"
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape

from runsync.dashboard.routes import create_routes
from runsync.dashboard.state import SchedulerStateAccessor, SchedulerStateProvider


def format_timestamp(value: datetime | None) -> str:
    """Format a timestamp for the debug panel.

    Args:
        value: Timestamp, or None if the event never happened.

    Returns:
        ``YYYY-MM-DD HH:MM:SS`` followed by the zone name, or ``"never"``.

    Examples:
        >>> format_timestamp(None)
        'never'
    """
    if value is None:
        return "never"
    zone = value.tzname() or ""
    return f"{value:%Y-%m-%d %H:%M:%S} {zone}".rstrip()


def format_interval(milliseconds: int | None) -> str:
    """Format an interval in milliseconds as a human-readable string.

    Examples:
        >>> format_interval(300000)
        '5m 0s'
        >>> format_interval(45000)
        '45s'
    """
    if milliseconds is None or milliseconds < 0:
        return "0s"

    seconds = milliseconds // 1000
    minutes = int(seconds // 60)
    remaining_seconds = int(seconds % 60)

    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{remaining_seconds}s"


class TemplateEnvironmentWrapper:
    """Wrapper to make a Jinja2 Environment look like FastAPI's Jinja2Templates."""

    def __init__(self, env: Environment) -> None:
        self._env = env

    async def template_response(
        self,
        *,
        request: object,
        name: str,
        context: dict[str, Any] | None = None,
    ) -> HTMLResponse:
        """Render a template asynchronously and return an HTML response.

        Must be awaited; the environment is created with ``enable_async=True``.

        Args:
            request: The incoming HTTP request.
            name: The template name to render.
            context: Template context variables.

        Returns:
            An HTMLResponse with the rendered template.
        """
        template = self._env.get_template(name)
        context = context or {}
        context["request"] = request
        content = await template.render_async(**context)
        return HTMLResponse(content=content)

    TemplateResponse = template_response


def create_app(
    scheduler: SchedulerStateProvider,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    templates_dir: Path | None = None,
) -> FastAPI:
    """Create and configure the FastAPI debug panel application.

    Args:
        scheduler: The scheduler to observe.
        loop: The event loop the scheduler runs on, used to forward manual
            poll requests from the server thread.
        templates_dir: Optional custom templates directory. Defaults to
            the templates/ directory within this package.

    Returns:
        A configured FastAPI application ready to serve the debug panel.
    """
    app = FastAPI(
        title="Airport Run Sync Debug Panel",
        description="Polling scheduler counters, recent errors and manual poll trigger",
        version="0.1.0",
    )

    if templates_dir is None:
        templates_dir = Path(__file__).parent / "templates"

    template_env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        enable_async=True,
    )
    template_env.filters["format_timestamp"] = format_timestamp
    template_env.filters["format_interval"] = format_interval

    app.state.templates = TemplateEnvironmentWrapper(template_env)

    state_accessor = SchedulerStateAccessor(scheduler, loop=loop)
    app.include_router(create_routes(state_accessor))

    return app
