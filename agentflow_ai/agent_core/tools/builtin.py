"""Built-in tools shipped with the SDK."""

from __future__ import annotations

from typing import Optional

import httpx

from .definitions import (
    CurrentDateInput,
    DayNameInput,
    HttpRequestInput,
    HttpToolOptions,
    ToolDescriptor,
    ToolSpec,
)
from .handlers import CurrentDateHandler, DayNameHandler, HttpRequestHandler
from .registry import ToolRegistry

current_date_tool = ToolDescriptor(
    display_name="Get current date",
    tool=ToolSpec(
        description="Get the current date and time in ISO format (UTC timezone)",
        input_schema=CurrentDateInput,
        handler=CurrentDateHandler(),
    ),
)

day_name_tool = ToolDescriptor(
    display_name="Get day name",
    tool=ToolSpec(
        description="Get the name of the day (e.g., Monday, Tuesday) for a given date",
        input_schema=DayNameInput,
        handler=DayNameHandler(),
    ),
)


def create_http_tool(
    options: Optional[HttpToolOptions] = None, transport: Optional[httpx.AsyncBaseTransport] = None
) -> ToolDescriptor:
    """Build an HTTP request tool with custom options (and optionally a custom httpx transport)."""
    return ToolDescriptor(
        display_name="Make HTTP request",
        tool=ToolSpec(
            description=(
                "Makes HTTP requests to specified URLs with configurable method, headers, and body. "
                "Supports GET, POST, PUT, DELETE, and PATCH methods."
            ),
            input_schema=HttpRequestInput,
            handler=HttpRequestHandler(options, transport=transport),
        ),
    )


http_tool = create_http_tool()

BUILTIN_TOOLS = {
    "currentDate": current_date_tool,
    "dayName": day_name_tool,
    "http": http_tool,
}


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    registry.register_many(BUILTIN_TOOLS)
    return registry
