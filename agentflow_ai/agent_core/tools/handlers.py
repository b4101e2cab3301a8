"""Handlers of the built-in tools.

Each handler is a ``ToolHandler`` subclass; instances are callable as
``handler(input_data, context)`` and are plugged into a ``ToolSpec``.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

import httpx

from agentflow_ai.core.logging_config import get_logger

from ..errors import ToolExecutionError
from .definitions import (
    CurrentDateInput,
    DayNameInput,
    HttpRequestInput,
    HttpToolOptions,
    ToolInvocationContext,
)

logger = get_logger(__name__)

InputType = TypeVar("InputType")
OutputType = TypeVar("OutputType")

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class ToolHandler(ABC, Generic[InputType, OutputType]):
    """Abstract base class for tool handlers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool handler name."""

    @abstractmethod
    async def execute(self, input_data: InputType, context: ToolInvocationContext) -> OutputType:
        """Execute the tool operation.

        Args:
            input_data: Validated tool input
            context: Invocation context (tool name, flow variables, agent)

        Returns:
            Output data from the tool execution
        """

    async def __call__(self, input_data: InputType, context: ToolInvocationContext) -> OutputType:
        return await self.execute(input_data, context)


class CurrentDateHandler(ToolHandler[CurrentDateInput, str]):
    """Return the current UTC date and time in ISO format."""

    @property
    def name(self) -> str:
        return "current_date"

    async def execute(self, input_data: CurrentDateInput, context: ToolInvocationContext) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DayNameHandler(ToolHandler[DayNameInput, str]):
    """Return the weekday name (e.g. ``Monday``) of an ISO date."""

    @property
    def name(self) -> str:
        return "day_name"

    async def execute(self, input_data: DayNameInput, context: ToolInvocationContext) -> str:
        raw = input_data.date.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as e:
            raise ToolExecutionError(f"Invalid date: {input_data.date}", tool_name=self.name, cause=e) from e
        return _DAY_NAMES[parsed.weekday()]


class HttpRequestHandler(ToolHandler[HttpRequestInput, str]):
    """Make an HTTP request and return the response body.

    JSON responses are returned re-serialized as a JSON string, anything else as
    text. Non-2xx statuses and transport failures raise ``ToolExecutionError``.
    """

    def __init__(self, options: Optional[HttpToolOptions] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._options = options or HttpToolOptions()
        self._transport = transport

    @property
    def name(self) -> str:
        return "http_request"

    async def execute(self, input_data: HttpRequestInput, context: ToolInvocationContext) -> str:
        headers = {"Content-Type": "application/json"}
        headers.update(input_data.headers or {})
        content = input_data.body if input_data.body and input_data.method != "GET" else None

        logger.debug(f"HTTP tool request: {input_data.method} {input_data.url}")
        try:
            async with httpx.AsyncClient(
                timeout=self._options.timeout,
                follow_redirects=self._options.max_redirects > 0,
                max_redirects=self._options.max_redirects,
                verify=self._options.validate_ssl,
                transport=self._transport,
            ) as client:
                response = await client.request(input_data.method, input_data.url, headers=headers, content=content)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ToolExecutionError(
                f"HTTP request failed: HTTP {status}: {e.response.reason_phrase}", tool_name=self.name, cause=e
            ) from e
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"HTTP request failed: {e}", tool_name=self.name, cause=e) from e

        if "application/json" in response.headers.get("content-type", ""):
            return json.dumps(response.json())
        return response.text
