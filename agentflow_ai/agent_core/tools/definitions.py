"""Tool definitions.

A tool is described by a ``ToolSpec`` (description, optional pydantic input
schema, handler) and registered under a name as a ``ToolDescriptor`` that adds
a human-readable display name. This module also holds the input schemas of
the built-in tools.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from ..providers.base import ToolDefinition, ToolFunctionDefinition


@dataclass(frozen=True)
class ToolInvocationContext:
    """Context handed to a tool handler alongside its arguments."""

    tool_name: str
    variables: Mapping[str, Any] = field(default_factory=dict)
    agent: Any = None
    session: Any = None


class ToolSpec(BaseModel):
    """Executable part of a tool.

    ``handler`` is called as ``handler(input_data, context)`` and may be sync or
    async. When ``input_schema`` is set, raw arguments are validated into an
    instance of it first; otherwise the handler receives the argument dict.
    """

    description: str = Field(..., description="What the tool does, shown to models and users")
    input_schema: Optional[Type[BaseModel]] = Field(default=None, description="Pydantic model for argument validation")
    handler: Callable[..., Any] = Field(..., description="Callable executing the tool")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool arguments."""
        if self.input_schema is None:
            return {"type": "object", "properties": {}, "required": []}
        return self.input_schema.model_json_schema()

    async def execute(self, arguments: Mapping[str, Any], context: ToolInvocationContext) -> Any:
        input_data: Any = dict(arguments)
        if self.input_schema is not None:
            input_data = self.input_schema.model_validate(input_data)
        result = self.handler(input_data, context)
        if inspect.isawaitable(result):
            result = await result
        return result


class ToolDescriptor(BaseModel):
    display_name: str = Field(..., description="Human-readable tool name")
    tool: ToolSpec

    def to_definition(self, name: str) -> ToolDefinition:
        """Describe the tool for an LLM request."""
        return ToolDefinition(
            function=ToolFunctionDefinition(name=name, description=self.tool.description, parameters=self.tool.parameters)
        )


class CurrentDateInput(BaseModel):
    """Input schema for the current date tool (no arguments)."""


class DayNameInput(BaseModel):
    """Input schema for the day name tool."""

    date: str = Field(..., description="The date to get the day name for in ISO format (e.g., 2024-01-15)")
    locale: str = Field(default="en-US", description="Locale of the day name; only English names are produced")


HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
HTTP_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "PATCH"]


class HttpRequestInput(BaseModel):
    """Input schema for the HTTP request tool."""

    url: str = Field(..., description="The URL to make the request to (must be a valid HTTP/HTTPS URL)")
    method: HttpMethod = Field(..., description="The HTTP method to use")
    headers: Optional[Dict[str, str]] = Field(default=None, description="Optional request headers")
    body: Optional[str] = Field(
        default=None, description="Request body; a JSON string for POST/PUT/PATCH, ignored for GET"
    )


class HttpToolOptions(BaseModel):
    """Options of the HTTP request tool."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    max_redirects: int = Field(default=5, ge=0, description="Maximum number of redirects to follow")
    validate_ssl: bool = Field(default=True, description="Whether to validate SSL certificates")
