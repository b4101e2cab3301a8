"""Tool definitions, registry and built-in tools."""

from .builtin import (
    BUILTIN_TOOLS,
    create_http_tool,
    current_date_tool,
    day_name_tool,
    http_tool,
    register_builtin_tools,
)
from .definitions import (
    HttpToolOptions,
    ToolDescriptor,
    ToolInvocationContext,
    ToolSpec,
)
from .handlers import ToolHandler
from .registry import ToolRegistry, global_tool_registry

__all__ = [
    "BUILTIN_TOOLS",
    "HttpToolOptions",
    "ToolDescriptor",
    "ToolHandler",
    "ToolInvocationContext",
    "ToolRegistry",
    "ToolSpec",
    "create_http_tool",
    "current_date_tool",
    "day_name_tool",
    "global_tool_registry",
    "http_tool",
    "register_builtin_tools",
]
