"""Tool registry.

The registry maps a tool name to a ``ToolDescriptor``. The flow executor
resolves ``toolCall`` nodes through ``get``; a missing tool is reported by the
executor, so ``get`` returns ``None`` instead of raising.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from agentflow_ai.core.logging_config import get_logger

from ..providers.base import ToolDefinition
from .definitions import ToolDescriptor

logger = get_logger(__name__)


class ToolRegistry:
    """
    In-memory mapping of tool names to tool descriptors.

    Notes:
        - ``register`` overwrites any existing mapping for the name and logs a warning.
        - ``get`` returns ``None`` if the tool is missing.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}

    def register(self, name: str, descriptor: ToolDescriptor) -> None:
        if name in self._tools:
            logger.warning("Tool '%s' is already registered. Overwriting.", name)
        self._tools[name] = descriptor

    def register_many(self, tools: Mapping[str, ToolDescriptor]) -> None:
        for name, descriptor in tools.items():
            self.register(name, descriptor)

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list(self) -> List[str]:
        return list(self._tools.keys())

    def get_all(self) -> Dict[str, ToolDescriptor]:
        return dict(self._tools)

    def unregister(self, name: str) -> bool:
        """Remove a tool; returns True if it was registered."""
        return self._tools.pop(name, None) is not None

    def clear(self) -> None:
        self._tools.clear()

    def size(self) -> int:
        return len(self._tools)

    def definitions(self) -> List[ToolDefinition]:
        """Describe every registered tool for an LLM request."""
        return [descriptor.to_definition(name) for name, descriptor in self._tools.items()]


global_tool_registry = ToolRegistry()
