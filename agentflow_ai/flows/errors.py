"""Error types raised by the flow execution engine.

Every error here is a ``FlowExecutionError``. Failures coming from an LLM
provider or a tool are not wrapped; they propagate to the top-level executor
unchanged.
"""

from __future__ import annotations

from typing import Optional

from agentflow_ai.agent_core.errors import FlowExecutionError


class FlowDepthExceededError(FlowExecutionError):
    """Raised when recursion goes deeper than the context's ``max_depth``."""

    def __init__(self, max_depth: int) -> None:
        super().__init__(f"Maximum flow depth {max_depth} exceeded")
        self.max_depth = max_depth


class UnknownNodeTypeError(FlowExecutionError):
    def __init__(self, node_type: Optional[str]) -> None:
        super().__init__(f"Unknown node type: {node_type}")
        self.node_type = node_type


class ToolRegistryUnavailableError(FlowExecutionError):
    def __init__(self) -> None:
        super().__init__("Tool registry not available")


class ToolNotFoundError(FlowExecutionError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool '{tool_name}' not found")
        self.tool_name = tool_name


class FlowThrowError(FlowExecutionError):
    """Raised by an explicit ``throw`` node; the message is already interpolated."""


class ExpressionEvaluationError(FlowExecutionError):
    """Raised when an ``evaluator`` node's expression cannot be evaluated.

    Args:
        expression: The expression text as written in the flow (before interpolation).
        cause: The underlying evaluator failure.
    """

    def __init__(self, expression: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Failed to evaluate expression: {expression}", cause=cause)
        self.expression = expression
