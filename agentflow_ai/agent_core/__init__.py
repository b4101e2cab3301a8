"""Agent core.

Building blocks the flow engine and agents are assembled from:

- ``schemas``: agent configuration models.
- ``providers``: the ``LLMProvider`` interface, the provider registry, a mock
  provider and a Pydantic AI adapter.
- ``tools``: tool descriptors, the tool registry and the built-in tools.
- ``errors``: the SDK error hierarchy.
- ``retry``: retry/backoff, timeouts and a circuit breaker.
"""

from .errors import (
    AgentExecutionError,
    CircuitOpenError,
    ConfigurationError,
    FlowExecutionError,
    LLMProviderError,
    OperationTimeoutError,
    RateLimitError,
    SDKError,
    ToolExecutionError,
    ValidationError,
    get_retry_delay,
    is_network_error,
    is_retryable_error,
)
from .schemas import AgentConfig, AgentType, ToolConfiguration

__all__ = [
    "AgentConfig",
    "AgentExecutionError",
    "AgentType",
    "CircuitOpenError",
    "ConfigurationError",
    "FlowExecutionError",
    "LLMProviderError",
    "OperationTimeoutError",
    "RateLimitError",
    "SDKError",
    "ToolConfiguration",
    "ToolExecutionError",
    "ValidationError",
    "get_retry_delay",
    "is_network_error",
    "is_retryable_error",
]
