"""Error types shared across the SDK.

Defines the ``SDKError`` hierarchy raised by agents, providers, tools and the
flow engine, plus the helpers the retry layer uses to classify failures.

Usage:
- Catch ``SDKError`` for any SDK failure and inspect ``code``.
- Raise ``RateLimitError(retry_after=...)`` from a provider to have
  ``retry`` wait the server-suggested delay.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class SDKError(Exception):
    """Base error for all SDK exceptions.

    Args:
        message: Human-readable error description.
        code: Optional machine-readable error code.
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class AgentExecutionError(SDKError):
    def __init__(
        self, message: str, *, agent_id: Optional[str] = None, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message, "AGENT_EXECUTION_ERROR")
        self.agent_id = agent_id
        self.cause = cause


class ToolExecutionError(SDKError):
    def __init__(
        self, message: str, *, tool_name: Optional[str] = None, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message, "TOOL_EXECUTION_ERROR")
        self.tool_name = tool_name
        self.cause = cause


class LLMProviderError(SDKError):
    """Raised by LLM providers; ``status_code`` carries the upstream HTTP status when known."""

    def __init__(
        self,
        message: str,
        *,
        provider_name: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, "LLM_PROVIDER_ERROR")
        self.provider_name = provider_name
        self.status_code = status_code
        self.cause = cause


class FlowExecutionError(SDKError):
    """Base error for failures raised while interpreting a flow."""

    def __init__(
        self,
        message: str,
        *,
        flow_code: Optional[str] = None,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, "FLOW_EXECUTION_ERROR")
        self.flow_code = flow_code
        self.step = step
        self.cause = cause


class ConfigurationError(SDKError):
    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message, "CONFIGURATION_ERROR")
        self.field = field


class ValidationError(SDKError):
    """Raised when user-supplied data fails validation.

    Args:
        message: Summary of the failure.
        errors: Optional mapping of field name to the list of problems found for it.
    """

    def __init__(self, message: str, *, errors: Optional[Dict[str, List[str]]] = None) -> None:
        super().__init__(message, "VALIDATION_ERROR")
        self.errors = errors or {}


class OperationTimeoutError(SDKError):
    def __init__(self, message: str, *, timeout: Optional[float] = None, operation: Optional[str] = None) -> None:
        super().__init__(message, "TIMEOUT_ERROR")
        self.timeout = timeout
        self.operation = operation


class RateLimitError(SDKError):
    """Raised when an upstream service rejects a request for rate limiting.

    Args:
        message: Human-readable error description.
        retry_after: Seconds the caller should wait before retrying, when known.
        limit: The request limit reported by the service, when known.
    """

    def __init__(self, message: str, *, retry_after: Optional[float] = None, limit: Optional[int] = None) -> None:
        super().__init__(message, "RATE_LIMIT_ERROR")
        self.retry_after = retry_after
        self.limit = limit


class CircuitOpenError(SDKError):
    def __init__(self, failures: int) -> None:
        super().__init__(
            f"Circuit breaker is open. Too many failures ({failures}). Try again later.", "CIRCUIT_OPEN"
        )
        self.failures = failures


_NETWORK_ERROR_MARKERS = (
    "econnrefused",
    "enotfound",
    "etimedout",
    "econnreset",
    "network",
    "connection refused",
    "connection reset",
    "fetch failed",
)

# Default wait for a 429 without a retry-after hint.
_DEFAULT_RATE_LIMIT_DELAY = 60.0


def is_retryable_error(error: BaseException) -> bool:
    """Return True when ``error`` is worth retrying.

    Rate limits and timeouts always are. Provider errors are retried on 5xx,
    408 and 429, or when no status code is known.
    """
    if isinstance(error, RateLimitError):
        return True
    if isinstance(error, LLMProviderError):
        if error.status_code:
            return error.status_code >= 500 or error.status_code in (408, 429)
        return True
    if isinstance(error, OperationTimeoutError):
        return True
    return False


def is_network_error(error: BaseException) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _NETWORK_ERROR_MARKERS)


def get_retry_delay(error: BaseException) -> Optional[float]:
    """Server-suggested retry delay in seconds, if the error carries one."""
    if isinstance(error, RateLimitError) and error.retry_after:
        return float(error.retry_after)
    if isinstance(error, LLMProviderError) and error.status_code == 429:
        return _DEFAULT_RATE_LIMIT_DELAY
    return None
