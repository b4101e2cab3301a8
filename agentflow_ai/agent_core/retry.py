"""Retry, timeout and circuit breaker helpers.

The flow executor never retries on its own; callers wrap provider and tool
calls with these helpers instead. All delays are in seconds.

- ``retry`` runs an async operation with exponential backoff (jittered by
  +/-10 % around the nominal delay, capped at ``max_delay``). A server-suggested
  delay (``RateLimitError.retry_after``) takes precedence over the backoff.
- ``with_timeout`` bounds a single awaitable.
- ``RetryableOperation`` adds a circuit breaker on top of ``retry``.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from agentflow_ai.core.config import get_settings
from agentflow_ai.core.logging_config import get_logger

from .errors import CircuitOpenError, OperationTimeoutError, get_retry_delay, is_retryable_error

logger = get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryCallback = Callable[[BaseException, int, float], None]
RetryPredicate = Callable[[BaseException, int], bool]


@dataclass(frozen=True)
class RetryOptions:
    """Retry policy.

    Attributes:
        max_attempts: Total attempts including the first one.
        initial_delay: Delay before the second attempt.
        max_delay: Upper bound of any single delay.
        backoff_multiplier: Growth factor between consecutive delays.
        timeout: Optional per-attempt timeout.
        on_retry: Called as ``on_retry(error, attempt, delay)`` before each wait.
        should_retry: Called as ``should_retry(error, attempt)``; defaults to ``is_retryable_error``.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    backoff_multiplier: float = 2.0
    timeout: Optional[float] = None
    on_retry: Optional[RetryCallback] = None
    should_retry: Optional[RetryPredicate] = None

    @classmethod
    def from_settings(cls, **overrides: Any) -> "RetryOptions":
        defaults = get_settings().retry
        options = cls(
            max_attempts=defaults.max_attempts,
            initial_delay=defaults.initial_delay,
            max_delay=defaults.max_delay,
            backoff_multiplier=defaults.backoff_multiplier,
        )
        return replace(options, **overrides)


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    value: T
    attempts: int
    total_delay: float


def backoff_delay(attempt: int, options: RetryOptions) -> float:
    """Jittered exponential delay after failed attempt number ``attempt`` (1-based)."""
    delay = min(options.initial_delay * (options.backoff_multiplier ** (attempt - 1)), options.max_delay)
    jitter = delay * 0.2 * (random.random() - 0.5)
    return max(0.0, min(delay + jitter, options.max_delay))


async def with_timeout(awaitable: Awaitable[T], timeout: float, operation: Optional[str] = None) -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    Raises:
        OperationTimeoutError: If the deadline passes first.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(
            f"Operation timed out after {timeout}s", timeout=timeout, operation=operation
        ) from e


async def retry(operation: Operation[T], options: Optional[RetryOptions] = None) -> RetryResult[T]:
    """Run ``operation`` until it succeeds, retrying retryable failures with backoff.

    Args:
        operation: Zero-argument callable returning an awaitable; called once per attempt.
        options: Retry policy; defaults to the configured settings.

    Returns:
        The value together with the number of attempts and the total time spent waiting.

    Raises:
        The last error, once attempts are exhausted or the error is not retryable.
    """
    options = options or RetryOptions.from_settings()
    should_retry = options.should_retry or (lambda error, _attempt: is_retryable_error(error))
    attempt = 0
    total_delay = 0.0

    while True:
        attempt += 1
        try:
            if options.timeout is not None:
                value = await with_timeout(operation(), options.timeout)
            else:
                value = await operation()
            return RetryResult(value=value, attempts=attempt, total_delay=total_delay)
        except Exception as error:
            if attempt >= options.max_attempts or not should_retry(error, attempt):
                raise

            delay = get_retry_delay(error)
            if delay is None:
                delay = backoff_delay(attempt, options)
            total_delay += delay

            if options.on_retry is not None:
                options.on_retry(error, attempt, delay)
            logger.warning(
                "Operation failed: %s; retrying in %.2fs (attempt %s/%s)", error, delay, attempt, options.max_attempts
            )
            await asyncio.sleep(delay)


async def retry_on_error(
    operation: Operation[T],
    error_types: Sequence[Type[BaseException]],
    options: Optional[RetryOptions] = None,
) -> RetryResult[T]:
    """Like ``retry`` but only errors of ``error_types`` are considered for retrying."""
    options = options or RetryOptions.from_settings()
    inner = options.should_retry
    error_classes: Tuple[Type[BaseException], ...] = tuple(error_types)

    def _should_retry(error: BaseException, attempt: int) -> bool:
        if not isinstance(error, error_classes):
            return False
        if inner is not None:
            return inner(error, attempt)
        return is_retryable_error(error)

    return await retry(operation, replace(options, should_retry=_should_retry))


async def retry_with_timeout(
    operation: Operation[T], timeout: float, options: Optional[RetryOptions] = None
) -> RetryResult[T]:
    options = options or RetryOptions.from_settings()
    return await retry(operation, replace(options, timeout=timeout))


async def retry_batch(operations: Sequence[Operation[T]], options: Optional[RetryOptions] = None) -> List[RetryResult[T]]:
    """Retry several operations concurrently; fails as soon as one of them gives up."""
    return list(await asyncio.gather(*(retry(operation, options) for operation in operations)))


@dataclass
class RetryableOperation(Generic[T]):
    """Circuit breaker around ``retry``.

    After ``threshold`` consecutive failed ``execute`` calls the circuit opens and
    further calls fail fast with ``CircuitOpenError`` until ``reset_after``
    seconds have passed since the last failure.
    """

    operation: Operation[T]
    options: Optional[RetryOptions] = None
    threshold: int = 5
    reset_after: float = 60.0
    failure_count: int = field(default=0, init=False)
    last_failure_time: Optional[float] = field(default=None, init=False)

    async def execute(self) -> RetryResult[T]:
        if self._is_open():
            raise CircuitOpenError(self.failure_count)
        try:
            result = await retry(self.operation, self.options)
        except Exception:
            self.failure_count += 1
            self.last_failure_time = time.monotonic()
            raise
        self.reset()
        return result

    def _is_open(self) -> bool:
        if self.failure_count < self.threshold or self.last_failure_time is None:
            return False
        if time.monotonic() - self.last_failure_time >= self.reset_after:
            self.reset()
            return False
        return True

    def reset(self) -> None:
        self.failure_count = 0
        self.last_failure_time = None

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_open": self._is_open(),
            "failure_count": self.failure_count,
            "last_failure_time": self.last_failure_time,
        }
