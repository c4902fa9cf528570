"""Bounded retry for remote conferencing calls.

Wraps a coroutine factory in tenacity with the same policy the service
clients use elsewhere: 3 attempts, exponential backoff starting at 1s
(1s, 2s between attempts), retrying only RemoteTransientError. The last
error is re-raised unchanged once attempts are exhausted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.clubmeet.core.errors import RemoteTransientError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3


def _log_retry(operation: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retry.attempt_failed",
            operation=operation,
            attempt=retry_state.attempt_number,
            next_wait_s=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(exc),
        )

    return _before_sleep


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    operation: str,
    max_attempts: int = MAX_ATTEMPTS,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``fn`` with bounded exponential-backoff retries.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        operation: Name used in retry log events.
        max_attempts: Total attempts including the first.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The first successful result of ``fn``.

    Raises:
        RemoteTransientError: If every attempt failed transiently.
        Exception: Any non-transient error from ``fn``, immediately.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RemoteTransientError),
        before_sleep=_log_retry(operation),
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            result = await fn()
    return result
