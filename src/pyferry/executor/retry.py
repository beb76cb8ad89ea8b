"""Bounded retry with exponential backoff for remote calls.

Every bridge and ledger call in the workflows runs through
RetryExecutor.execute(). Each failed attempt and each wait is published
as a progress line.

Failure classification:
- Any Exception is treated as transient and retried up to the limit.
- An error implementing ``is_retryable()`` that returns False is
  re-raised at once; retrying cannot change the outcome.
- BaseException (cancellation, KeyboardInterrupt) is never caught.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pyferry.broadcast import LogBroadcaster
from pyferry.errors import RetryExhausted
from pyferry.models import RetryPolicy

logger = logging.getLogger(__name__)

__all__ = ["RetryExecutor", "is_permanent"]

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]


def is_permanent(error: BaseException) -> bool:
    """True if the error reports itself as not worth retrying."""
    check = getattr(error, "is_retryable", None)
    return callable(check) and not check()


class RetryExecutor:
    """Runs an async operation with bounded retries.

    Usage:
        executor = RetryExecutor(broadcaster, RetryPolicy.BRIDGE)

        balance = await executor.execute(
            lambda: token.balance_of(address), name="balanceOf"
        )
    """

    def __init__(
        self,
        broadcaster: LogBroadcaster,
        policy: RetryPolicy = RetryPolicy.BRIDGE,
        sleep: Sleep = asyncio.sleep,
    ):
        """Create an executor.

        Args:
            broadcaster: Receives attempt and wait lines
            policy: Default policy for execute() calls
            sleep: Awaitable sleep taking seconds; injectable for tests
        """
        self._broadcaster = broadcaster
        self._policy = policy
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
        name: str = "operation",
    ) -> T:
        """Call ``operation`` until it succeeds or the policy is exhausted.

        Args:
            operation: Zero-argument callable returning an awaitable;
                called afresh for every attempt
            policy: Overrides the executor's default policy
            name: Operation name used in log lines and errors

        Returns:
            The result of the first successful attempt

        Raises:
            RetryExhausted: Every attempt failed; chained from the last error
            Exception: A permanent error, re-raised unchanged
        """
        policy = policy or self._policy
        attempt = 0

        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                self._broadcaster.publish(
                    f"Attempt {attempt}/{policy.max_attempts} failed: {e}"
                )

                if is_permanent(e):
                    logger.debug(f"{name}: permanent error on attempt {attempt}, not retrying")
                    raise

                delay_ms = policy.delay_for_attempt(attempt)
                if delay_ms is None:
                    logger.debug(f"{name}: exhausted {policy.max_attempts} attempt(s)")
                    raise RetryExhausted(name, attempt, e) from e

            self._broadcaster.publish(
                f"Waiting {delay_ms / 1000:g} seconds before retrying..."
            )
            await self._sleep(delay_ms / 1000)
