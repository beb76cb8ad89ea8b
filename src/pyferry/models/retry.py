"""
Retry policy configuration for remote calls.

Design Pattern: Strategy Pattern
RetryPolicy encapsulates backoff behavior, allowing bridge and ledger
calls to use different retry strategies without modifying RetryExecutor.

Design Rationale:
- NONE: a single attempt, for calls whose failure is already terminal
- STANDARD: a short general-purpose policy
- BRIDGE: the reference deployment's policy for RPC and bridge calls
  (5 attempts, 3s initial wait, x1.5, capped at 15s)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration for bounded retry with exponential backoff.

    Examples:
        # Simple: just specify max attempts (uses bridge delays)
        policy = RetryPolicy.with_max_attempts(3)

        # Named policy: predefined sensible defaults
        policy = RetryPolicy.BRIDGE

        # Custom policy: full control
        policy = RetryPolicy(
            max_attempts=5,
            initial_delay_ms=3000,
            max_delay_ms=15000,
            backoff_multiplier=1.5,
        )
    """

    max_attempts: int
    """Maximum number of attempts (including the first try).

    For example, max_attempts = 3 means:
    - Attempt 1: immediate (first try)
    - Attempt 2: after initial_delay
    - Attempt 3: after initial_delay * backoff_multiplier
    """

    initial_delay_ms: int
    """Delay before the first retry in milliseconds."""

    max_delay_ms: int
    """Maximum delay between retries in milliseconds (caps exponential backoff)."""

    backoff_multiplier: float
    """Multiplier applied to the delay after each failed attempt.

    Each retry delay is calculated as:
    min(initial_delay * backoff_multiplier^(attempt-1), max_delay)
    """

    # =========================================================================
    # Predefined Policies
    # =========================================================================

    if TYPE_CHECKING:
        NONE: RetryPolicy
        STANDARD: RetryPolicy
        BRIDGE: RetryPolicy
    else:
        # Runtime sees these as None (set after class definition)
        NONE = cast("RetryPolicy", None)
        STANDARD = cast("RetryPolicy", None)
        BRIDGE = cast("RetryPolicy", None)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must be non-negative")
        if self.backoff_multiplier < 1:
            raise ValueError(
                f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}"
            )

    @classmethod
    def with_max_attempts(cls, max_attempts: int) -> RetryPolicy:
        """
        Create a policy with custom max_attempts (uses bridge delays).

        Args:
            max_attempts: Maximum number of attempts

        Returns:
            RetryPolicy with the BRIDGE delays
        """
        return cls(
            max_attempts=max_attempts,
            initial_delay_ms=3000,
            max_delay_ms=15000,
            backoff_multiplier=1.5,
        )

    def delay_for_attempt(self, attempt: int) -> int | None:
        """
        Calculate the delay after a failed attempt.

        Uses exponential backoff: initial_delay * backoff_multiplier^(attempt-1)
        capped at max_delay.

        Args:
            attempt: The attempt that just failed (1-indexed)

        Returns:
            Delay in milliseconds before the next attempt, or None if no
            attempts remain.

        Example:
            policy = RetryPolicy.BRIDGE
            policy.delay_for_attempt(1)  # 3000
            policy.delay_for_attempt(2)  # 4500
            policy.delay_for_attempt(5)  # None (max attempts)
        """
        if attempt >= self.max_attempts:
            return None

        exponent = attempt - 1
        delay_ms = self.initial_delay_ms * (self.backoff_multiplier**exponent)

        return int(min(delay_ms, self.max_delay_ms))

    def schedule(self) -> list[int]:
        """Every wait this policy performs when all attempts fail, in order."""
        return [
            delay
            for attempt in range(1, self.max_attempts)
            if (delay := self.delay_for_attempt(attempt)) is not None
        ]

    def __repr__(self) -> str:
        """Readable representation for debugging."""
        return (
            f"RetryPolicy(max_attempts={self.max_attempts}, "
            f"initial_delay_ms={self.initial_delay_ms}, "
            f"max_delay_ms={self.max_delay_ms}, "
            f"backoff_multiplier={self.backoff_multiplier})"
        )


# Initialize predefined policies after class definition
RetryPolicy.NONE = RetryPolicy(
    max_attempts=1, initial_delay_ms=0, max_delay_ms=0, backoff_multiplier=1.0
)

RetryPolicy.STANDARD = RetryPolicy(
    max_attempts=3,
    initial_delay_ms=1000,  # 1 second
    max_delay_ms=30000,  # 30 seconds
    backoff_multiplier=2.0,
)

RetryPolicy.BRIDGE = RetryPolicy(
    max_attempts=5,
    initial_delay_ms=3000,  # 3 seconds
    max_delay_ms=15000,  # 15 seconds
    backoff_multiplier=1.5,
)


# =============================================================================
# RetryableError - Transient vs. permanent failures
# =============================================================================


class RetryableError(Exception):
    """
    Base class for errors that can specify whether they should be retried.

    Errors that do not derive from this class are always treated as
    transient. Raise a subclass with ``is_retryable() -> False`` to stop
    RetryExecutor immediately.

    Example:
        class RevertError(RetryableError):
            def __init__(self, message: str, is_retryable: bool = True):
                super().__init__(message)
                self._retryable = is_retryable

            def is_retryable(self) -> bool:
                return self._retryable

        # Transient error - should retry
        raise RevertError("nonce too low", is_retryable=True)

        # Permanent error - should NOT retry
        raise RevertError("insufficient balance", is_retryable=False)
    """

    def is_retryable(self) -> bool:
        """
        Returns true if this error is transient and the call should be retried.

        - True: network timeout, dropped RPC connection, transient revert.
        - False: invalid input, business rule violation.
        """
        return True
