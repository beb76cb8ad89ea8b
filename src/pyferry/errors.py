"""Error taxonomy for cross-chain staking workflows.

Every error here is terminal for the workflow invocation that raised it:
none is retried above RetryExecutor. All of them report themselves as
non-retryable so a RetryExecutor that happens to wrap a call raising
one stops immediately.
"""

from __future__ import annotations

from pyferry.models import RetryableError

__all__ = [
    "FerryError",
    "InvalidAmount",
    "RetryExhausted",
    "AttestationTimeout",
    "FeeExceedsAmount",
    "CompletionFailed",
    "InsufficientLoanBalance",
    "MissingCredential",
    "OperationInProgress",
]


class FerryError(RetryableError):
    """Base class for workflow failures surfaced to callers."""

    def is_retryable(self) -> bool:
        return False


class InvalidAmount(FerryError):
    """The requested amount is not a positive decimal string."""

    def __init__(self, amount: object):
        super().__init__(f"Please provide a valid amount, got {amount!r}")
        self.amount = amount


class RetryExhausted(FerryError):
    """A remote call failed on every attempt allowed by its policy."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        super().__init__(
            f"{operation} failed after {attempts} attempt(s): {last_error}"
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class AttestationTimeout(FerryError):
    """The bridge did not attest the transfer within the allowed time."""

    def __init__(self, timeout_s: float, tx_id: str):
        super().__init__(
            f"No attestation for bridge transfer {tx_id} within {timeout_s:g} seconds"
        )
        self.timeout_s = timeout_s
        self.tx_id = tx_id


class FeeExceedsAmount(FerryError):
    """Automatic relaying would leave nothing to deliver after fees."""

    def __init__(self, amount: str, destination_amount: int):
        super().__init__(
            f"The amount requested ({amount}) is too low to cover the fee "
            "and any native gas requested"
        )
        self.amount = amount
        self.destination_amount = destination_amount


class CompletionFailed(FerryError):
    """Completing the transfer on the destination ledger failed."""

    def __init__(self, tx_id: str, cause: BaseException):
        super().__init__(f"Completing bridge transfer {tx_id} failed: {cause}")
        self.tx_id = tx_id
        self.cause = cause


class InsufficientLoanBalance(FerryError):
    """The caller cannot return the loan tokens an unstake would burn."""

    def __init__(self, need: str, have: str, symbol: str = "CCLT"):
        super().__init__(
            "Insufficient loan token balance, cannot unstake. "
            f"Need {need} {symbol} but only have {have} {symbol}"
        )
        self.need = need
        self.have = have


class MissingCredential(FerryError):
    """A required signing credential is not configured."""

    def __init__(self, name: str):
        super().__init__(f"Missing {name} environment variable")
        self.name = name


class OperationInProgress(FerryError):
    """Another workflow already holds the credential."""

    def __init__(self, key: str):
        super().__init__(f"An operation for {key} is already in progress")
        self.key = key
