"""Core data models for cross-chain staking workflows.

Defines transfer and staking read models, unstake outcomes, retry
behavior, and integer unit conversion.

Design: Dependency-Free Models
These types have no dependencies on executor or collaborator modules to
prevent circular imports and enable clean layering.
"""

from pyferry.models.outcome import (
    NothingToUnstake,
    Unstaked,
    UnstakeOutcome,
    is_nothing_to_unstake,
    is_unstaked,
)
from pyferry.models.position import CombinedResult, StakePosition, UnstakeResult
from pyferry.models.retry import RetryableError, RetryPolicy
from pyferry.models.transfer import TransferQuote, TransferRequest, TransferResult
from pyferry.models.units import format_units, parse_units, to_decimal

__all__ = [
    "TransferRequest",
    "TransferResult",
    "TransferQuote",
    "StakePosition",
    "UnstakeResult",
    "CombinedResult",
    "Unstaked",
    "NothingToUnstake",
    "UnstakeOutcome",
    "is_unstaked",
    "is_nothing_to_unstake",
    "RetryPolicy",
    "RetryableError",
    "parse_units",
    "format_units",
    "to_decimal",
]
