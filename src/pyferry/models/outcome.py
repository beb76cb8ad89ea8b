"""
Unstake outcomes.

Design Pattern: State Machine using Union types

"Nothing to unstake" is a normal outcome, not an error and not a success
carrying empty data. Making it a distinct type forces callers to handle it.

Example:
    ```python
    outcome = await orchestrator.unstake()

    match outcome:
        case Unstaked(result):
            print(f"Withdrew {result.withdrawn_amount}")
        case NothingToUnstake():
            print("No stakes to unstake")
    ```
"""

from dataclasses import dataclass
from typing import TypeGuard

from pyferry.models.position import UnstakeResult

__all__ = [
    "Unstaked",
    "NothingToUnstake",
    "UnstakeOutcome",
    "is_unstaked",
    "is_nothing_to_unstake",
]


@dataclass(frozen=True)
class Unstaked:
    """The position was withdrawn."""

    result: UnstakeResult


@dataclass(frozen=True)
class NothingToUnstake:
    """The caller had no staked amount."""

    message: str = "No stakes to unstake"


UnstakeOutcome = Unstaked | NothingToUnstake


def is_unstaked(outcome: UnstakeOutcome) -> TypeGuard[Unstaked]:
    return isinstance(outcome, Unstaked)


def is_nothing_to_unstake(outcome: UnstakeOutcome) -> TypeGuard[NothingToUnstake]:
    return isinstance(outcome, NothingToUnstake)
