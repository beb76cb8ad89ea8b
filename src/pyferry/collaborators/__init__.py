"""Bridge and ledger collaborators.

Provides the interfaces the orchestration core consumes and their
implementations:
    - base: abstract collaborator interfaces
    - InMemoryBridge / InMemoryLedger: in-process simulation
    - EvmLedger: web3-backed destination ledger

Design: Adapter Pattern + Dependency Inversion (SOLID)
    The core depends on the abstractions only, so adapters swap freely.
"""

from pyferry.collaborators.base import (
    BridgeCollaborator,
    BridgeTransfer,
    Credential,
    DestinationLedger,
    LoanTokenContract,
    StakingContract,
    TokenContract,
    TransactionHandle,
)

# Lazy imports: EvmLedger pulls in web3, which in-memory users do not need


def __getattr__(name: str):
    """Lazy import collaborator implementations."""
    if name in ("InMemoryBridge", "InMemoryLedger", "ContractRevert"):
        from pyferry.collaborators import memory

        return getattr(memory, name)
    elif name == "EvmLedger":
        from pyferry.collaborators.evm import EvmLedger

        return EvmLedger
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Credential",
    "TransactionHandle",
    "BridgeTransfer",
    "BridgeCollaborator",
    "TokenContract",
    "LoanTokenContract",
    "StakingContract",
    "DestinationLedger",
    "InMemoryBridge",
    "InMemoryLedger",
    "ContractRevert",
    "EvmLedger",
]
