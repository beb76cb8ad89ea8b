"""
Ferry: Cross-Chain Stake Orchestration for Python

Moves a native asset across an attestation-based bridge, then stakes it
on the destination ledger, retrying every remote call and streaming
progress lines to live observers.

Design Pattern: Façade Pattern
This module re-exports the pieces most callers need, hiding the
executor, collaborator and guard sub-packages.

Example:
    ```python
    import asyncio
    from pyferry import (
        Credential, FerryService, InMemoryBridge, InMemoryLedger, Settings,
    )

    async def main():
        ledger = InMemoryLedger(sender="0xdest")
        bridge = InMemoryBridge(ledger)
        service = FerryService.build(
            bridge,
            ledger,
            source=Credential("Solana", "So1source"),
            destination=Credential("Sepolia", "0xdest"),
            settings=Settings(settlement_delay_s=0),
        )

        subscriber_id, lines = service.subscribe()
        print(await service.run_stake("0.01"))

    asyncio.run(main())
    ```
"""

from pyferry.broadcast import LogBroadcaster, QueueSink, default_broadcaster
from pyferry.collaborators import (
    BridgeCollaborator,
    BridgeTransfer,
    Credential,
    DestinationLedger,
    TransactionHandle,
)
from pyferry.collaborators.memory import InMemoryBridge, InMemoryLedger
from pyferry.config import Settings
from pyferry.errors import (
    AttestationTimeout,
    CompletionFailed,
    FeeExceedsAmount,
    FerryError,
    InsufficientLoanBalance,
    InvalidAmount,
    MissingCredential,
    OperationInProgress,
    RetryExhausted,
)
from pyferry.executor import (
    RetryExecutor,
    StakeOperationManager,
    TransferCoordinator,
    WorkflowOrchestrator,
)
from pyferry.guard import InFlightGuard, MemoryInFlightGuard
from pyferry.models import (
    CombinedResult,
    NothingToUnstake,
    RetryableError,
    RetryPolicy,
    StakePosition,
    TransferRequest,
    TransferResult,
    Unstaked,
    UnstakeResult,
    is_nothing_to_unstake,
    is_unstaked,
)
from pyferry.service import FerryService

__version__ = "0.1.0"

__all__ = [
    # Models
    "TransferRequest",
    "TransferResult",
    "StakePosition",
    "UnstakeResult",
    "CombinedResult",
    "Unstaked",
    "NothingToUnstake",
    "is_unstaked",
    "is_nothing_to_unstake",
    "RetryPolicy",
    "RetryableError",

    # Errors
    "FerryError",
    "InvalidAmount",
    "RetryExhausted",
    "AttestationTimeout",
    "FeeExceedsAmount",
    "CompletionFailed",
    "InsufficientLoanBalance",
    "MissingCredential",
    "OperationInProgress",

    # Broadcasting
    "LogBroadcaster",
    "QueueSink",
    "default_broadcaster",

    # Collaborators
    "Credential",
    "TransactionHandle",
    "BridgeTransfer",
    "BridgeCollaborator",
    "DestinationLedger",
    "InMemoryBridge",
    "InMemoryLedger",

    # Engine
    "RetryExecutor",
    "TransferCoordinator",
    "StakeOperationManager",
    "WorkflowOrchestrator",

    # Guards
    "InFlightGuard",
    "MemoryInFlightGuard",

    # Wiring
    "Settings",
    "FerryService",

    # Metadata
    "__version__",
]
