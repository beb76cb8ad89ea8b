"""Orchestration and retry engine.

Components, leaves first:
- RetryExecutor: bounded retry with exponential backoff
- TransferCoordinator: initiate -> attest -> complete bridge workflow
- StakeOperationManager: destination-chain staking sequences
- WorkflowOrchestrator: end-to-end stake and unstake workflows

Design: Information Hiding (Parnas)
Retry, sequencing and composition live in separate modules so each
policy can evolve independently.
"""

from pyferry.executor.orchestrator import (
    SETTLEMENT_DELAY_S,
    WorkflowOrchestrator,
    validate_amount,
)
from pyferry.executor.retry import RetryExecutor, is_permanent
from pyferry.executor.staking import StakeOperationManager, predict_burn, predict_loan
from pyferry.executor.transfer import (
    ATTESTATION_TIMEOUT_S,
    TransferCoordinator,
    is_already_completed,
)

__all__ = [
    "RetryExecutor",
    "is_permanent",
    "TransferCoordinator",
    "is_already_completed",
    "ATTESTATION_TIMEOUT_S",
    "StakeOperationManager",
    "predict_burn",
    "predict_loan",
    "WorkflowOrchestrator",
    "validate_amount",
    "SETTLEMENT_DELAY_S",
]
