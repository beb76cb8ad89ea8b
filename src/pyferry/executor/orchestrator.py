"""End-to-end cross-chain stake and unstake workflows.

stake_cross_chain(amount):
    validate -> transfer -> settlement delay -> stake_for(destination)

unstake():
    delegate to StakeOperationManager.unstake, reporting an empty position
    as the NothingToUnstake outcome

Both workflows hold the in-flight guard for the signing address for their
whole duration; an overlapping request fails with OperationInProgress.
No cancellation is propagated: once started, a workflow runs to completion
or terminal failure. Every terminal error is published with the operation
name and the amount or address involved, then re-raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from pyferry.broadcast import LogBroadcaster
from pyferry.errors import InvalidAmount
from pyferry.executor.staking import StakeOperationManager
from pyferry.executor.transfer import TransferCoordinator
from pyferry.guard import InFlightGuard, MemoryInFlightGuard
from pyferry.models import (
    CombinedResult,
    NothingToUnstake,
    StakePosition,
    Unstaked,
    UnstakeOutcome,
    to_decimal,
)
from pyferry.models.units import UINT256_MAX

logger = logging.getLogger(__name__)

__all__ = ["WorkflowOrchestrator", "validate_amount", "SETTLEMENT_DELAY_S"]

SETTLEMENT_DELAY_S = 30.0


def validate_amount(amount: object) -> str:
    """Return ``amount`` as a normalized string if it is a positive decimal.

    Raises:
        InvalidAmount: Missing, non-numeric, non-finite, not positive, or
            larger than any on-chain amount
    """
    if not isinstance(amount, str) or not amount.strip():
        raise InvalidAmount(amount)
    try:
        value = to_decimal(amount)
    except ValueError as e:
        raise InvalidAmount(amount) from e
    if value <= 0 or value > UINT256_MAX:
        raise InvalidAmount(amount)
    return amount.strip()


class WorkflowOrchestrator:
    """Composes the transfer and staking stages into complete workflows.

    Usage:
        orchestrator = WorkflowOrchestrator(coordinator, manager, broadcaster)

        combined = await orchestrator.stake_cross_chain("0.01")

        match await orchestrator.unstake():
            case Unstaked(result):
                ...
            case NothingToUnstake():
                ...
    """

    def __init__(
        self,
        coordinator: TransferCoordinator,
        stake_manager: StakeOperationManager,
        broadcaster: LogBroadcaster,
        guard: InFlightGuard | None = None,
        settlement_delay_s: float = SETTLEMENT_DELAY_S,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        automatic: bool = False,
    ):
        """Create an orchestrator.

        Args:
            coordinator: Runs the bridge transfer
            stake_manager: Runs destination-chain staking
            broadcaster: Receives progress and failure lines
            guard: Per-credential in-flight guard; in-memory by default
            settlement_delay_s: Wait between transfer completion and staking
            sleep: Awaitable sleep taking seconds; injectable for tests
            automatic: Request relayer completion for transfers
        """
        self._coordinator = coordinator
        self._stake_manager = stake_manager
        self._broadcaster = broadcaster
        self._guard = guard or MemoryInFlightGuard()
        self._settlement_delay_s = settlement_delay_s
        self._sleep = sleep
        self._automatic = automatic

    @property
    def owner_address(self) -> str:
        return self._stake_manager.owner_address

    async def stake_cross_chain(self, amount: str) -> CombinedResult:
        """Bridge ``amount`` to the destination ledger and stake what arrived.

        Returns:
            The transfer result and the fresh position; ``staking`` is None
            when nothing arrived to stake, which is still a success
        """
        async with self._workflow("Cross-chain staking", f"amount={amount!r}"):
            amount = validate_amount(amount)
            self._broadcaster.publish("Starting cross-chain staking process...")

            request = self._coordinator.request(amount, automatic=self._automatic)
            transfer = await self._coordinator.transfer(request)
            self._broadcaster.publish(
                "Cross-chain transfer completed, waiting for assets to reach the destination chain..."
            )

            self._broadcaster.publish(
                f"Waiting {self._settlement_delay_s:g} seconds to ensure assets have arrived..."
            )
            await self._sleep(self._settlement_delay_s)

            position = await self._stake_manager.stake_for(transfer.destination_address)
            self._broadcaster.publish(
                "The entire cross-chain staking process has been completed!"
            )
            return CombinedResult(transfer=transfer, staking=position)

    async def unstake(self) -> UnstakeOutcome:
        """Withdraw the signing account's whole stake."""
        async with self._workflow("Unstaking", f"address={self.owner_address}"):
            result = await self._stake_manager.unstake()
            if result is None:
                return NothingToUnstake()
            return Unstaked(result)

    async def query_position(self) -> StakePosition:
        """Read the signing account's position. Not guarded: read-only."""
        try:
            return await self._stake_manager.query_position()
        except Exception as e:
            self._broadcaster.publish(
                f"Failed to query staking status for {self.owner_address}: {e}"
            )
            raise

    @asynccontextmanager
    async def _workflow(self, operation: str, context: str) -> AsyncIterator[None]:
        """Guard one workflow and publish its terminal error, if any."""
        try:
            async with self._guard.hold(self.owner_address):
                yield
        except Exception as e:
            logger.debug(f"{operation} failed ({context})", exc_info=True)
            self._broadcaster.publish(
                f"{operation} operation failed ({context}): {type(e).__name__}: {e}"
            )
            raise
