"""
FerryService - the surface an HTTP front end consumes.

Design Pattern: Façade Pattern
Hides the wiring of executor, coordinator, manager, guard and
broadcaster behind a handful of calls that return JSON-ready payloads:

    run_stake(amount)   -> {"success": True, "sourceAddress": ..., ...}
    run_unstake()       -> {"success": True, "withdrawnAmount": ...}
                           or {"success": False, "nothing_to_unstake": True, ...}
    query_position()    -> {"success": True, "stakedAmount": ..., ...}
    subscribe()/unsubscribe(id) for live progress lines

Failures come back as ``{"success": False, "message": ..., "status": ...}``
with an HTTP-style status hint; the orchestrator has already published
the diagnostic line.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from pyferry.broadcast import LogBroadcaster, default_broadcaster
from pyferry.collaborators.base import BridgeCollaborator, Credential, DestinationLedger
from pyferry.config import Settings
from pyferry.errors import FerryError, InvalidAmount, OperationInProgress
from pyferry.executor import (
    RetryExecutor,
    StakeOperationManager,
    TransferCoordinator,
    WorkflowOrchestrator,
)
from pyferry.guard import InFlightGuard, MemoryInFlightGuard
from pyferry.models import NothingToUnstake

logger = logging.getLogger(__name__)

__all__ = ["FerryService"]


def _status_for(error: Exception) -> int:
    if isinstance(error, InvalidAmount):
        return 400
    if isinstance(error, OperationInProgress):
        return 409
    return 500


def _failure(error: Exception, fallback: str) -> dict[str, Any]:
    return {
        "success": False,
        "message": str(error) or fallback,
        "error": type(error).__name__,
        "status": _status_for(error),
    }


class FerryService:
    """Entry points for the stake, unstake, query and live-log endpoints."""

    def __init__(
        self,
        orchestrator: WorkflowOrchestrator,
        broadcaster: LogBroadcaster,
        guard: InFlightGuard | None = None,
    ):
        self._orchestrator = orchestrator
        self._broadcaster = broadcaster
        self._guard = guard

    @classmethod
    def build(
        cls,
        bridge: BridgeCollaborator,
        ledger: DestinationLedger,
        source: Credential,
        destination: Credential,
        settings: Settings | None = None,
        broadcaster: LogBroadcaster | None = None,
        guard: InFlightGuard | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> FerryService:
        """Wire a service from collaborators and settings.

        Args:
            bridge: Bridge adapter
            ledger: Destination contracts
            source: Source-ledger credential
            destination: Destination-ledger credential; also the staking owner
            settings: Timing and retry configuration (defaults if None)
            broadcaster: Defaults to the process-wide broadcaster
            guard: Defaults to an in-memory guard
            sleep: Awaitable sleep for backoff and settlement; injectable for tests
        """
        settings = settings or Settings()
        broadcaster = broadcaster or default_broadcaster()
        guard = guard or MemoryInFlightGuard()
        executor = RetryExecutor(broadcaster, settings.retry_policy(), sleep=sleep)

        coordinator = TransferCoordinator(
            bridge,
            source,
            destination,
            executor,
            broadcaster,
            attestation_timeout_s=settings.attestation_timeout_s,
        )
        manager = StakeOperationManager(ledger, destination.address, executor, broadcaster)
        orchestrator = WorkflowOrchestrator(
            coordinator,
            manager,
            broadcaster,
            guard=guard,
            settlement_delay_s=settings.settlement_delay_s,
            sleep=sleep,
            automatic=settings.automatic,
        )
        return cls(orchestrator, broadcaster, guard)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        bridge: BridgeCollaborator,
        source: Credential,
        broadcaster: LogBroadcaster | None = None,
    ) -> FerryService:
        """Wire a service against the EVM destination ledger named in ``settings``.

        Raises:
            MissingCredential: ETH_PRIVATE_KEY or ETH_RPC_URL is not set
        """
        from pyferry.collaborators.evm import EvmLedger

        ledger = EvmLedger.connect(
            rpc_url=settings.require_rpc_url(),
            private_key=settings.require_private_key(),
            staking_address=settings.staking_contract_address,
            loan_token_address=settings.loan_token_address,
            wrapped_token_address=settings.wrapped_token_address,
        )
        destination = Credential(chain="Sepolia", address=ledger.address, signer=ledger.account)

        guard: InFlightGuard
        if settings.redis_url:
            from pyferry.guard.redis import RedisInFlightGuard

            guard = RedisInFlightGuard(settings.redis_url)
        else:
            guard = MemoryInFlightGuard()

        return cls.build(bridge, ledger, source, destination, settings, broadcaster, guard)

    async def start(self) -> None:
        """Open guard connections, if the guard has any."""
        connect = getattr(self._guard, "connect", None)
        if connect is not None:
            await connect()

    async def close(self) -> None:
        """End live-log streams and close guard connections."""
        self._broadcaster.publish("Server closed")
        self._broadcaster.close()
        close = getattr(self._guard, "close", None)
        if close is not None:
            await close()

    async def run_stake(self, amount: Any) -> dict[str, Any]:
        try:
            combined = await self._orchestrator.stake_cross_chain(amount)
        except FerryError as e:
            return _failure(e, "Error executing cross-chain staking")
        except Exception as e:
            logger.exception("Cross-chain staking failed")
            return _failure(e, "Error executing cross-chain staking")
        return {
            "success": True,
            "message": "Cross-chain staking operation completed successfully",
            **combined.to_dict(),
        }

    async def run_unstake(self) -> dict[str, Any]:
        try:
            outcome = await self._orchestrator.unstake()
        except FerryError as e:
            return _failure(e, "Error executing unstaking")
        except Exception as e:
            logger.exception("Unstaking failed")
            return _failure(e, "Error executing unstaking")

        if isinstance(outcome, NothingToUnstake):
            return {
                "success": False,
                "message": outcome.message,
                "nothing_to_unstake": True,
                "status": 400,
            }
        return {
            "success": True,
            "message": "Unstaking operation completed successfully",
            **outcome.result.to_dict(),
        }

    async def query_position(self) -> dict[str, Any]:
        try:
            position = await self._orchestrator.query_position()
        except Exception as e:
            logger.exception("Staking status query failed")
            return _failure(e, "Error querying staking status")
        return {
            "success": True,
            "message": "Staking status query successful",
            **position.to_dict(),
        }

    def subscribe(self) -> tuple[str, AsyncIterator[str]]:
        return self._broadcaster.subscribe()

    def unsubscribe(self, subscriber_id: str) -> None:
        self._broadcaster.unsubscribe(subscriber_id)
