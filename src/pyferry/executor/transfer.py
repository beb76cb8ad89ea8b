"""Three-phase bridge transfer: initiate, attest, complete.

Phases run strictly in order for one request:

1. Initiate on the source ledger (retried per RetryPolicy). When a relayer
   completes the transfer automatically, the fee quote is checked first so
   a transfer that would deliver nothing is never submitted.
2. Wait once for attestation, bounded by a fixed timeout. Not retried here;
   a timeout fails the transfer with AttestationTimeout.
3. Complete on the destination ledger. A failure saying the transfer was
   already completed (by a relayer or an earlier attempt) counts as
   success; any other failure is CompletionFailed.
"""

from __future__ import annotations

import logging

from pyferry.broadcast import LogBroadcaster
from pyferry.collaborators.base import BridgeCollaborator, BridgeTransfer, Credential
from pyferry.errors import AttestationTimeout, CompletionFailed, FeeExceedsAmount, InvalidAmount
from pyferry.executor.retry import RetryExecutor
from pyferry.models import TransferRequest, TransferResult, parse_units

logger = logging.getLogger(__name__)

__all__ = ["TransferCoordinator", "is_already_completed", "ATTESTATION_TIMEOUT_S"]

ATTESTATION_TIMEOUT_S = 60.0

_ALREADY_COMPLETED = "already completed"


def is_already_completed(error: BaseException) -> bool:
    """True if a completion failure means someone already redeemed the transfer."""
    return _ALREADY_COMPLETED in str(error).lower()


class TransferCoordinator:
    """Drives one bridge transfer from the source to the destination ledger.

    Usage:
        coordinator = TransferCoordinator(bridge, source, destination, executor, broadcaster)
        result = await coordinator.transfer(
            TransferRequest(source.address, destination.address, "0.01")
        )
    """

    def __init__(
        self,
        bridge: BridgeCollaborator,
        source: Credential,
        destination: Credential,
        executor: RetryExecutor,
        broadcaster: LogBroadcaster,
        attestation_timeout_s: float = ATTESTATION_TIMEOUT_S,
    ):
        self._bridge = bridge
        self._source = source
        self._destination = destination
        self._executor = executor
        self._broadcaster = broadcaster
        self._attestation_timeout_s = attestation_timeout_s

    @property
    def source(self) -> Credential:
        return self._source

    @property
    def destination(self) -> Credential:
        return self._destination

    def request(self, amount: str, automatic: bool = False) -> TransferRequest:
        """Build a request between this coordinator's credentials."""
        return TransferRequest(
            source_address=self._source.address,
            destination_address=self._destination.address,
            amount=amount,
            automatic=automatic,
        )

    async def transfer(self, request: TransferRequest) -> TransferResult:
        """Run all three phases for ``request``.

        Raises:
            InvalidAmount: The amount cannot be represented in the source token
            FeeExceedsAmount: Automatic relaying would deliver nothing
            RetryExhausted: Initiation kept failing
            AttestationTimeout: No attestation within the timeout
            CompletionFailed: Destination completion failed
        """
        publish = self._broadcaster.publish
        publish("Starting cross-chain transfer...")
        publish(f"Sender: {request.source_address}")
        publish(f"Receiver: {request.destination_address}")

        decimals = await self._executor.execute(
            lambda: self._bridge.token_decimals(self._source.chain),
            name="token_decimals",
        )
        try:
            units = parse_units(request.amount, decimals)
        except ValueError as e:
            raise InvalidAmount(request.amount) from e

        xfer = await self._executor.execute(
            lambda: self._bridge.prepare(
                self._source, self._destination, units, request.automatic
            ),
            name="prepare_transfer",
        )

        if request.automatic:
            await self._check_quote(xfer, request.amount)

        tx_ids = await self._executor.execute(
            lambda: xfer.initiate(self._source),
            name="initiate_transfer",
        )
        primary = tx_ids[0]
        secondary = tx_ids[1] if len(tx_ids) > 1 else primary
        publish("Executing cross-chain operation and returning monitoring hash:")
        publish(f"Bridge Hash: {primary}")
        publish(f"Bridge Hash: {secondary}")

        await self._await_attestation(xfer, primary)
        await self._complete(xfer, primary)

        return TransferResult(
            source_address=request.source_address,
            destination_address=request.destination_address,
            amount=request.amount,
            bridge_tx_id=primary,
        )

    async def _check_quote(self, xfer: BridgeTransfer, amount: str) -> None:
        quote = await self._executor.execute(
            lambda: self._bridge.quote(xfer), name="quote_transfer"
        )
        if quote.destination_amount <= 0:
            raise FeeExceedsAmount(amount, quote.destination_amount)

    async def _await_attestation(self, xfer: BridgeTransfer, tx_id: str) -> None:
        self._broadcaster.publish("Querying cross-chain proof...")
        try:
            attestation = await xfer.fetch_attestation(self._attestation_timeout_s)
        except TimeoutError as e:
            raise AttestationTimeout(self._attestation_timeout_s, tx_id) from e
        logger.debug(f"Attestation for {tx_id}: {attestation!r}")
        self._broadcaster.publish("Cross-chain proof query completed")

    async def _complete(self, xfer: BridgeTransfer, tx_id: str) -> None:
        try:
            dest_tx_ids = await xfer.complete(self._destination)
        except Exception as e:
            if not is_already_completed(e):
                raise CompletionFailed(tx_id, e) from e
            self._broadcaster.publish(
                "Transfer has already been completed, possibly automatically "
                "by a relayer or successfully completed previously"
            )
            self._broadcaster.publish(
                "This is not an error, your assets should have reached the destination chain"
            )
            return
        self._broadcaster.publish(
            f"Cross-chain transfer completed, hash: {', '.join(dest_tx_ids)}"
        )
