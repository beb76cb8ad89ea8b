"""Destination-chain staking and unstaking sequences.

Both operations encode the dependency order between contract calls:

    stake_for:  minter check/grant -> balance -> approve -> stake -> re-read
    unstake:    position -> loan balance check -> approve -> unstake -> re-read

Each step waits for the previous transaction's confirmation before the
next call is submitted; the dependent call would otherwise revert on
insufficient allowance. Every read, write and confirmation goes through
RetryExecutor.

Amounts stay integer base units throughout and are formatted only when
published or returned as UnstakeResult. Positions are always re-read
from the contract after a mutating call, never projected locally.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pyferry.broadcast import LogBroadcaster
from pyferry.collaborators.base import DestinationLedger, TransactionHandle
from pyferry.errors import InsufficientLoanBalance
from pyferry.executor.retry import RetryExecutor
from pyferry.models import StakePosition, UnstakeResult, format_units

logger = logging.getLogger(__name__)

__all__ = ["StakeOperationManager", "predict_burn", "predict_loan"]

WRAPPED_SYMBOL = "SOL"
LOAN_SYMBOL = "CCLT"


def predict_loan(amount: int, loan_ratio: int) -> int:
    """Loan tokens the staking contract mints for ``amount``."""
    return amount * loan_ratio


def predict_burn(amount: int, staked: int, loaned: int) -> int:
    """Loan tokens the staking contract burns when ``amount`` is unstaked.

    Reproduces the contract's integer division: floor(amount * loaned / staked).
    """
    if staked <= 0:
        raise ValueError("nothing is staked")
    return amount * loaned // staked


class StakeOperationManager:
    """Sequences staking contract interactions for one signing account.

    Usage:
        manager = StakeOperationManager(ledger, wallet_address, executor, broadcaster)
        position = await manager.stake_for(destination_address)
        result = await manager.unstake()
    """

    def __init__(
        self,
        ledger: DestinationLedger,
        owner_address: str,
        executor: RetryExecutor,
        broadcaster: LogBroadcaster,
    ):
        """Create a manager.

        Args:
            ledger: Destination contracts
            owner_address: Address of the signing credential; unstake and
                query_position act on it
            executor: Wraps every contract call
            broadcaster: Receives progress lines
        """
        self._ledger = ledger
        self._owner = owner_address
        self._executor = executor
        self._broadcaster = broadcaster

    @property
    def owner_address(self) -> str:
        return self._owner

    async def stake_for(self, address: str) -> StakePosition | None:
        """Stake the whole wrapped-asset balance held by ``address``.

        Returns:
            The freshly read position, or None if the balance is zero
        """
        publish = self._broadcaster.publish
        publish("Starting staking operation...")

        await self._ensure_minter()

        wrapped = self._ledger.wrapped_token
        staking = self._ledger.staking

        balance = await self._call(lambda: wrapped.balance_of(address), "balanceOf")
        decimals = await self._call(wrapped.decimals, "decimals")
        publish(f"Wrapped SOL balance: {format_units(balance, decimals)} {WRAPPED_SYMBOL}")

        if balance <= 0:
            publish("No Wrapped SOL to stake, please ensure cross-chain transfer was successful")
            return None

        publish("Approving staking contract to use Wrapped SOL...")
        await self._submit_and_confirm(
            lambda: wrapped.approve(staking.address, balance), "Approval"
        )

        publish("Executing staking operation...")
        await self._submit_and_confirm(lambda: staking.stake(balance), "Staking")

        position = await self._read_position(address, decimals)
        self._publish_position("Staking status:", position)
        return position

    async def unstake(self) -> UnstakeResult | None:
        """Withdraw the owner's whole stake, returning the loan tokens it minted.

        Returns:
            The withdrawal summary, or None if nothing is staked

        Raises:
            InsufficientLoanBalance: The owner holds fewer loan tokens than
                the position owes; nothing is submitted
        """
        publish = self._broadcaster.publish
        publish("Starting unstaking operation...")

        wrapped = self._ledger.wrapped_token
        loan = self._ledger.loan_token
        staking = self._ledger.staking

        decimals = await self._call(wrapped.decimals, "decimals")
        position = await self._read_position(self._owner, decimals)
        self._publish_position("Current staking status:", position)

        if position.is_empty:
            publish("No stakes to unstake")
            return None

        loan_balance = await self._call(lambda: loan.balance_of(self._owner), "balanceOf")
        publish(
            f"Loan token balance: {format_units(loan_balance, position.loaned_decimals)} {LOAN_SYMBOL}"
        )

        burn = predict_burn(position.staked, position.staked, position.loaned)
        if loan_balance < burn:
            raise InsufficientLoanBalance(
                need=format_units(burn, position.loaned_decimals),
                have=format_units(loan_balance, position.loaned_decimals),
                symbol=LOAN_SYMBOL,
            )

        logger.debug(f"Unstaking {position.staked} burns {burn} loan units")
        publish("Approving staking contract to use loan tokens...")
        await self._submit_and_confirm(
            lambda: loan.approve(staking.address, burn), "Approval"
        )

        publish("Executing unstaking operation...")
        await self._submit_and_confirm(lambda: staking.unstake(position.staked), "Unstaking")

        new_balance = await self._call(lambda: wrapped.balance_of(self._owner), "balanceOf")
        publish(
            f"Wrapped SOL balance after unstaking: {format_units(new_balance, decimals)} {WRAPPED_SYMBOL}"
        )

        updated = await self._read_position(self._owner, decimals)
        self._publish_position("New staking status:", updated)

        return UnstakeResult(
            withdrawn_amount=format_units(position.staked, decimals),
            new_staked_amount=format_units(updated.staked, updated.staked_decimals),
            new_loaned_amount=format_units(updated.loaned, updated.loaned_decimals),
            wrapped_balance=format_units(new_balance, decimals),
        )

    async def query_position(self, address: str | None = None) -> StakePosition:
        """Read the current position of ``address`` (the owner by default)."""
        address = address or self._owner
        self._broadcaster.publish(f"Querying staking status for user {address}...")
        decimals = await self._call(self._ledger.wrapped_token.decimals, "decimals")
        position = await self._read_position(address, decimals)
        self._publish_position("Staking status:", position)
        return position

    async def _ensure_minter(self) -> None:
        loan = self._ledger.loan_token
        staking_address = self._ledger.staking.address

        is_minter = await self._call(lambda: loan.is_minter(staking_address), "minters")
        if is_minter:
            self._broadcaster.publish("Staking contract is already a minter")
            return

        self._broadcaster.publish(
            "Staking contract is not a minter, adding minting permission..."
        )
        await self._submit_and_confirm(lambda: loan.add_minter(staking_address), "Add minter")

    async def _read_position(self, address: str, staked_decimals: int) -> StakePosition:
        staked, loaned = await self._call(
            lambda: self._ledger.staking.get_user_stake(address), "getUserStake"
        )
        loaned_decimals = await self._call(self._ledger.loan_token.decimals, "decimals")
        return StakePosition(
            staked=staked,
            loaned=loaned,
            staked_decimals=staked_decimals,
            loaned_decimals=loaned_decimals,
        )

    async def _submit_and_confirm(
        self, submit: Callable[[], Awaitable[TransactionHandle]], label: str
    ) -> TransactionHandle:
        tx = await self._call(submit, label.lower().replace(" ", "_"))
        self._broadcaster.publish(
            f"{label} transaction submitted, transaction hash: {tx.hash}"
        )
        await self._call(tx.wait, f"wait {tx.hash}")
        self._broadcaster.publish(f"{label} transaction confirmed")
        return tx

    async def _call(self, operation, name: str):
        return await self._executor.execute(operation, name=name)

    def _publish_position(self, title: str, position: StakePosition) -> None:
        amounts = position.to_dict()
        self._broadcaster.publish(title)
        self._broadcaster.publish(f"- Staked amount: {amounts['stakedAmount']} {WRAPPED_SYMBOL}")
        self._broadcaster.publish(f"- Loaned amount: {amounts['loanedAmount']} {LOAN_SYMBOL}")
