"""In-memory bridge and destination ledger.

Design Pattern: Adapter Pattern
InMemoryBridge and InMemoryLedger implement the collaborator interfaces
with plain dictionaries, so the orchestration core can run without a
network. Used by the test suite and the demo.

The ledger reproduces the staking contract's rules:
- stake(amount): pulls ``amount`` wrapped tokens under allowance and mints
  ``amount * loan_ratio`` loan tokens (the staking contract must be a minter)
- unstake(amount): burns ``amount * loaned // staked`` loan tokens under
  allowance and returns ``amount`` wrapped tokens

State changes are applied when a transaction is confirmed (``wait()``),
not when it is submitted, so a call that depends on an unconfirmed
approval reverts exactly as it would on chain.

Failure injection:
    ledger.fail_next("stake", ConnectionError("rpc timeout"), times=2)
    bridge.fail_next("initiate", TimeoutError("rpc timeout"))
"""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from collections.abc import Callable
from typing import Any

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
from pyferry.models import TransferQuote

__all__ = [
    "ContractRevert",
    "InMemoryTransaction",
    "InMemoryLedger",
    "InMemoryBridge",
    "InMemoryBridgeTransfer",
]


class ContractRevert(Exception):
    """A simulated contract call reverted."""


class _FailureInjector:
    """Queue of errors to raise from named calls, plus a call log."""

    def __init__(self) -> None:
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        self.calls: list[str] = []

    def fail_next(self, call: str, error: BaseException, times: int = 1) -> None:
        self._failures[call].extend([error] * times)

    def record(self, call: str) -> None:
        self.calls.append(call)
        pending = self._failures.get(call)
        if pending:
            raise pending.pop(0)

    def count(self, call: str) -> int:
        return self.calls.count(call)


_tx_counter = itertools.count(1)


def _next_hash() -> str:
    return f"0x{next(_tx_counter):064x}"


class InMemoryTransaction(TransactionHandle):
    """Transaction whose effect is applied once, on first successful wait()."""

    def __init__(self, ledger: InMemoryLedger, name: str, effect: Callable[[], None]):
        self._ledger = ledger
        self._name = name
        self._effect = effect
        self._hash = _next_hash()
        self._confirmed = False

    @property
    def hash(self) -> str:
        return self._hash

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    async def wait(self) -> dict[str, Any]:
        await asyncio.sleep(0)
        self._ledger.failures.record(f"{self._name}.wait")
        if not self._confirmed:
            self._effect()
            self._confirmed = True
        return {"transactionHash": self._hash, "status": 1}


class _Token(TokenContract):
    def __init__(self, ledger: InMemoryLedger, name: str, address: str, decimals: int):
        self._ledger = ledger
        self._name = name
        self._address = address
        self._decimals = decimals
        self.balances: dict[str, int] = defaultdict(int)
        self.allowances: dict[tuple[str, str], int] = defaultdict(int)

    @property
    def address(self) -> str:
        return self._address

    async def balance_of(self, account: str) -> int:
        await asyncio.sleep(0)
        self._ledger.failures.record(f"{self._name}.balance_of")
        return self.balances[account]

    async def decimals(self) -> int:
        await asyncio.sleep(0)
        self._ledger.failures.record(f"{self._name}.decimals")
        return self._decimals

    async def approve(self, spender: str, amount: int) -> TransactionHandle:
        await asyncio.sleep(0)
        self._ledger.failures.record(f"{self._name}.approve")
        owner = self._ledger.sender

        def effect() -> None:
            self.allowances[(owner, spender)] = amount

        return InMemoryTransaction(self._ledger, f"{self._name}.approve", effect)

    def mint(self, account: str, amount: int) -> None:
        self.balances[account] += amount

    def spend(self, owner: str, spender: str, amount: int) -> None:
        if self.allowances[(owner, spender)] < amount:
            raise ContractRevert(f"{self._name}: insufficient allowance")
        if self.balances[owner] < amount:
            raise ContractRevert(f"{self._name}: insufficient balance")
        self.allowances[(owner, spender)] -= amount
        self.balances[owner] -= amount


class _LoanToken(_Token, LoanTokenContract):
    def __init__(self, ledger: InMemoryLedger, address: str, decimals: int):
        super().__init__(ledger, "loan_token", address, decimals)
        self.minters: set[str] = set()

    async def is_minter(self, account: str) -> bool:
        await asyncio.sleep(0)
        self._ledger.failures.record("loan_token.is_minter")
        return account in self.minters

    async def add_minter(self, account: str) -> TransactionHandle:
        await asyncio.sleep(0)
        self._ledger.failures.record("loan_token.add_minter")
        return InMemoryTransaction(
            self._ledger, "loan_token.add_minter", lambda: self.minters.add(account)
        )


class _Staking(StakingContract):
    def __init__(self, ledger: InMemoryLedger, address: str, loan_ratio: int):
        self._ledger = ledger
        self._address = address
        self.loan_ratio = loan_ratio
        self.stakes: dict[str, tuple[int, int]] = defaultdict(lambda: (0, 0))

    @property
    def address(self) -> str:
        return self._address

    async def stake(self, amount: int) -> TransactionHandle:
        await asyncio.sleep(0)
        self._ledger.failures.record("staking.stake")
        user = self._ledger.sender
        wrapped = self._ledger.wrapped
        loan = self._ledger.loan

        # Submission simulates gas estimation: reverts surface here
        if amount <= 0:
            raise ContractRevert("Amount must be greater than 0")
        if wrapped.allowances[(user, self._address)] < amount:
            raise ContractRevert("wrapped_token: insufficient allowance")
        if self._address not in loan.minters:
            raise ContractRevert("loan_token: caller is not a minter")

        def effect() -> None:
            wrapped.spend(user, self._address, amount)
            wrapped.mint(self._address, amount)
            loan_amount = amount * self.loan_ratio
            loan.mint(user, loan_amount)
            staked, loaned = self.stakes[user]
            self.stakes[user] = (staked + amount, loaned + loan_amount)

        return InMemoryTransaction(self._ledger, "staking.stake", effect)

    async def unstake(self, amount: int) -> TransactionHandle:
        await asyncio.sleep(0)
        self._ledger.failures.record("staking.unstake")
        user = self._ledger.sender
        wrapped = self._ledger.wrapped
        loan = self._ledger.loan
        staked, loaned = self.stakes[user]

        if amount <= 0 or amount > staked:
            raise ContractRevert("Invalid unstake amount")
        burn = amount * loaned // staked
        if loan.allowances[(user, self._address)] < burn:
            raise ContractRevert("loan_token: insufficient allowance")

        def effect() -> None:
            loan.spend(user, self._address, burn)
            wrapped.balances[self._address] -= amount
            wrapped.mint(user, amount)
            self.stakes[user] = (staked - amount, loaned - burn)

        return InMemoryTransaction(self._ledger, "staking.unstake", effect)

    async def get_user_stake(self, account: str) -> tuple[int, int]:
        await asyncio.sleep(0)
        self._ledger.failures.record("staking.get_user_stake")
        return self.stakes[account]


class InMemoryLedger(DestinationLedger):
    """Destination ledger with a wrapped asset, a loan token and a staking contract.

    Usage:
        ledger = InMemoryLedger(sender="0xabc", loan_ratio=10)
        ledger.wrapped.mint("0xabc", 10**18)
    """

    def __init__(
        self,
        sender: str,
        loan_ratio: int = 10,
        wrapped_decimals: int = 18,
        loan_decimals: int = 18,
        staking_address: str = "0xfb06c3cd43d8b15c580a196e12ba80d42ffc02cd",
        loan_token_address: str = "0x8c25f65249f568033697a5d06f907f4dafafdeb5",
        wrapped_token_address: str = "0x824CB8fC742F8D3300d29f16cA8beE94471169f5",
    ):
        self.sender = sender
        self.failures = _FailureInjector()
        wrapped = _Token(self, "wrapped_token", wrapped_token_address, wrapped_decimals)
        loan = _LoanToken(self, loan_token_address, loan_decimals)
        staking = _Staking(self, staking_address, loan_ratio)
        super().__init__(wrapped_token=wrapped, loan_token=loan, staking=staking)

    @property
    def wrapped(self) -> _Token:
        return self.wrapped_token  # type: ignore[return-value]

    @property
    def loan(self) -> _LoanToken:
        return self.loan_token  # type: ignore[return-value]

    @property
    def contract(self) -> _Staking:
        return self.staking  # type: ignore[return-value]

    @property
    def calls(self) -> list[str]:
        return self.failures.calls

    def fail_next(self, call: str, error: BaseException, times: int = 1) -> None:
        self.failures.fail_next(call, error, times)


class InMemoryBridgeTransfer(BridgeTransfer):
    def __init__(
        self,
        bridge: InMemoryBridge,
        source: Credential,
        destination: Credential,
        amount: int,
        automatic: bool,
    ):
        self._bridge = bridge
        self.source = source
        self.destination = destination
        self.amount = amount
        self._automatic = automatic
        self.tx_ids: list[str] = []
        self.attested = False
        self.completed = False

    @property
    def automatic(self) -> bool:
        return self._automatic

    async def initiate(self, signer: Credential) -> list[str]:
        await asyncio.sleep(0)
        self._bridge.failures.record("initiate")
        self.tx_ids = [_next_hash() for _ in range(self._bridge.initiate_tx_count)]
        if self._bridge.relayer_completes:
            self._redeem()
        return list(self.tx_ids)

    async def fetch_attestation(self, timeout_s: float) -> dict[str, Any]:
        self._bridge.failures.record("fetch_attestation")
        if self._bridge.attestation_delay_s > timeout_s:
            await asyncio.sleep(0)
            raise TimeoutError(f"attestation not available after {timeout_s}s")
        await asyncio.sleep(0)
        self.attested = True
        return {"chain": self.source.chain, "txid": self.tx_ids[0]}

    async def complete(self, signer: Credential) -> list[str]:
        await asyncio.sleep(0)
        self._bridge.failures.record("complete")
        if not self.attested:
            raise RuntimeError("transfer has not been attested")
        if self.completed:
            raise RuntimeError("transfer already completed")
        self._redeem()
        return [_next_hash()]

    def _redeem(self) -> None:
        self.completed = True
        self._bridge.credit(self.destination.address, self.amount)


class InMemoryBridge(BridgeCollaborator):
    """Bridge that credits the ledger's wrapped token on completion.

    Attributes:
        relayer_fee: Base units deducted by the relayer on automatic transfers
        relayer_completes: Redeem on initiate, as an automatic relayer would,
            so a later manual completion reports "already completed"
        attestation_delay_s: Simulated attestation latency; a timeout
            shorter than this raises TimeoutError
        initiate_tx_count: How many source transaction ids initiate returns
    """

    def __init__(
        self,
        ledger: InMemoryLedger,
        source_decimals: int = 9,
        relayer_fee: int = 0,
        relayer_completes: bool = False,
        attestation_delay_s: float = 0.0,
        initiate_tx_count: int = 1,
    ):
        self.ledger = ledger
        self.source_decimals = source_decimals
        self.relayer_fee = relayer_fee
        self.relayer_completes = relayer_completes
        self.attestation_delay_s = attestation_delay_s
        self.initiate_tx_count = initiate_tx_count
        self.failures = _FailureInjector()
        self.transfers: list[InMemoryBridgeTransfer] = []

    @property
    def calls(self) -> list[str]:
        return self.failures.calls

    def fail_next(self, call: str, error: BaseException, times: int = 1) -> None:
        self.failures.fail_next(call, error, times)

    async def token_decimals(self, chain: str) -> int:
        await asyncio.sleep(0)
        self.failures.record("token_decimals")
        return self.source_decimals

    async def prepare(
        self,
        source: Credential,
        destination: Credential,
        amount: int,
        automatic: bool,
    ) -> InMemoryBridgeTransfer:
        await asyncio.sleep(0)
        self.failures.record("prepare")
        transfer = InMemoryBridgeTransfer(self, source, destination, amount, automatic)
        self.transfers.append(transfer)
        return transfer

    async def quote(self, transfer: BridgeTransfer) -> TransferQuote:
        await asyncio.sleep(0)
        self.failures.record("quote")
        amount = transfer.amount  # type: ignore[attr-defined]
        fee = self.relayer_fee if transfer.automatic else 0
        return TransferQuote(source_amount=amount, destination_amount=amount - fee)

    def credit(self, account: str, amount: int) -> None:
        """Mint the wrapped asset, rescaled to the destination precision."""
        wrapped = self.ledger.wrapped
        scale = wrapped._decimals - self.source_decimals
        units = amount * 10**scale if scale >= 0 else amount // 10**-scale
        wrapped.mint(account, units)
