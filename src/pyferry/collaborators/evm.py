"""EVM destination ledger backed by web3.py.

Design: Adapter Pattern
Adapts the wrapped-asset token, the loan token and the staking contract
deployed on an EVM chain to the collaborator interfaces. Every
state-changing call is built, signed with the configured key, broadcast,
and returned as an EvmTransaction whose ``wait()`` blocks on the receipt.

Usage:
    ledger = EvmLedger.connect(
        rpc_url="https://sepolia.example/rpc",
        private_key=settings.eth_private_key,
        staking_address=settings.staking_contract_address,
        loan_token_address=settings.loan_token_address,
        wrapped_token_address=settings.wrapped_token_address,
    )
"""

from __future__ import annotations

import logging
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.providers import AsyncHTTPProvider
from web3.types import TxParams

from pyferry.collaborators.base import (
    DestinationLedger,
    LoanTokenContract,
    StakingContract,
    TokenContract,
    TransactionHandle,
)
from pyferry.models import RetryableError

logger = logging.getLogger(__name__)

__all__ = [
    "ERC20_ABI",
    "LOAN_TOKEN_ABI",
    "STAKING_ABI",
    "TransactionReverted",
    "EvmTransaction",
    "EvmLedger",
]

RECEIPT_TIMEOUT_S = 120


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str):
    return {
        "name": name,
        "type": "function",
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


ERC20_ABI: list[dict[str, Any]] = [
    _fn("approve", [("spender", "address"), ("amount", "uint256")], ["bool"], "nonpayable"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("decimals", [], ["uint8"], "view"),
]

LOAN_TOKEN_ABI: list[dict[str, Any]] = ERC20_ABI + [
    _fn("addMinter", [("minter", "address")], [], "nonpayable"),
    _fn("minters", [("minter", "address")], ["bool"], "view"),
]

STAKING_ABI: list[dict[str, Any]] = [
    _fn("stake", [("amount", "uint256")], [], "nonpayable"),
    _fn("unstake", [("amount", "uint256")], [], "nonpayable"),
    {
        "name": "getUserStake",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [
            {"name": "stakedAmount", "type": "uint256"},
            {"name": "loanedAmount", "type": "uint256"},
        ],
    },
]


class TransactionReverted(RetryableError):
    """A mined transaction has status 0. Waiting again cannot change that."""

    def __init__(self, tx_hash: str, gas_used: int | None):
        super().__init__(f"Transaction reverted: {tx_hash} (gasUsed={gas_used})")
        self.tx_hash = tx_hash

    def is_retryable(self) -> bool:
        return False


class EvmTransaction(TransactionHandle):
    def __init__(self, w3: AsyncWeb3, tx_hash: bytes):
        self._w3 = w3
        self._tx_hash = tx_hash

    @property
    def hash(self) -> str:
        return self._w3.to_hex(self._tx_hash)

    async def wait(self) -> Any:
        receipt = await self._w3.eth.wait_for_transaction_receipt(
            self._tx_hash, timeout=RECEIPT_TIMEOUT_S
        )
        if receipt["status"] == 0:
            raise TransactionReverted(self.hash, receipt.get("gasUsed"))
        logger.debug(
            f"Transaction {self.hash} confirmed in block {receipt['blockNumber']} "
            f"(gas used: {receipt.get('gasUsed')})"
        )
        return receipt


class _Sender:
    """Builds, signs and broadcasts contract calls from one account."""

    def __init__(self, w3: AsyncWeb3, account: LocalAccount):
        self.w3 = w3
        self.account = account

    async def send(self, contract_fn: Any) -> EvmTransaction:
        nonce = await self.w3.eth.get_transaction_count(self.account.address, "pending")
        tx_params: TxParams = {
            "from": self.account.address,
            "nonce": nonce,
            "chainId": await self.w3.eth.chain_id,
        }
        # Reverts surface here, before anything is broadcast
        gas_estimate = await contract_fn.estimate_gas(tx_params)
        tx_params["gas"] = int(gas_estimate * 1.2)

        built_tx = await contract_fn.build_transaction(tx_params)
        signed = self.account.sign_transaction(built_tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.debug(f"Sent transaction {self.w3.to_hex(tx_hash)} (nonce={nonce})")
        return EvmTransaction(self.w3, tx_hash)


class EvmToken(TokenContract):
    def __init__(self, sender: _Sender, contract: AsyncContract):
        self._sender = sender
        self._contract = contract

    @property
    def address(self) -> str:
        return self._contract.address

    async def balance_of(self, account: str) -> int:
        return await self._contract.functions.balanceOf(
            AsyncWeb3.to_checksum_address(account)
        ).call()

    async def decimals(self) -> int:
        return await self._contract.functions.decimals().call()

    async def approve(self, spender: str, amount: int) -> TransactionHandle:
        return await self._sender.send(
            self._contract.functions.approve(AsyncWeb3.to_checksum_address(spender), amount)
        )


class EvmLoanToken(EvmToken, LoanTokenContract):
    async def is_minter(self, account: str) -> bool:
        return await self._contract.functions.minters(
            AsyncWeb3.to_checksum_address(account)
        ).call()

    async def add_minter(self, account: str) -> TransactionHandle:
        return await self._sender.send(
            self._contract.functions.addMinter(AsyncWeb3.to_checksum_address(account))
        )


class EvmStaking(StakingContract):
    def __init__(self, sender: _Sender, contract: AsyncContract):
        self._sender = sender
        self._contract = contract

    @property
    def address(self) -> str:
        return self._contract.address

    async def stake(self, amount: int) -> TransactionHandle:
        return await self._sender.send(self._contract.functions.stake(amount))

    async def unstake(self, amount: int) -> TransactionHandle:
        return await self._sender.send(self._contract.functions.unstake(amount))

    async def get_user_stake(self, account: str) -> tuple[int, int]:
        staked, loaned = await self._contract.functions.getUserStake(
            AsyncWeb3.to_checksum_address(account)
        ).call()
        return int(staked), int(loaned)


class EvmLedger(DestinationLedger):
    """Destination ledger on an EVM chain, signing with one local account."""

    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        staking_address: str,
        loan_token_address: str,
        wrapped_token_address: str,
    ):
        self.w3 = w3
        self.account = account
        sender = _Sender(w3, account)

        def contract(address: str, abi: list[dict[str, Any]]) -> AsyncContract:
            return w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

        super().__init__(
            wrapped_token=EvmToken(sender, contract(wrapped_token_address, ERC20_ABI)),
            loan_token=EvmLoanToken(sender, contract(loan_token_address, LOAN_TOKEN_ABI)),
            staking=EvmStaking(sender, contract(staking_address, STAKING_ABI)),
        )

    @property
    def address(self) -> str:
        """Address of the signing account."""
        return self.account.address

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        private_key: str,
        staking_address: str,
        loan_token_address: str,
        wrapped_token_address: str,
    ) -> EvmLedger:
        w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        account: LocalAccount = Account.from_key(private_key)
        logger.info(f"Destination wallet loaded: {account.address}")
        return cls(w3, account, staking_address, loan_token_address, wrapped_token_address)
