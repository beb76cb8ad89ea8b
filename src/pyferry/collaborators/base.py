"""
Collaborator interfaces - what the orchestration core needs from the outside.

Design Pattern: Adapter Pattern
These abstract classes define the target interfaces that bridge and ledger
adapters implement. The core programs to them, so a web3-backed ledger and
the in-memory simulation are interchangeable.

Design Principle: Dependency Inversion (SOLID)
TransferCoordinator and StakeOperationManager depend on these abstractions,
not on any SDK. The contract and bridge semantics are owned by the
collaborators; the core only sequences calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pyferry.models import TransferQuote

__all__ = [
    "Credential",
    "TransactionHandle",
    "BridgeTransfer",
    "BridgeCollaborator",
    "TokenContract",
    "LoanTokenContract",
    "StakingContract",
    "DestinationLedger",
]


@dataclass(frozen=True)
class Credential:
    """A chain-specific signing identity.

    Attributes:
        chain: Chain name the identity signs for (e.g. "Solana", "Sepolia")
        address: The identity's address on that chain
        signer: Opaque signing object handed to collaborators
    """

    chain: str
    address: str
    signer: Any = field(default=None, repr=False, compare=False)


class TransactionHandle(ABC):
    """A submitted state-changing call."""

    @property
    @abstractmethod
    def hash(self) -> str:
        """Transaction hash."""

    @abstractmethod
    async def wait(self) -> Any:
        """Wait for on-chain confirmation and return the receipt.

        Raises:
            Exception: If the transaction reverted or was dropped
        """


class BridgeTransfer(ABC):
    """One prepared bridge transfer, driven through its three phases."""

    @property
    @abstractmethod
    def automatic(self) -> bool:
        """Whether a relayer completes this transfer."""

    @abstractmethod
    async def initiate(self, signer: Credential) -> list[str]:
        """Submit the transfer on the source ledger.

        Returns:
            One or two source-side transaction ids
        """

    @abstractmethod
    async def fetch_attestation(self, timeout_s: float) -> Any:
        """Wait for the verification layer to attest the initiated transfer.

        Raises:
            TimeoutError: If no attestation arrives within ``timeout_s``
        """

    @abstractmethod
    async def complete(self, signer: Credential) -> list[str]:
        """Redeem the attested transfer on the destination ledger.

        Raises:
            Exception: Whose text contains "already completed" when a
                relayer or an earlier attempt already redeemed it
        """


class BridgeCollaborator(ABC):
    """Attestation-based bridge between the source and destination ledgers."""

    @abstractmethod
    async def token_decimals(self, chain: str) -> int:
        """Decimal precision of the native token of ``chain``."""

    @abstractmethod
    async def prepare(
        self,
        source: Credential,
        destination: Credential,
        amount: int,
        automatic: bool,
    ) -> BridgeTransfer:
        """Build a transfer of ``amount`` base units of the source native token."""

    @abstractmethod
    async def quote(self, transfer: BridgeTransfer) -> TransferQuote:
        """Quote fees for a prepared transfer."""


class TokenContract(ABC):
    """ERC-20 style token on the destination ledger."""

    @property
    @abstractmethod
    def address(self) -> str: ...

    @abstractmethod
    async def balance_of(self, account: str) -> int: ...

    @abstractmethod
    async def decimals(self) -> int: ...

    @abstractmethod
    async def approve(self, spender: str, amount: int) -> TransactionHandle: ...


class LoanTokenContract(TokenContract):
    """Loan token with a minter permission gate."""

    @abstractmethod
    async def is_minter(self, account: str) -> bool: ...

    @abstractmethod
    async def add_minter(self, account: str) -> TransactionHandle: ...


class StakingContract(ABC):
    """Staking contract that mints loan tokens against staked wrapped assets."""

    @property
    @abstractmethod
    def address(self) -> str: ...

    @abstractmethod
    async def stake(self, amount: int) -> TransactionHandle: ...

    @abstractmethod
    async def unstake(self, amount: int) -> TransactionHandle: ...

    @abstractmethod
    async def get_user_stake(self, account: str) -> tuple[int, int]:
        """Return ``(staked, loaned)`` in base units."""


@dataclass
class DestinationLedger:
    """The three contracts staking touches on the destination ledger."""

    wrapped_token: TokenContract
    loan_token: LoanTokenContract
    staking: StakingContract
