"""Staking read models.

StakePosition mirrors the staking contract's ``getUserStake`` result. It
is never cached or projected locally: every value here comes from a
fresh contract read.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pyferry.models.transfer import TransferResult
from pyferry.models.units import format_units


@dataclass(frozen=True)
class StakePosition:
    """A user's position in the staking contract.

    Attributes:
        staked: Staked wrapped-asset amount in base units
        loaned: Outstanding loan-token amount in base units
        staked_decimals: Precision of the wrapped asset
        loaned_decimals: Precision of the loan token
    """

    staked: int
    loaned: int
    staked_decimals: int
    loaned_decimals: int

    @property
    def staked_amount(self) -> Decimal:
        return Decimal(format_units(self.staked, self.staked_decimals))

    @property
    def loaned_amount(self) -> Decimal:
        return Decimal(format_units(self.loaned, self.loaned_decimals))

    @property
    def is_empty(self) -> bool:
        return self.staked == 0

    def to_dict(self) -> dict[str, str]:
        return {
            "stakedAmount": format_units(self.staked, self.staked_decimals),
            "loanedAmount": format_units(self.loaned, self.loaned_decimals),
        }


@dataclass(frozen=True)
class UnstakeResult:
    """Outcome of a full unstake, formatted for presentation.

    Attributes:
        withdrawn_amount: Staked amount before the unstake
        new_staked_amount: Staked amount re-read after the unstake
        new_loaned_amount: Loaned amount re-read after the unstake
        wrapped_balance: Wrapped-asset balance re-read after the unstake
    """

    withdrawn_amount: str
    new_staked_amount: str
    new_loaned_amount: str
    wrapped_balance: str

    def to_dict(self) -> dict[str, str]:
        return {
            "withdrawnAmount": self.withdrawn_amount,
            "newStakedAmount": self.new_staked_amount,
            "newLoanedAmount": self.new_loaned_amount,
            "wrappedBalance": self.wrapped_balance,
        }


@dataclass(frozen=True)
class CombinedResult:
    """Result of a cross-chain stake: the transfer plus the fresh position.

    ``staking`` is None when nothing had arrived to stake; that is still a
    successful workflow.
    """

    transfer: TransferResult
    staking: StakePosition | None

    @property
    def staked(self) -> bool:
        return self.staking is not None

    def to_dict(self) -> dict[str, str | None]:
        data: dict[str, str | None] = dict(self.transfer.to_dict())
        position = self.staking.to_dict() if self.staking is not None else {}
        data["stakedAmount"] = position.get("stakedAmount")
        data["loanedAmount"] = position.get("loanedAmount")
        return data
