"""Tests for StakeOperationManager call ordering and position bookkeeping."""

import pytest

from pyferry.collaborators.memory import ContractRevert
from pyferry.errors import InsufficientLoanBalance, RetryExhausted
from pyferry.executor import predict_burn, predict_loan

from conftest import OWNER, UNIT


@pytest.mark.asyncio
async def test_stake_whole_balance(ledger, manager):
    ledger.wrapped.mint(OWNER, UNIT)

    position = await manager.stake_for(OWNER)

    assert position.staked == UNIT
    assert position.loaned == 10 * UNIT
    assert position.to_dict() == {"stakedAmount": "1.0", "loanedAmount": "10.0"}
    assert ledger.wrapped.balances[OWNER] == 0
    assert ledger.loan.balances[OWNER] == 10 * UNIT


@pytest.mark.asyncio
async def test_zero_balance_returns_none(ledger, manager, sink):
    position = await manager.stake_for(OWNER)

    assert position is None
    assert "wrapped_token.approve" not in ledger.calls
    assert "staking.stake" not in ledger.calls
    assert any(line.startswith("No Wrapped SOL to stake") for line in sink.lines)


@pytest.mark.asyncio
async def test_minter_granted_once(ledger, manager, sink):
    ledger.wrapped.mint(OWNER, UNIT)
    await manager.stake_for(OWNER)
    ledger.wrapped.mint(OWNER, UNIT)
    await manager.stake_for(OWNER)

    assert ledger.calls.count("loan_token.add_minter") == 1
    assert "Staking contract is already a minter" in sink.lines
    assert ledger.contract.address in ledger.loan.minters


@pytest.mark.asyncio
async def test_approval_confirmed_before_stake_submitted(ledger, manager):
    ledger.wrapped.mint(OWNER, UNIT)

    await manager.stake_for(OWNER)

    calls = ledger.calls
    assert calls.index("loan_token.add_minter.wait") < calls.index("staking.stake")
    assert calls.index("wrapped_token.approve") < calls.index("wrapped_token.approve.wait")
    assert calls.index("wrapped_token.approve.wait") < calls.index("staking.stake")
    assert calls.index("staking.stake.wait") < calls.index("staking.get_user_stake")


@pytest.mark.asyncio
async def test_stake_without_confirmed_approval_reverts(ledger):
    ledger.wrapped.mint(OWNER, UNIT)
    await ledger.wrapped.approve(ledger.contract.address, UNIT)

    with pytest.raises(ContractRevert, match="allowance"):
        await ledger.staking.stake(UNIT)


@pytest.mark.asyncio
async def test_stake_submission_retried(ledger, manager, sleep):
    ledger.wrapped.mint(OWNER, UNIT)
    ledger.fail_next("staking.stake", ConnectionError("rpc timeout"), times=2)

    position = await manager.stake_for(OWNER)

    assert ledger.calls.count("staking.stake") == 3
    assert position.staked == UNIT
    assert sleep.calls == [0.1, 0.2]


@pytest.mark.asyncio
async def test_confirmation_retry_applies_effect_once(ledger, manager):
    ledger.wrapped.mint(OWNER, UNIT)
    ledger.fail_next("staking.stake.wait", ConnectionError("receipt not found"))

    position = await manager.stake_for(OWNER)

    assert ledger.calls.count("staking.stake.wait") == 2
    assert position.staked == UNIT
    assert position.loaned == 10 * UNIT


@pytest.mark.asyncio
async def test_stake_publishes_transaction_lines(ledger, manager, sink):
    ledger.wrapped.mint(OWNER, UNIT)

    await manager.stake_for(OWNER)

    assert "Wrapped SOL balance: 1.0 SOL" in sink.lines
    assert "Approval transaction confirmed" in sink.lines
    assert "Staking transaction confirmed" in sink.lines
    assert sink.lines[-3:] == [
        "Staking status:",
        "- Staked amount: 1.0 SOL",
        "- Loaned amount: 10.0 CCLT",
    ]


@pytest.mark.asyncio
async def test_unstake_whole_position(staked_ledger, manager):
    result = await manager.unstake()

    assert result.withdrawn_amount == "2.0"
    assert result.new_staked_amount == "0.0"
    assert result.new_loaned_amount == "0.0"
    assert result.wrapped_balance == "2.0"
    assert staked_ledger.loan.balances[OWNER] == 0
    assert staked_ledger.contract.stakes[OWNER] == (0, 0)


@pytest.mark.asyncio
async def test_unstake_approves_exactly_the_burn(staked_ledger, manager):
    staked_ledger.loan.balances[OWNER] += 10 * UNIT

    await manager.unstake()

    staking_address = staked_ledger.contract.address
    assert staked_ledger.loan.allowances[(OWNER, staking_address)] == 0
    assert staked_ledger.loan.balances[OWNER] == 10 * UNIT


@pytest.mark.asyncio
async def test_unstake_approves_loan_before_unstaking(staked_ledger, manager):
    await manager.unstake()

    calls = staked_ledger.calls
    assert calls.index("loan_token.approve.wait") < calls.index("staking.unstake")
    assert calls.index("staking.unstake.wait") < calls.index("wrapped_token.balance_of")


@pytest.mark.asyncio
async def test_unstake_with_nothing_staked(ledger, manager, sink):
    assert await manager.unstake() is None

    assert "No stakes to unstake" in sink.lines
    assert "loan_token.approve" not in ledger.calls
    assert "staking.unstake" not in ledger.calls


@pytest.mark.asyncio
async def test_insufficient_loan_balance_submits_nothing(staked_ledger, manager):
    staked_ledger.loan.balances[OWNER] = 15 * UNIT

    with pytest.raises(InsufficientLoanBalance) as exc_info:
        await manager.unstake()

    assert str(exc_info.value) == (
        "Insufficient loan token balance, cannot unstake. "
        "Need 20.0 CCLT but only have 15.0 CCLT"
    )
    assert "loan_token.approve" not in staked_ledger.calls
    assert "staking.unstake" not in staked_ledger.calls


@pytest.mark.asyncio
async def test_insufficient_loan_balance_is_not_retried(staked_ledger, manager, sleep):
    staked_ledger.loan.balances[OWNER] = 0

    with pytest.raises(InsufficientLoanBalance):
        await manager.unstake()

    assert sleep.calls == []


@pytest.mark.asyncio
async def test_partial_unstake_burns_proportionally(staked_ledger):
    loan = staked_ledger.loan
    staking = staked_ledger.contract
    burn = predict_burn(UNIT, 2 * UNIT, 20 * UNIT)
    assert burn == 10 * UNIT

    await (await loan.approve(staking.address, burn)).wait()
    await (await staking.unstake(UNIT)).wait()

    assert staking.stakes[OWNER] == (UNIT, 10 * UNIT)
    assert loan.balances[OWNER] == 10 * UNIT


@pytest.mark.asyncio
async def test_query_position(staked_ledger, manager):
    position = await manager.query_position()

    assert position.staked == 2 * UNIT
    assert position.loaned == 20 * UNIT


@pytest.mark.asyncio
async def test_query_position_of_other_address(staked_ledger, manager):
    position = await manager.query_position("0x00000000000000000000000000000000000000e2")

    assert position.is_empty


@pytest.mark.asyncio
async def test_read_failures_exhaust_retries(ledger, manager):
    ledger.fail_next("staking.get_user_stake", ConnectionError("rpc timeout"), times=3)

    with pytest.raises(RetryExhausted):
        await manager.query_position()


def test_predict_loan():
    assert predict_loan(UNIT, 10) == 10 * UNIT


def test_predict_burn_floors():
    assert predict_burn(1, 3, 10) == 3
    assert predict_burn(3, 3, 10) == 10


def test_predict_burn_requires_stake():
    with pytest.raises(ValueError):
        predict_burn(1, 0, 0)
