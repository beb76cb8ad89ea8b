"""Tests for WorkflowOrchestrator composition, validation and exclusion."""

import asyncio

import pytest

from pyferry.errors import InvalidAmount, OperationInProgress, RetryExhausted
from pyferry.executor import WorkflowOrchestrator, validate_amount
from pyferry.guard import MemoryInFlightGuard
from pyferry.models import NothingToUnstake, Unstaked, is_nothing_to_unstake, is_unstaked

from conftest import OWNER, SOURCE, UNIT


@pytest.mark.asyncio
async def test_cross_chain_stake(orchestrator, ledger, sleep):
    combined = await orchestrator.stake_cross_chain("1.0")

    assert combined.transfer.source_address == SOURCE
    assert combined.transfer.destination_address == OWNER
    assert combined.transfer.amount == "1.0"
    assert combined.staked
    assert combined.staking.staked == UNIT
    assert combined.staking.loaned == 10 * UNIT
    assert sleep.calls == [30]
    assert combined.to_dict()["stakedAmount"] == "1.0"
    assert combined.to_dict()["loanedAmount"] == "10.0"


@pytest.mark.asyncio
async def test_settlement_wait_between_transfer_and_staking(orchestrator, sink):
    await orchestrator.stake_cross_chain("0.01")

    transferred = next(
        i for i, line in enumerate(sink.lines) if line.startswith("Cross-chain transfer completed, hash")
    )
    waiting = sink.lines.index("Waiting 30 seconds to ensure assets have arrived...")
    staking = sink.lines.index("Starting staking operation...")
    assert transferred < waiting < staking
    assert sink.lines[-1] == "The entire cross-chain staking process has been completed!"


@pytest.mark.asyncio
async def test_nothing_arrived_is_still_success(orchestrator, bridge, ledger):
    bridge.credit = lambda account, amount: None

    combined = await orchestrator.stake_cross_chain("0.01")

    assert combined.staking is None
    assert not combined.staked
    assert combined.to_dict()["stakedAmount"] is None
    assert "staking.stake" not in ledger.calls


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "amount", ["", "   ", "abc", "0", "-1", "NaN", "inf", "1e999999", "1e78", None, 5]
)
async def test_invalid_amount_rejected_before_any_call(orchestrator, bridge, ledger, amount):
    with pytest.raises(InvalidAmount):
        await orchestrator.stake_cross_chain(amount)

    assert bridge.calls == []
    assert ledger.calls == []


@pytest.mark.asyncio
async def test_failure_is_published_with_context(orchestrator, sink):
    with pytest.raises(InvalidAmount):
        await orchestrator.stake_cross_chain("abc")

    assert sink.lines[-1].startswith(
        "Cross-chain staking operation failed (amount='abc'): InvalidAmount: "
    )


@pytest.mark.asyncio
async def test_transfer_failure_skips_staking(orchestrator, bridge, ledger, sleep):
    bridge.fail_next("initiate", ConnectionError("rpc timeout"), times=3)

    with pytest.raises(RetryExhausted):
        await orchestrator.stake_cross_chain("0.01")

    assert ledger.calls == []
    assert 30 not in sleep.calls


@pytest.mark.asyncio
async def test_unstake_outcome(staked_ledger, orchestrator):
    outcome = await orchestrator.unstake()

    assert isinstance(outcome, Unstaked)
    assert is_unstaked(outcome)
    assert outcome.result.withdrawn_amount == "2.0"


@pytest.mark.asyncio
async def test_nothing_to_unstake_outcome(orchestrator, ledger):
    outcome = await orchestrator.unstake()

    assert isinstance(outcome, NothingToUnstake)
    assert is_nothing_to_unstake(outcome)
    assert outcome.message == "No stakes to unstake"
    assert "loan_token.approve" not in ledger.calls


@pytest.mark.asyncio
async def test_overlapping_workflows_are_rejected(orchestrator):
    results = await asyncio.gather(
        orchestrator.stake_cross_chain("0.01"),
        orchestrator.stake_cross_chain("0.01"),
        return_exceptions=True,
    )

    assert sum(isinstance(r, OperationInProgress) for r in results) == 1
    assert sum(not isinstance(r, BaseException) for r in results) == 1


@pytest.mark.asyncio
async def test_unstake_rejected_while_stake_in_flight(coordinator, manager, broadcaster, sleep):
    guard = MemoryInFlightGuard()
    orchestrator = WorkflowOrchestrator(
        coordinator, manager, broadcaster, guard=guard, sleep=sleep
    )
    token = await guard.try_acquire(OWNER)

    with pytest.raises(OperationInProgress):
        await orchestrator.unstake()

    await guard.release(OWNER, token)
    assert isinstance(await orchestrator.unstake(), NothingToUnstake)


@pytest.mark.asyncio
async def test_guard_released_after_failure(orchestrator):
    with pytest.raises(InvalidAmount):
        await orchestrator.stake_cross_chain("abc")

    combined = await orchestrator.stake_cross_chain("0.01")
    assert combined.staked


@pytest.mark.asyncio
async def test_query_position(staked_ledger, orchestrator):
    position = await orchestrator.query_position()

    assert position.to_dict() == {"stakedAmount": "2.0", "loanedAmount": "20.0"}


@pytest.mark.asyncio
async def test_query_failure_is_published(orchestrator, ledger, sink):
    ledger.fail_next("staking.get_user_stake", ConnectionError("rpc timeout"), times=3)

    with pytest.raises(RetryExhausted):
        await orchestrator.query_position()

    assert sink.lines[-1].startswith(f"Failed to query staking status for {OWNER}")


@pytest.mark.parametrize("amount,expected", [("0.01", "0.01"), (" 2 ", "2"), ("1e-3", "1e-3")])
def test_validate_amount(amount, expected):
    assert validate_amount(amount) == expected
