"""
Pytest configuration and fixtures for pyferry tests.

Provides in-memory collaborators, a recording sleep so no test waits in
real time, and pre-wired engine components.
"""

from collections.abc import AsyncIterator

import pytest

from pyferry.broadcast import LogBroadcaster
from pyferry.collaborators import Credential
from pyferry.collaborators.memory import InMemoryBridge, InMemoryLedger
from pyferry.executor import (
    RetryExecutor,
    StakeOperationManager,
    TransferCoordinator,
    WorkflowOrchestrator,
)
from pyferry.models import RetryPolicy

OWNER = "0x00000000000000000000000000000000000000d1"
SOURCE = "So1anaSource1111111111111111111111111111111"

FAST_POLICY = RetryPolicy(
    max_attempts=3, initial_delay_ms=100, max_delay_ms=1000, backoff_multiplier=2.0
)

UNIT = 10**18


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested waits."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingSink:
    """Line sink that keeps every delivered line."""

    def __init__(self):
        self.lines: list[str] = []

    def write(self, line: str) -> None:
        self.lines.append(line)


class FakeRedis:
    """Small in-test double of the redis.asyncio client commands the guard uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.closed = False

    async def set(self, key, value, nx=False, px=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = px
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        return int(key in self.store)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def broadcaster() -> LogBroadcaster:
    return LogBroadcaster()


@pytest.fixture
def sink(broadcaster: LogBroadcaster) -> RecordingSink:
    """Sink attached to the broadcaster before the test runs."""
    recording = RecordingSink()
    broadcaster.attach(recording)
    return recording


@pytest.fixture
def executor(broadcaster: LogBroadcaster, sleep: RecordingSleep) -> RetryExecutor:
    return RetryExecutor(broadcaster, FAST_POLICY, sleep=sleep)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(sender=OWNER, loan_ratio=10)


@pytest.fixture
def bridge(ledger: InMemoryLedger) -> InMemoryBridge:
    return InMemoryBridge(ledger, source_decimals=9)


@pytest.fixture
def source() -> Credential:
    return Credential(chain="Solana", address=SOURCE)


@pytest.fixture
def destination() -> Credential:
    return Credential(chain="Sepolia", address=OWNER)


@pytest.fixture
def coordinator(bridge, source, destination, executor, broadcaster) -> TransferCoordinator:
    return TransferCoordinator(bridge, source, destination, executor, broadcaster)


@pytest.fixture
def manager(ledger, executor, broadcaster) -> StakeOperationManager:
    return StakeOperationManager(ledger, OWNER, executor, broadcaster)


@pytest.fixture
def orchestrator(coordinator, manager, broadcaster, sleep) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(
        coordinator, manager, broadcaster, settlement_delay_s=30, sleep=sleep
    )


@pytest.fixture
async def staked_ledger(ledger: InMemoryLedger, manager: StakeOperationManager) -> AsyncIterator[InMemoryLedger]:
    """Ledger where OWNER has staked 2.0 wrapped units (20.0 loaned)."""
    ledger.wrapped.mint(OWNER, 2 * UNIT)
    await manager.stake_for(OWNER)
    ledger.calls.clear()
    yield ledger
