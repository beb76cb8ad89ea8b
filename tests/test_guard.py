"""Tests for in-flight guards (memory and Redis)."""

import asyncio

import pytest

from pyferry.errors import OperationInProgress
from pyferry.guard import MemoryInFlightGuard
from pyferry.guard.redis import RedisInFlightGuard

from conftest import FakeRedis

WALLET = "0x00000000000000000000000000000000000000D1"

@pytest.fixture(params=["memory", "redis"])
def guard(request):
    if request.param == "memory":
        return MemoryInFlightGuard()
    return RedisInFlightGuard(client=FakeRedis())

@pytest.mark.asyncio
async def test_single_holder(guard):
    token = await guard.try_acquire(WALLET)

    assert token is not None
    assert await guard.is_held(WALLET)
    assert await guard.try_acquire(WALLET) is None

@pytest.mark.asyncio
async def test_release_frees_slot(guard):
    token = await guard.try_acquire(WALLET)
    await guard.release(WALLET, token)

    assert not await guard.is_held(WALLET)
    assert await guard.try_acquire(WALLET) is not None

@pytest.mark.asyncio
async def test_stale_token_does_not_release(guard):
    token = await guard.try_acquire(WALLET)

    await guard.release(WALLET, "not-the-holder")

    assert await guard.is_held(WALLET)
    await guard.release(WALLET, token)

@pytest.mark.asyncio
async def test_keys_are_independent(guard):
    assert await guard.try_acquire(WALLET) is not None
    assert await guard.try_acquire("0x00000000000000000000000000000000000000e2") is not None

@pytest.mark.asyncio
async def test_hold_rejects_overlap(guard):
    async with guard.hold(WALLET):
        with pytest.raises(OperationInProgress) as exc_info:
            async with guard.hold(WALLET):
                pass
        assert exc_info.value.key == WALLET

    assert not await guard.is_held(WALLET)

@pytest.mark.asyncio
async def test_hold_releases_on_error(guard):
    with pytest.raises(RuntimeError):
        async with guard.hold(WALLET):
            raise RuntimeError("workflow failed")

    assert not await guard.is_held(WALLET)

@pytest.mark.asyncio
async def test_address_case_is_normalized(guard):
    token = await guard.try_acquire(WALLET)

    assert token is not None
    assert await guard.try_acquire(WALLET.lower()) is None
    assert await guard.is_held(WALLET.lower())
    with pytest.raises(OperationInProgress):
        async with guard.hold(WALLET.upper().replace("0X", "0x")):
            pass

    await guard.release(WALLET.lower(), token)
    assert not await guard.is_held(WALLET)

@pytest.mark.asyncio
async def test_concurrent_acquire_single_winner(guard):
    tokens = await asyncio.gather(*(guard.try_acquire(WALLET) for _ in range(10)))

    assert sum(t is not None for t in tokens) == 1

@pytest.mark.asyncio
async def test_redis_key_and_ttl():
    client = FakeRedis()
    guard = RedisInFlightGuard(client=client, ttl_ms=5_000)

    await guard.try_acquire(WALLET)

    key = f"pyferry:inflight:{WALLET.lower()}"
    assert key in client.store
    assert client.ttls[key] == 5_000

@pytest.mark.asyncio
async def test_redis_requires_connection():
    guard = RedisInFlightGuard()

    with pytest.raises(RuntimeError, match="Not connected"):
        await guard.try_acquire(WALLET)

@pytest.mark.asyncio
async def test_redis_close():
    client = FakeRedis()
    guard = RedisInFlightGuard(client=client)

    await guard.close()

    assert client.closed
    with pytest.raises(RuntimeError):
        await guard.is_held(WALLET)
