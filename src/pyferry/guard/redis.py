"""Redis-backed in-flight guard.

Lets several processes that sign with the same credential exclude each
other. Data structures:
- pyferry:inflight:{key} (STRING): token of the current holder, with a TTL
  so a crashed holder cannot keep the slot forever

Key Features:
- Acquire: SET NX PX, one round trip
- Release: compare-and-delete Lua script, so a holder whose slot expired
  never frees a newer holder's slot
"""

from __future__ import annotations

from uuid_extensions import uuid7

try:
    import redis.asyncio as redis
except ImportError:
    raise ImportError("redis-py is required for RedisInFlightGuard. Install with: pip install redis")

from pyferry.guard.base import InFlightGuard

# Cross-chain stake takes minutes (attestation, settlement, confirmations)
DEFAULT_TTL_MS = 15 * 60 * 1000

_RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class RedisInFlightGuard(InFlightGuard):
    """In-flight guard using a Redis key per credential.

    Usage:
        guard = RedisInFlightGuard("redis://localhost:6379")
        await guard.connect()

        async with guard.hold(wallet_address):
            ...

        await guard.close()
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        ttl_ms: int = DEFAULT_TTL_MS,
        client: redis.Redis | None = None,
    ):
        """Initialize the guard.

        Args:
            redis_url: Redis connection URL
            ttl_ms: Slot expiry in milliseconds
            client: Pre-built client; skips connect()
        """
        self._redis_url = redis_url
        self._ttl_ms = ttl_ms
        self._redis: redis.Redis | None = client

    async def connect(self) -> None:
        """Establish the Redis connection pool."""
        if self._redis is None:
            self._redis = redis.from_url(self._redis_url, decode_responses=True)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _client(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._redis

    @staticmethod
    def _key(key: str) -> str:
        return f"pyferry:inflight:{InFlightGuard.normalize(key)}"

    async def try_acquire(self, key: str) -> str | None:
        token = str(uuid7())
        acquired = await self._client().set(self._key(key), token, nx=True, px=self._ttl_ms)
        return token if acquired else None

    async def release(self, key: str, token: str) -> None:
        await self._client().eval(_RELEASE_SCRIPT, 1, self._key(key), token)

    async def is_held(self, key: str) -> bool:
        return bool(await self._client().exists(self._key(key)))
