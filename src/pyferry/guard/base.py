"""
InFlightGuard - per-credential mutual exclusion for workflows.

Two workflows signing with the same credential would race at the
contract layer (nonces, allowances, balances). A guard hands out one
slot per key for the duration of one workflow; an overlapping request
is rejected with OperationInProgress rather than queued.

Design Pattern: Adapter Pattern
MemoryInFlightGuard serves a single process; RedisInFlightGuard extends
the same exclusion across processes sharing one Redis.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from pyferry.errors import OperationInProgress


class InFlightGuard(ABC):
    """Single-slot lock keyed by credential address."""

    @staticmethod
    def normalize(key: str) -> str:
        """Canonical form of ``key``. Addresses compare case-insensitively."""
        return key.lower()

    @abstractmethod
    async def try_acquire(self, key: str) -> str | None:
        """Take the slot for ``key``.

        Returns:
            A release token, or None if the slot is already held
        """

    @abstractmethod
    async def release(self, key: str, token: str) -> None:
        """Free the slot if ``token`` still owns it."""

    @abstractmethod
    async def is_held(self, key: str) -> bool: ...

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the slot for ``key`` for the body of the ``async with``.

        Raises:
            OperationInProgress: The slot is already held
        """
        token = await self.try_acquire(key)
        if token is None:
            raise OperationInProgress(key)
        try:
            yield
        finally:
            await self.release(key, token)
