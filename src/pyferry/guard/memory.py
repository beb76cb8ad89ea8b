"""In-process in-flight guard."""

from __future__ import annotations

import asyncio

from uuid_extensions import uuid7

from pyferry.guard.base import InFlightGuard


class MemoryInFlightGuard(InFlightGuard):
    """Guard backed by a dict of held keys.

    Instance is immediately usable after __init__.
    """

    def __init__(self):
        self._held: dict[str, str] = {}
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"MemoryInFlightGuard(held={len(self._held)})"

    async def try_acquire(self, key: str) -> str | None:
        key = self.normalize(key)
        async with self._lock:
            if key in self._held:
                return None
            token = str(uuid7())
            self._held[key] = token
            return token

    async def release(self, key: str, token: str) -> None:
        key = self.normalize(key)
        async with self._lock:
            if self._held.get(key) == token:
                del self._held[key]

    async def is_held(self, key: str) -> bool:
        key = self.normalize(key)
        async with self._lock:
            return key in self._held
