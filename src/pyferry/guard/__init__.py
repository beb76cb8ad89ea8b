"""Per-credential in-flight guards.

    - InFlightGuard: abstract interface
    - MemoryInFlightGuard: single-process guard
    - RedisInFlightGuard: cross-process guard
"""

from pyferry.guard.base import InFlightGuard
from pyferry.guard.memory import MemoryInFlightGuard


def __getattr__(name: str):
    """Lazy import the Redis guard so redis is only needed when used."""
    if name == "RedisInFlightGuard":
        from pyferry.guard.redis import RedisInFlightGuard

        return RedisInFlightGuard
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["InFlightGuard", "MemoryInFlightGuard", "RedisInFlightGuard"]
