"""Settings read from the environment.

All values have reference-deployment defaults except the signing key,
which is only demanded when something needs to sign
(``Settings.require_private_key()``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from pyferry.errors import MissingCredential
from pyferry.models import RetryPolicy

__all__ = ["Settings"]

DEFAULT_STAKING_CONTRACT = "0xfb06c3cd43d8b15c580a196e12ba80d42ffc02cd"
DEFAULT_LOAN_TOKEN = "0x8c25f65249f568033697a5d06f907f4dafafdeb5"
DEFAULT_WRAPPED_TOKEN = "0x824CB8fC742F8D3300d29f16cA8beE94471169f5"


def _number(env: dict[str, str], name: str, default: float, cast=float):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _flag(env: dict[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """Connection and timing configuration.

    Usage:
        settings = Settings.from_env()
        policy = settings.retry_policy()
    """

    eth_private_key: str | None = field(default=None, repr=False)
    eth_rpc_url: str | None = None
    staking_contract_address: str = DEFAULT_STAKING_CONTRACT
    loan_token_address: str = DEFAULT_LOAN_TOKEN
    wrapped_token_address: str = DEFAULT_WRAPPED_TOKEN
    attestation_timeout_s: float = 60.0
    settlement_delay_s: float = 30.0
    retry_max_attempts: int = RetryPolicy.BRIDGE.max_attempts
    retry_initial_delay_ms: int = RetryPolicy.BRIDGE.initial_delay_ms
    retry_max_delay_ms: int = RetryPolicy.BRIDGE.max_delay_ms
    retry_backoff: float = RetryPolicy.BRIDGE.backoff_multiplier
    automatic: bool = False
    redis_url: str | None = None

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> Settings:
        """Load settings from ``env`` (``os.environ`` by default).

        Raises:
            ValueError: A numeric variable does not parse
        """
        env = dict(os.environ if env is None else env)
        settings = cls(
            eth_private_key=env.get("ETH_PRIVATE_KEY") or None,
            eth_rpc_url=env.get("ETH_RPC_URL") or env.get("NEXT_PUBLIC_ETH_RPC_URL") or None,
            staking_contract_address=env.get("STAKING_CONTRACT_ADDRESS", DEFAULT_STAKING_CONTRACT),
            loan_token_address=env.get("LOAN_TOKEN_ADDRESS", DEFAULT_LOAN_TOKEN),
            wrapped_token_address=env.get("WRAPPED_TOKEN_ADDRESS", DEFAULT_WRAPPED_TOKEN),
            attestation_timeout_s=_number(env, "FERRY_ATTESTATION_TIMEOUT", 60.0),
            settlement_delay_s=_number(env, "FERRY_SETTLEMENT_DELAY", 30.0),
            retry_max_attempts=_number(
                env, "FERRY_RETRY_MAX_ATTEMPTS", RetryPolicy.BRIDGE.max_attempts, int
            ),
            retry_initial_delay_ms=_number(
                env, "FERRY_RETRY_INITIAL_DELAY_MS", RetryPolicy.BRIDGE.initial_delay_ms, int
            ),
            retry_max_delay_ms=_number(
                env, "FERRY_RETRY_MAX_DELAY_MS", RetryPolicy.BRIDGE.max_delay_ms, int
            ),
            retry_backoff=_number(
                env, "FERRY_RETRY_BACKOFF", RetryPolicy.BRIDGE.backoff_multiplier
            ),
            automatic=_flag(env, "FERRY_AUTOMATIC"),
            redis_url=env.get("REDIS_URL") or None,
        )
        # Fail at load time rather than on the first retry
        settings.retry_policy()
        return settings

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            initial_delay_ms=self.retry_initial_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
            backoff_multiplier=self.retry_backoff,
        )

    def require_private_key(self) -> str:
        if not self.eth_private_key:
            raise MissingCredential("ETH_PRIVATE_KEY")
        return self.eth_private_key

    def require_rpc_url(self) -> str:
        if not self.eth_rpc_url:
            raise MissingCredential("ETH_RPC_URL")
        return self.eth_rpc_url
