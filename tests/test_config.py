"""Tests for Settings loading."""

import pytest

from pyferry.config import DEFAULT_STAKING_CONTRACT, Settings
from pyferry.errors import MissingCredential
from pyferry.models import RetryPolicy


def test_defaults():
    settings = Settings.from_env({})

    assert settings.eth_private_key is None
    assert settings.staking_contract_address == DEFAULT_STAKING_CONTRACT
    assert settings.attestation_timeout_s == 60.0
    assert settings.settlement_delay_s == 30.0
    assert settings.automatic is False
    assert settings.redis_url is None
    assert settings.retry_policy() == RetryPolicy.BRIDGE


def test_values_from_env():
    settings = Settings.from_env(
        {
            "ETH_PRIVATE_KEY": "0xkey",
            "ETH_RPC_URL": "https://rpc.example",
            "FERRY_SETTLEMENT_DELAY": "5",
            "FERRY_RETRY_MAX_ATTEMPTS": "2",
            "FERRY_RETRY_BACKOFF": "3",
            "REDIS_URL": "redis://cache:6379",
        }
    )

    assert settings.require_private_key() == "0xkey"
    assert settings.require_rpc_url() == "https://rpc.example"
    assert settings.settlement_delay_s == 5.0
    assert settings.retry_policy().max_attempts == 2
    assert settings.retry_policy().backoff_multiplier == 3.0
    assert settings.redis_url == "redis://cache:6379"


def test_public_rpc_url_fallback():
    settings = Settings.from_env({"NEXT_PUBLIC_ETH_RPC_URL": "https://public.example"})

    assert settings.eth_rpc_url == "https://public.example"


def test_missing_private_key():
    with pytest.raises(MissingCredential, match="Missing ETH_PRIVATE_KEY environment variable"):
        Settings.from_env({}).require_private_key()


def test_missing_rpc_url():
    with pytest.raises(MissingCredential):
        Settings().require_rpc_url()


def test_non_numeric_value_rejected():
    with pytest.raises(ValueError, match="FERRY_ATTESTATION_TIMEOUT"):
        Settings.from_env({"FERRY_ATTESTATION_TIMEOUT": "soon"})


def test_invalid_retry_policy_rejected_at_load():
    with pytest.raises(ValueError):
        Settings.from_env({"FERRY_RETRY_MAX_ATTEMPTS": "0"})


def test_private_key_not_in_repr():
    settings = Settings(eth_private_key="0xsecret")

    assert "0xsecret" not in repr(settings)


@pytest.mark.parametrize(
    "raw,expected",
    [("1", True), ("true", True), ("YES", True), ("0", False), ("", False)],
)
def test_automatic_flag(raw, expected):
    assert Settings.from_env({"FERRY_AUTOMATIC": raw}).automatic is expected
