"""
Failure Modes - Retry, Relayer Completion and Permanent Errors

This example demonstrates:
- Transient RPC failures retried with exponential backoff
- A relayer that already completed the transfer, reported as success
- An automatic transfer whose fee exceeds the amount, rejected before submission
- Insufficient loan tokens, which fails the unstake without retrying
- Overlapping workflows for one wallet rejected by the in-flight guard

## Scenario
Each case builds a fresh in-memory ledger and bridge, injects one kind
of failure, and prints what the service reports. Backoff waits use a
short policy so the whole run finishes in about a second.

## Run with
```bash
PYTHONPATH=src python examples/failure_modes.py
```
"""

import asyncio
import logging

from pyferry import (
    Credential,
    FerryService,
    InMemoryBridge,
    InMemoryLedger,
    LogBroadcaster,
    Settings,
)

WALLET = "0x00000000000000000000000000000000000000d1"
SOURCE = "So1anaSource1111111111111111111111111111111"

FAST = Settings(
    settlement_delay_s=0,
    retry_max_attempts=3,
    retry_initial_delay_ms=100,
    retry_max_delay_ms=400,
    retry_backoff=2.0,
)


def build(bridge_options=None, settings=FAST):
    ledger = InMemoryLedger(sender=WALLET)
    bridge = InMemoryBridge(ledger, **(bridge_options or {}))
    service = FerryService.build(
        bridge,
        ledger,
        source=Credential("Solana", SOURCE),
        destination=Credential("Sepolia", WALLET),
        settings=settings,
        broadcaster=LogBroadcaster(),
    )
    return service, bridge, ledger


async def transient_failures():
    print("\n=== Transient initiate failures ===")
    service, bridge, _ = build()
    bridge.fail_next("initiate", ConnectionError("rpc timeout"), times=2)
    result = await service.run_stake("0.01")
    print(f"success={result['success']} initiate calls={bridge.calls.count('initiate')}")


async def relayer_completed():
    print("\n=== Relayer already completed ===")
    service, _, _ = build({"relayer_completes": True})
    result = await service.run_stake("0.01")
    print(f"success={result['success']} staked={result['stakedAmount']}")


async def fee_exceeds_amount():
    print("\n=== Fee exceeds amount ===")
    settings = Settings(settlement_delay_s=0, automatic=True)
    service, bridge, _ = build({"relayer_fee": 10**7}, settings)
    result = await service.run_stake("0.001")
    print(f"{result['error']}: {result['message']}")
    print(f"initiate called: {'initiate' in bridge.calls}")


async def insufficient_loan():
    print("\n=== Insufficient loan balance ===")
    service, _, ledger = build()
    await service.run_stake("1.0")
    ledger.loan.balances[WALLET] //= 2
    result = await service.run_unstake()
    print(f"{result['error']}: {result['message']}")


async def overlapping():
    print("\n=== Overlapping workflows ===")
    service, _, _ = build()
    first, second = await asyncio.gather(service.run_stake("0.01"), service.run_stake("0.01"))
    print(f"first success={first['success']}")
    print(f"second status={second['status']} ({second['error']})")


async def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    await transient_failures()
    await relayer_completed()
    await fee_exceeds_amount()
    await insufficient_loan()
    await overlapping()


if __name__ == "__main__":
    asyncio.run(main())
