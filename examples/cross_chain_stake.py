"""
Cross-Chain Stake - In-Memory Walkthrough

This example demonstrates:
- Wiring a FerryService from in-memory collaborators
- Streaming live progress lines to an observer while a workflow runs
- Stake, query and unstake payloads as an HTTP front end would return them

## Scenario
An observer subscribes to the live log before anything happens. A
cross-chain stake of 0.5 moves the asset over the simulated bridge,
waits for settlement (shortened to zero here), and stakes everything
that arrived; the staking contract mints 10 loan tokens per staked unit.
A status query follows, then a full unstake returns the loan tokens.
Finally the service is closed, which ends the observer's stream.

## Key Takeaways
- Progress lines reach every subscriber in publish order
- Amounts are decimal strings at the edges and integer base units inside
- The nothing-to-unstake case is an ordinary outcome, not an exception

## Run with
```bash
PYTHONPATH=src python examples/cross_chain_stake.py
```
"""

import asyncio

from pyferry import Credential, FerryService, InMemoryBridge, InMemoryLedger, Settings
from pyferry.broadcast import LogBroadcaster

WALLET = "0x00000000000000000000000000000000000000d1"
SOURCE = "So1anaSource1111111111111111111111111111111"


async def observe(stream):
    async for line in stream:
        print(f"  [live] {line}")


async def main():
    ledger = InMemoryLedger(sender=WALLET, loan_ratio=10)
    bridge = InMemoryBridge(ledger, source_decimals=9)
    broadcaster = LogBroadcaster(mirror_to_logger=False)

    service = FerryService.build(
        bridge,
        ledger,
        source=Credential("Solana", SOURCE),
        destination=Credential("Sepolia", WALLET),
        settings=Settings(settlement_delay_s=0),
        broadcaster=broadcaster,
    )
    await service.start()

    _, stream = service.subscribe()
    observer = asyncio.create_task(observe(stream))

    print("\n=== Cross-chain stake ===")
    print(await service.run_stake("0.5"))

    print("\n=== Status ===")
    print(await service.query_position())

    print("\n=== Unstake ===")
    print(await service.run_unstake())

    print("\n=== Unstake again ===")
    print(await service.run_unstake())

    await service.close()
    await observer


if __name__ == "__main__":
    asyncio.run(main())
