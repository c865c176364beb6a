"""
Run a batch of flips through the in-memory ledger and the oracle resolver.

Handy for eyeballing the heads/tails split and the house edge without a chain:
  python scripts/simulate_flips.py --flips 500 --amount 100
"""

import argparse
import asyncio
import os
import secrets
import sys

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, project_root)

from eth_account import Account

from flip_oracle.config import OracleConfig, SweepConfig
from flip_oracle.core.ledger.base import Side
from flip_oracle.core.ledger.memory import MemoryLedger
from flip_oracle.core.resolver import OracleResolver
from flip_oracle.core.settlement import SettlementWatcher


async def simulate(flips: int, amount: int, players: int) -> dict:
    oracle = Account.create()
    config = OracleConfig(
        rpc_url="memory://",
        signing_key=oracle.key.hex(),
        contract_address="0x" + "00" * 20,
        server_secret=secrets.token_hex(32),
        ledger_backend="memory",
    )
    sweep = SweepConfig(batch_size=flips, delay_seconds=0, block_window=flips * 4 + 10)
    resolver = OracleResolver(config, sweep)
    ledger: MemoryLedger = resolver.ledger
    watcher = SettlementWatcher(ledger)

    accounts = [Account.create() for _ in range(players)]
    for i in range(flips):
        guess = Side.HEADS if secrets.randbits(1) == 0 else Side.TAILS
        await watcher.place_bet(accounts[i % players], guess, amount)

    report = await resolver.sweep()

    heads = sum(1 for e in ledger.resolved_events if e.outcome == Side.HEADS)
    wagered = sum(e.amount_in for e in ledger.resolved_events)
    paid = sum(e.payout_total for e in ledger.resolved_events)
    return {
        "resolved": report.resolved,
        "heads_fraction": heads / max(len(ledger.resolved_events), 1),
        "wins": sum(1 for e in ledger.resolved_events if e.won),
        "wagered": wagered,
        "paid": paid,
        "house_pnl": wagered - paid,
    }


def main():
    parser = argparse.ArgumentParser(description="Simulate coin flips against the in-memory ledger")
    parser.add_argument("--flips", type=int, default=200)
    parser.add_argument("--amount", type=int, default=100)
    parser.add_argument("--players", type=int, default=5)
    args = parser.parse_args()

    summary = asyncio.run(simulate(args.flips, args.amount, args.players))
    for key, value in summary.items():
        print(f"{key:<15} {value}")


if __name__ == "__main__":
    main()
