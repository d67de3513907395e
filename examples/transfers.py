# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
transfers.py

Moves money between envelopes and keeps the store in a JSON file:
  - Food      (weekly, resets on Monday)
  - Rent      (monthly, resets on the 31st, clamped in short months)
  - Holidays  (once, never resets)

Shows that a transfer is a pair of linked transactions, and that editing
or deleting either leg acts on both.

Run with:  python examples/transfers.py
(from the repository root with zenko-budget installed)
"""

import asyncio
import tempfile
from pathlib import Path

from zenko_budget import EnvelopeBudget, EnvelopeConfig, FileStorage, TransactionUpdate

OWNER = "uid-demo"


async def main() -> None:
    with tempfile.TemporaryDirectory() as directory:
        storage = FileStorage(Path(directory) / "budget.json")
        budget = EnvelopeBudget(storage=storage)

        # ─── Setup ────────────────────────────────────────────────────────────

        food = await budget.create_envelope(
            OWNER, EnvelopeConfig(name="Food", base=10_000, period="weekly", reset_dow=1)
        )
        rent = await budget.create_envelope(
            OWNER, EnvelopeConfig(name="Rent", base=90_000, period="monthly", reset_dom=31)
        )
        holidays = await budget.create_envelope(
            OWNER, EnvelopeConfig(name="Holidays", base=50_000, period="once")
        )

        # ─── Transfer and edit ────────────────────────────────────────────────

        pair = await budget.transfer(OWNER, rent.id, holidays.id, 15_000, "Savings")
        print(f"Outgoing leg : {pair.outgoing.amount:>7}  {pair.outgoing.note}")
        print(f"Incoming leg : {pair.incoming.amount:>7}  {pair.incoming.note}")

        await budget.update_transaction(OWNER, pair.incoming.id, TransactionUpdate(amount=12_000))
        edited = await budget.get_transfer(OWNER, pair.group_id)
        print(f"After edit   : {edited.amount} moved from {edited.from_id[:8]} to {edited.to_id[:8]}")

        # ─── Balances ─────────────────────────────────────────────────────────

        print("\n── Balances ──────────────────────────────────────────")
        for envelope in await budget.list_envelopes(OWNER):
            snapshot = await budget.balance(OWNER, envelope.id)
            print(f"  {envelope.name:<10} {envelope.period:<9} {snapshot.available / 100:>10.2f}")
        print("──────────────────────────────────────────────────────")

        removed = await budget.delete_transaction(OWNER, edited.outgoing.id)
        print(f"\nDeleting one leg removed {removed} transactions.")
        print(f"Food is untouched: {(await budget.balance(OWNER, food.id)).available / 100:.2f}")
        print(f"Store written to {storage.file_path.name}")


if __name__ == "__main__":
    asyncio.run(main())
