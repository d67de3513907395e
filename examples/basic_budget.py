# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
basic_budget.py

Walks one weekly envelope through two cycles:
  1. Create the envelope on a Monday.
  2. Record expenses and an income during the first week.
  3. Open it the next Monday: the leftover is folded into the carry.
  4. Print the current window and its balance.

Amounts are in cents.

Run with:  python examples/basic_budget.py
(from the repository root with zenko-budget installed)
"""

import asyncio
from datetime import datetime, timedelta

from zenko_budget import EnvelopeBudget, EnvelopeConfig

OWNER = "uid-demo"
MONDAY = datetime(2026, 10, 19, 9, 0)


def euros(cents: int) -> str:
    return f"{cents / 100:>9.2f} EUR"


async def main() -> None:
    budget = EnvelopeBudget()

    # ─── Setup ────────────────────────────────────────────────────────────────

    food = await budget.create_envelope(
        OWNER,
        EnvelopeConfig(name="Food", base=10_000, period="weekly", reset_dow=1),
        now=MONDAY,
    )

    # ─── First week ───────────────────────────────────────────────────────────

    await budget.record_entry(OWNER, food.id, "SORTIE", 2_000, note="Market", at=MONDAY + timedelta(days=1))
    await budget.record_entry(OWNER, food.id, "SORTIE", 500, note="Bakery", at=MONDAY + timedelta(days=3))
    await budget.record_entry(OWNER, food.id, "ENTREE", 1_000, note="Refund", at=MONDAY + timedelta(days=4))

    first_week = await budget.balance(OWNER, food.id, now=MONDAY + timedelta(days=5))
    print(f"Week 1 available : {euros(first_week.available)}")

    # ─── Next Monday ──────────────────────────────────────────────────────────

    view = await budget.activate(OWNER, food.id, now=MONDAY + timedelta(days=7))

    print("\n── Envelope after rollover ───────────────────────────")
    print(f"  Name        : {view.envelope.name}")
    print(f"  Window      : {view.window.start:%Y-%m-%d} -> {view.window.next:%Y-%m-%d}")
    print(f"  Cycles      : {view.rollover.cycles if view.rollover else 0}")
    print(f"  Base        : {euros(view.envelope.base)}")
    print(f"  Carry       : {euros(view.envelope.carry)}")
    print(f"  Available   : {euros(view.balance.available)}")
    print("──────────────────────────────────────────────────────")


if __name__ == "__main__":
    asyncio.run(main())
