# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from datetime import datetime

from zenko_budget.cycle import current_window
from zenko_budget.storage.interface import BudgetStorage
from zenko_budget.transaction import net_amount
from zenko_budget.types import BalanceSnapshot, Envelope, Transaction, Window


def available_balance(envelope: Envelope, transactions: list[Transaction]) -> int:
    """``base + carry`` plus the net of the in-progress window's transactions."""
    return envelope.base + envelope.carry + net_amount(transactions)


def build_balance(
    envelope: Envelope,
    window: Window,
    transactions: list[Transaction],
) -> BalanceSnapshot:
    """
    Derive a BalanceSnapshot from an envelope and its current window's
    transactions.

    The snapshot is point-in-time. ``carry`` only covers fully elapsed
    cycles, so callers should roll the envelope before projecting.
    """
    return BalanceSnapshot(
        envelope_id=envelope.id,
        name=envelope.name,
        period=envelope.period,
        base=envelope.base,
        carry=envelope.carry,
        window_net=net_amount(transactions),
        available=available_balance(envelope, transactions),
        window_start=window.start,
        window_next=window.next,
        transaction_count=len(transactions),
    )


async def project_balance(
    storage: BudgetStorage,
    owner_id: str,
    envelope: Envelope,
    now: datetime | None = None,
) -> BalanceSnapshot:
    """Query the current window of ``envelope`` and build its snapshot."""
    window = current_window(envelope, now)
    start, end = window.query_bounds()
    transactions = await storage.query_transactions(owner_id, envelope.id, start, end)
    return build_balance(envelope, window, transactions)
