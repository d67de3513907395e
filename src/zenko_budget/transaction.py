# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from datetime import datetime
from typing import Iterable
from uuid import uuid4

from zenko_budget.types import EntryKind, Transaction, to_local


def signed_amount(kind: EntryKind, amount: int) -> int:
    """
    Turn an unsigned entry amount into a ledger amount.

    Raises ValueError if ``amount`` is not positive or ``kind`` is unknown.
    """
    if amount <= 0:
        raise ValueError(f"Entry amount must be positive, got {amount!r}")
    if kind == "ENTREE":
        return amount
    if kind == "SORTIE":
        return -amount
    raise ValueError(f"Unknown entry kind {kind!r}; expected 'ENTREE' or 'SORTIE'")


def build_transaction(
    envelope_id: str,
    amount: int,
    note: str = "",
    at: datetime | None = None,
    group_id: str | None = None,
) -> Transaction:
    """
    Build a Transaction with a fresh UUID. ``at`` defaults to the creation
    time, which is recorded separately in ``created_at``.
    """
    created_at = datetime.now()
    return Transaction(
        id=str(uuid4()),
        envelope_id=envelope_id,
        amount=amount,
        note=note,
        at=to_local(at) if at is not None else created_at,
        group_id=group_id,
        created_at=created_at,
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    envelope_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Transaction]:
    """
    Keep the transactions of one envelope whose ``at`` falls in the half-open
    range ``[start, end)``. A None bound is not applied.
    Returns a new list; the input is not modified.
    """
    results: list[Transaction] = []
    for transaction in transactions:
        if envelope_id is not None and transaction.envelope_id != envelope_id:
            continue
        if start is not None and transaction.at < start:
            continue
        if end is not None and transaction.at >= end:
            continue
        results.append(transaction)
    return results


def sort_for_display(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first, ties broken by creation time."""
    return sorted(
        transactions,
        key=lambda transaction: (transaction.at, transaction.created_at),
        reverse=True,
    )


def net_amount(transactions: Iterable[Transaction]) -> int:
    """Signed sum of the given transactions."""
    return sum(transaction.amount for transaction in transactions)
