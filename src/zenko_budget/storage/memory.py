# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from datetime import datetime
from typing import Any

from zenko_budget.errors import EnvelopeNotFoundError, TransactionNotFoundError
from zenko_budget.storage.interface import (
    BudgetStorage,
    apply_envelope_changes,
    apply_rollover_patch,
)
from zenko_budget.transaction import filter_transactions
from zenko_budget.types import Envelope, RolloverPatch, Transaction


class MemoryStorage(BudgetStorage):
    """
    In-process memory store, suitable for single-process use and testing.

    All state is lost when the process exits. No method awaits anything, so
    each call runs to completion without interleaving and is atomic.
    """

    def __init__(self) -> None:
        self._envelopes: dict[str, dict[str, Envelope]] = {}
        self._transactions: dict[str, dict[str, Transaction]] = {}

    def _owner_envelopes(self, owner_id: str) -> dict[str, Envelope]:
        return self._envelopes.setdefault(owner_id, {})

    def _owner_transactions(self, owner_id: str) -> dict[str, Transaction]:
        return self._transactions.setdefault(owner_id, {})

    def _require_envelope(self, owner_id: str, envelope_id: str) -> Envelope:
        envelope = self._owner_envelopes(owner_id).get(envelope_id)
        if envelope is None:
            raise EnvelopeNotFoundError(envelope_id)
        return envelope

    # ─── Envelopes ────────────────────────────────────────────────────────────

    async def get_envelope(self, owner_id: str, envelope_id: str) -> Envelope | None:
        envelope = self._owner_envelopes(owner_id).get(envelope_id)
        return envelope.model_copy(deep=True) if envelope is not None else None

    async def list_envelopes(self, owner_id: str) -> list[Envelope]:
        envelopes = sorted(self._owner_envelopes(owner_id).values(), key=lambda e: e.order)
        return [envelope.model_copy(deep=True) for envelope in envelopes]

    async def insert_envelope(self, owner_id: str, envelope: Envelope) -> None:
        envelopes = self._owner_envelopes(owner_id)
        if envelope.id in envelopes:
            raise ValueError(f"Envelope '{envelope.id}' already exists")
        envelopes[envelope.id] = envelope.model_copy(deep=True)

    async def update_envelope(
        self,
        owner_id: str,
        envelope_id: str,
        changes: dict[str, Any],
        expected_last_reset_at: datetime | None = None,
    ) -> Envelope:
        updated = apply_envelope_changes(
            self._require_envelope(owner_id, envelope_id), changes, expected_last_reset_at
        )
        self._owner_envelopes(owner_id)[envelope_id] = updated
        return updated.model_copy(deep=True)

    async def delete_envelope(self, owner_id: str, envelope_id: str) -> int:
        self._require_envelope(owner_id, envelope_id)
        transactions = self._owner_transactions(owner_id)
        doomed = [tid for tid, t in transactions.items() if t.envelope_id == envelope_id]
        for transaction_id in doomed:
            del transactions[transaction_id]
        del self._owner_envelopes(owner_id)[envelope_id]
        return len(doomed)

    async def set_envelope_orders(self, owner_id: str, orders: dict[str, int]) -> None:
        for envelope_id in orders:
            self._require_envelope(owner_id, envelope_id)
        envelopes = self._owner_envelopes(owner_id)
        for envelope_id, order in orders.items():
            envelopes[envelope_id] = envelopes[envelope_id].model_copy(update={"order": order})

    # ─── Rollover ─────────────────────────────────────────────────────────────

    async def persist_envelope_rollover(
        self,
        owner_id: str,
        envelope_id: str,
        patch: RolloverPatch,
        expected_last_reset_at: datetime,
    ) -> Envelope:
        current = self._require_envelope(owner_id, envelope_id)
        updated = apply_rollover_patch(current, patch, expected_last_reset_at)
        self._owner_envelopes(owner_id)[envelope_id] = updated
        return updated.model_copy(deep=True)

    # ─── Transactions ─────────────────────────────────────────────────────────

    async def query_transactions(
        self,
        owner_id: str,
        envelope_id: str,
        start: datetime | None,
        end: datetime | None,
    ) -> list[Transaction]:
        matches = filter_transactions(
            self._owner_transactions(owner_id).values(),
            envelope_id=envelope_id,
            start=start,
            end=end,
        )
        return [transaction.model_copy(deep=True) for transaction in matches]

    async def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction | None:
        transaction = self._owner_transactions(owner_id).get(transaction_id)
        return transaction.model_copy(deep=True) if transaction is not None else None

    async def save_transaction(self, owner_id: str, transaction: Transaction) -> None:
        self._require_envelope(owner_id, transaction.envelope_id)
        self._owner_transactions(owner_id)[transaction.id] = transaction.model_copy(deep=True)

    async def delete_transaction(self, owner_id: str, transaction_id: str) -> None:
        if self._owner_transactions(owner_id).pop(transaction_id, None) is None:
            raise TransactionNotFoundError(transaction_id)

    # ─── Transaction groups ───────────────────────────────────────────────────

    async def get_transaction_group(self, owner_id: str, group_id: str) -> list[Transaction]:
        return [
            transaction.model_copy(deep=True)
            for transaction in self._owner_transactions(owner_id).values()
            if transaction.group_id == group_id
        ]

    async def write_transaction_group(
        self,
        owner_id: str,
        group_id: str,
        transactions: list[Transaction],
    ) -> None:
        # Nothing is modified until every leg has been validated.
        for transaction in transactions:
            if transaction.group_id != group_id:
                raise ValueError(f"Transaction '{transaction.id}' is not part of group '{group_id}'")
            self._require_envelope(owner_id, transaction.envelope_id)

        stored = self._owner_transactions(owner_id)
        for transaction_id in [tid for tid, t in stored.items() if t.group_id == group_id]:
            del stored[transaction_id]
        for transaction in transactions:
            stored[transaction.id] = transaction.model_copy(deep=True)

    async def delete_transaction_group(self, owner_id: str, group_id: str) -> int:
        stored = self._owner_transactions(owner_id)
        doomed = [tid for tid, t in stored.items() if t.group_id == group_id]
        for transaction_id in doomed:
            del stored[transaction_id]
        return len(doomed)
