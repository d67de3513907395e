# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
JSON document file storage backend.

The whole store is one JSON object keyed by owner id, each owner holding an
``envelopes`` and a ``transactions`` mapping keyed by document id.

Every mutation is a read-modify-write of the full document performed under
an ``asyncio.Lock``. The new document is written to a sibling temp file and
swapped in with ``os.replace``, so a reader sees either the old or the new
state and a crash mid-write leaves the previous file intact. The lock only
serialises writers inside one process; concurrent processes need a store
with real transactions.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from zenko_budget.errors import (
    EnvelopeNotFoundError,
    StorageUnavailableError,
    TransactionNotFoundError,
)
from zenko_budget.storage.interface import (
    BudgetStorage,
    apply_envelope_changes,
    apply_rollover_patch,
)
from zenko_budget.transaction import filter_transactions
from zenko_budget.types import Envelope, RolloverPatch, Transaction

logger = logging.getLogger("zenko.budget.storage")

_ENVELOPES = "envelopes"
_TRANSACTIONS = "transactions"


def _section(document: dict[str, Any], owner_id: str, name: str) -> dict[str, Any]:
    owner = document.setdefault(owner_id, {})
    return owner.setdefault(name, {})


def _envelope_at(document: dict[str, Any], owner_id: str, envelope_id: str) -> Envelope:
    data = _section(document, owner_id, _ENVELOPES).get(envelope_id)
    if data is None:
        raise EnvelopeNotFoundError(envelope_id)
    return Envelope.model_validate(data)


def _transactions_of(document: dict[str, Any], owner_id: str) -> list[Transaction]:
    return [
        Transaction.model_validate(data)
        for data in _section(document, owner_id, _TRANSACTIONS).values()
    ]


class FileStorage(BudgetStorage):
    """
    Persistent single-file storage backend.

    Parameters
    ----------
    file_path:
        Path to the JSON file. It is created on the first write.
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)
        self._temp_path = self._file_path.with_name(self._file_path.name + ".tmp")
        self._lock = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    # ─── Raw document I/O ─────────────────────────────────────────────────────

    async def _read(self) -> dict[str, Any]:
        try:
            async with aiofiles.open(self._file_path, mode="r", encoding="utf-8") as file_handle:
                content = await file_handle.read()
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot read {self._file_path}: {exc}") from exc

        if not content.strip():
            return {}
        try:
            document = json.loads(content)
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError(f"Corrupt store {self._file_path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StorageUnavailableError(f"Corrupt store {self._file_path}: expected an object")
        return document

    async def _write(self, document: dict[str, Any]) -> None:
        payload = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
        try:
            async with aiofiles.open(self._temp_path, mode="w", encoding="utf-8") as file_handle:
                await file_handle.write(payload)
            await aiofiles.os.replace(self._temp_path, self._file_path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot write {self._file_path}: {exc}") from exc
        logger.debug("Wrote budget store", extra={"path": str(self._file_path)})

    # ─── Envelopes ────────────────────────────────────────────────────────────

    async def get_envelope(self, owner_id: str, envelope_id: str) -> Envelope | None:
        data = _section(await self._read(), owner_id, _ENVELOPES).get(envelope_id)
        return Envelope.model_validate(data) if data is not None else None

    async def list_envelopes(self, owner_id: str) -> list[Envelope]:
        envelopes = [
            Envelope.model_validate(data)
            for data in _section(await self._read(), owner_id, _ENVELOPES).values()
        ]
        return sorted(envelopes, key=lambda envelope: envelope.order)

    async def insert_envelope(self, owner_id: str, envelope: Envelope) -> None:
        async with self._lock:
            document = await self._read()
            envelopes = _section(document, owner_id, _ENVELOPES)
            if envelope.id in envelopes:
                raise ValueError(f"Envelope '{envelope.id}' already exists")
            envelopes[envelope.id] = envelope.model_dump(mode="json")
            await self._write(document)

    async def update_envelope(
        self,
        owner_id: str,
        envelope_id: str,
        changes: dict[str, Any],
        expected_last_reset_at: datetime | None = None,
    ) -> Envelope:
        async with self._lock:
            document = await self._read()
            updated = apply_envelope_changes(
                _envelope_at(document, owner_id, envelope_id), changes, expected_last_reset_at
            )
            _section(document, owner_id, _ENVELOPES)[envelope_id] = updated.model_dump(mode="json")
            await self._write(document)
            return updated

    async def delete_envelope(self, owner_id: str, envelope_id: str) -> int:
        async with self._lock:
            document = await self._read()
            envelopes = _section(document, owner_id, _ENVELOPES)
            if envelope_id not in envelopes:
                raise EnvelopeNotFoundError(envelope_id)
            transactions = _section(document, owner_id, _TRANSACTIONS)
            doomed = [
                transaction_id
                for transaction_id, data in transactions.items()
                if data.get("envelope_id") == envelope_id
            ]
            for transaction_id in doomed:
                del transactions[transaction_id]
            del envelopes[envelope_id]
            await self._write(document)
            return len(doomed)

    async def set_envelope_orders(self, owner_id: str, orders: dict[str, int]) -> None:
        async with self._lock:
            document = await self._read()
            envelopes = _section(document, owner_id, _ENVELOPES)
            for envelope_id in orders:
                if envelope_id not in envelopes:
                    raise EnvelopeNotFoundError(envelope_id)
            for envelope_id, order in orders.items():
                envelopes[envelope_id]["order"] = order
            await self._write(document)

    # ─── Rollover ─────────────────────────────────────────────────────────────

    async def persist_envelope_rollover(
        self,
        owner_id: str,
        envelope_id: str,
        patch: RolloverPatch,
        expected_last_reset_at: datetime,
    ) -> Envelope:
        async with self._lock:
            document = await self._read()
            current = _envelope_at(document, owner_id, envelope_id)
            updated = apply_rollover_patch(current, patch, expected_last_reset_at)
            _section(document, owner_id, _ENVELOPES)[envelope_id] = updated.model_dump(mode="json")
            await self._write(document)
            return updated

    # ─── Transactions ─────────────────────────────────────────────────────────

    async def query_transactions(
        self,
        owner_id: str,
        envelope_id: str,
        start: datetime | None,
        end: datetime | None,
    ) -> list[Transaction]:
        document = await self._read()
        return filter_transactions(
            _transactions_of(document, owner_id),
            envelope_id=envelope_id,
            start=start,
            end=end,
        )

    async def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction | None:
        data = _section(await self._read(), owner_id, _TRANSACTIONS).get(transaction_id)
        return Transaction.model_validate(data) if data is not None else None

    async def save_transaction(self, owner_id: str, transaction: Transaction) -> None:
        async with self._lock:
            document = await self._read()
            if transaction.envelope_id not in _section(document, owner_id, _ENVELOPES):
                raise EnvelopeNotFoundError(transaction.envelope_id)
            _section(document, owner_id, _TRANSACTIONS)[transaction.id] = transaction.model_dump(
                mode="json"
            )
            await self._write(document)

    async def delete_transaction(self, owner_id: str, transaction_id: str) -> None:
        async with self._lock:
            document = await self._read()
            transactions = _section(document, owner_id, _TRANSACTIONS)
            if transactions.pop(transaction_id, None) is None:
                raise TransactionNotFoundError(transaction_id)
            await self._write(document)

    # ─── Transaction groups ───────────────────────────────────────────────────

    async def get_transaction_group(self, owner_id: str, group_id: str) -> list[Transaction]:
        document = await self._read()
        return [
            transaction
            for transaction in _transactions_of(document, owner_id)
            if transaction.group_id == group_id
        ]

    async def write_transaction_group(
        self,
        owner_id: str,
        group_id: str,
        transactions: list[Transaction],
    ) -> None:
        async with self._lock:
            document = await self._read()
            envelopes = _section(document, owner_id, _ENVELOPES)
            for transaction in transactions:
                if transaction.group_id != group_id:
                    raise ValueError(
                        f"Transaction '{transaction.id}' is not part of group '{group_id}'"
                    )
                if transaction.envelope_id not in envelopes:
                    raise EnvelopeNotFoundError(transaction.envelope_id)

            stored = _section(document, owner_id, _TRANSACTIONS)
            for transaction_id in [
                tid for tid, data in stored.items() if data.get("group_id") == group_id
            ]:
                del stored[transaction_id]
            for transaction in transactions:
                stored[transaction.id] = transaction.model_dump(mode="json")
            await self._write(document)

    async def delete_transaction_group(self, owner_id: str, group_id: str) -> int:
        async with self._lock:
            document = await self._read()
            stored = _section(document, owner_id, _TRANSACTIONS)
            doomed = [tid for tid, data in stored.items() if data.get("group_id") == group_id]
            for transaction_id in doomed:
                del stored[transaction_id]
            if doomed:
                await self._write(document)
            return len(doomed)
