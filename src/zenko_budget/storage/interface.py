# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Abstract base class that every storage backend must implement.

Documents are keyed by owner, then by envelope or transaction id. Every
method is a suspension point; implementations must make each call atomic
on its own, and must make ``persist_envelope_rollover`` conditional on the
envelope's previous ``last_reset_at``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from zenko_budget.errors import StaleRolloverError
from zenko_budget.types import Envelope, RolloverPatch, Transaction, to_local

# Fields the application layer may change through ``update_envelope``.
# ``carry`` and ``last_reset_at`` belong to the rollover engine.
APPLICATION_FIELDS = frozenset(
    {"name", "base", "next_base", "period", "reset_dow", "reset_dom"}
)

# Written alongside a policy change, only by a conditional update.
REANCHOR_FIELDS = frozenset({"carry", "last_reset_at"})


class BudgetStorage(ABC):
    """
    Persistence contract for envelopes and their transactions.

    Implementors may back this with a document database, SQL, or any
    keyed store. Lookups return None for unknown ids; mutations raise
    EnvelopeNotFoundError or TransactionNotFoundError. I/O failures are
    raised as StorageUnavailableError.
    """

    # ─── Envelopes ────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_envelope(self, owner_id: str, envelope_id: str) -> Envelope | None:
        ...

    @abstractmethod
    async def list_envelopes(self, owner_id: str) -> list[Envelope]:
        """Return the owner's envelopes sorted by ``order``."""
        ...

    @abstractmethod
    async def insert_envelope(self, owner_id: str, envelope: Envelope) -> None:
        ...

    @abstractmethod
    async def update_envelope(
        self,
        owner_id: str,
        envelope_id: str,
        changes: dict[str, Any],
        expected_last_reset_at: datetime | None = None,
    ) -> Envelope:
        """
        Apply owner edits restricted to APPLICATION_FIELDS and return the
        updated envelope. Other fields are left as stored.

        With ``expected_last_reset_at`` the write is conditional, as for
        ``persist_envelope_rollover``, and may also set REANCHOR_FIELDS.
        """
        ...

    @abstractmethod
    async def delete_envelope(self, owner_id: str, envelope_id: str) -> int:
        """
        Delete an envelope and all of its transactions in one atomic step.
        Returns the number of transactions removed.
        """
        ...

    @abstractmethod
    async def set_envelope_orders(self, owner_id: str, orders: dict[str, int]) -> None:
        """Rewrite the ``order`` of several envelopes atomically."""
        ...

    # ─── Rollover ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def persist_envelope_rollover(
        self,
        owner_id: str,
        envelope_id: str,
        patch: RolloverPatch,
        expected_last_reset_at: datetime,
    ) -> Envelope:
        """
        Apply a rollover patch as one compound write.

        The write only happens if the stored ``last_reset_at`` still equals
        ``expected_last_reset_at``; otherwise StaleRolloverError is raised
        and nothing changes.
        """
        ...

    # ─── Transactions ─────────────────────────────────────────────────────────

    @abstractmethod
    async def query_transactions(
        self,
        owner_id: str,
        envelope_id: str,
        start: datetime | None,
        end: datetime | None,
    ) -> list[Transaction]:
        """
        Return the envelope's transactions with ``at`` in ``[start, end)``.
        A None bound is not applied. No ordering is guaranteed.
        """
        ...

    @abstractmethod
    async def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction | None:
        ...

    @abstractmethod
    async def save_transaction(self, owner_id: str, transaction: Transaction) -> None:
        """Insert or replace a transaction. Its envelope must exist."""
        ...

    @abstractmethod
    async def delete_transaction(self, owner_id: str, transaction_id: str) -> None:
        ...

    # ─── Transaction groups ───────────────────────────────────────────────────

    @abstractmethod
    async def get_transaction_group(self, owner_id: str, group_id: str) -> list[Transaction]:
        ...

    @abstractmethod
    async def write_transaction_group(
        self,
        owner_id: str,
        group_id: str,
        transactions: list[Transaction],
    ) -> None:
        """
        Replace every transaction of ``group_id`` with ``transactions`` in
        one atomic step. All referenced envelopes must exist.
        """
        ...

    @abstractmethod
    async def delete_transaction_group(self, owner_id: str, group_id: str) -> int:
        """Delete every transaction of ``group_id`` atomically; return the count."""
        ...


# ─── Shared document helpers ──────────────────────────────────────────────────


def _check_window(envelope: Envelope, expected_last_reset_at: datetime) -> None:
    expected = to_local(expected_last_reset_at)
    if envelope.last_reset_at != expected:
        raise StaleRolloverError(envelope.id, expected, envelope.last_reset_at)


def apply_envelope_changes(
    envelope: Envelope,
    changes: dict[str, Any],
    expected_last_reset_at: datetime | None = None,
) -> Envelope:
    """
    Return a re-validated copy of ``envelope`` with ``changes`` applied.

    Raises ValueError if a change targets a field the update may not write,
    StaleRolloverError if ``expected_last_reset_at`` no longer matches.
    """
    allowed = APPLICATION_FIELDS
    if expected_last_reset_at is not None:
        _check_window(envelope, expected_last_reset_at)
        allowed = APPLICATION_FIELDS | REANCHOR_FIELDS
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Fields {sorted(unknown)} cannot be changed by an envelope update")
    return Envelope.model_validate({**envelope.model_dump(), **changes})


def apply_rollover_patch(
    envelope: Envelope,
    patch: RolloverPatch,
    expected_last_reset_at: datetime,
) -> Envelope:
    """
    Return the envelope after a rollover patch, or raise StaleRolloverError
    if its window moved, or the allowance the patch was computed from was
    edited, since the caller read it.
    """
    _check_window(envelope, expected_last_reset_at)
    if patch.expected_base is not None and (
        envelope.base != patch.expected_base or envelope.next_base != patch.expected_next_base
    ):
        raise StaleRolloverError(
            envelope.id,
            envelope.last_reset_at,
            envelope.last_reset_at,
            reason=(
                f"allowance changed from base={patch.expected_base}, "
                f"next_base={patch.expected_next_base} to base={envelope.base}, "
                f"next_base={envelope.next_base}"
            ),
        )

    data = envelope.model_dump()
    data["carry"] = patch.carry
    data["last_reset_at"] = patch.last_reset_at
    if patch.base is not None:
        data["base"] = patch.base
    if patch.clear_next_base:
        data["next_base"] = None
    return Envelope.model_validate(data)
