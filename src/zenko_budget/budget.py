# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import uuid4

from zenko_budget.balance import build_balance, project_balance
from zenko_budget.config import BudgetConfig
from zenko_budget.cycle import current_window, initial_window_start, resolve_now, validate_policy
from zenko_budget.errors import (
    EnvelopeNotFoundError,
    StorageUnavailableError,
    TransactionNotFoundError,
)
from zenko_budget.rollover import RolloverEngine
from zenko_budget.storage.interface import BudgetStorage
from zenko_budget.storage.memory import MemoryStorage
from zenko_budget.transaction import build_transaction, signed_amount, sort_for_display
from zenko_budget.transfer import build_transfer_legs, pair_from_legs
from zenko_budget.types import (
    BalanceSnapshot,
    EntryKind,
    Envelope,
    EnvelopeConfig,
    EnvelopeUpdate,
    EnvelopeView,
    RolloverResult,
    Transaction,
    TransactionUpdate,
    TransferPair,
    TransferUpdate,
    to_local,
)

logger = logging.getLogger("zenko.budget")


class EnvelopeBudget:
    """
    Envelope budgeting for one or more owners over a pluggable store.

    Design contract
    ---------------
    - Every balance is computed after rolling the envelope, so ``carry``
      covers all elapsed cycles before the live window is added.
    - This class writes names, allowances, policies, order and
      transactions. ``carry`` and ``last_reset_at`` are only written by the
      RolloverEngine.
    - Transfers are two transactions sharing a ``group_id``. They are
      created, edited and deleted together through atomic group writes.

    Usage
    -----
    ::

        budget = EnvelopeBudget()
        groceries = await budget.create_envelope(
            "uid-1", EnvelopeConfig(name="Groceries", base=40_000, period="weekly", reset_dow=1)
        )
        await budget.record_entry("uid-1", groceries.id, "SORTIE", 2_350, note="Market")
        view = await budget.activate("uid-1", groceries.id)
        print(view.balance.available)
    """

    def __init__(
        self,
        storage: BudgetStorage | None = None,
        config: BudgetConfig | None = None,
    ) -> None:
        self._config = config if config is not None else BudgetConfig()
        self._storage: BudgetStorage = storage if storage is not None else MemoryStorage()
        self._engine = RolloverEngine(self._storage, self._config)

    @property
    def storage(self) -> BudgetStorage:
        return self._storage

    # ─── Envelope management ──────────────────────────────────────────────────

    async def create_envelope(
        self,
        owner_id: str,
        config: EnvelopeConfig,
        now: datetime | None = None,
    ) -> Envelope:
        """
        Create an envelope whose first window is the latest reset boundary at
        or before ``now``. It is appended after the owner's other envelopes.

        Raises InvalidPolicyError for a malformed recurrence.
        """
        validated = EnvelopeConfig.model_validate(
            config if isinstance(config, dict) else config.model_dump()
        )
        policy = validate_policy(validated.period, validated.reset_dow, validated.reset_dom)
        now = resolve_now(now)
        existing = await self._storage.list_envelopes(owner_id)

        envelope = Envelope(
            id=validated.id if validated.id is not None else str(uuid4()),
            name=validated.name,
            base=validated.base,
            next_base=validated.next_base,
            carry=0,
            period=policy.period,
            reset_dow=policy.reset_dow,
            reset_dom=policy.reset_dom,
            last_reset_at=initial_window_start(
                policy.period, policy.reset_dow, policy.reset_dom, now
            ),
            order=len(existing),
            created_at=now,
        )
        await self._storage.insert_envelope(owner_id, envelope)
        logger.debug(
            "Created envelope",
            extra={"owner_id": owner_id, "envelope_id": envelope.id, "period": envelope.period},
        )
        return envelope

    async def get_envelope(self, owner_id: str, envelope_id: str) -> Envelope:
        """Raises EnvelopeNotFoundError if the envelope does not exist."""
        envelope = await self._storage.get_envelope(owner_id, envelope_id)
        if envelope is None:
            raise EnvelopeNotFoundError(envelope_id)
        return envelope

    async def list_envelopes(self, owner_id: str) -> list[Envelope]:
        """Return the owner's envelopes in display order."""
        return await self._storage.list_envelopes(owner_id)

    async def update_envelope(
        self,
        owner_id: str,
        envelope_id: str,
        update: EnvelopeUpdate,
        now: datetime | None = None,
    ) -> Envelope:
        """
        Apply an owner edit. Only fields set on ``update`` change.

        Changing the period or an anchor first rolls the envelope under its
        old policy, then restarts its window on the latest boundary of the
        new policy (see :meth:`RolloverEngine.reanchor`).

        Raises InvalidPolicyError for a malformed recurrence and
        StaleRolloverError if the envelope is rolled concurrently.
        """
        changes: dict[str, Any] = update.model_dump(exclude_unset=True)
        if not changes:
            return await self.get_envelope(owner_id, envelope_id)

        policy_fields = {"period", "reset_dow", "reset_dom"}
        if changes.keys() & policy_fields:
            current = await self.get_envelope(owner_id, envelope_id)
            policy = validate_policy(
                changes.get("period", current.period),
                changes.get("reset_dow", current.reset_dow),
                changes.get("reset_dom", current.reset_dom),
            )
            for field in policy_fields:
                changes.pop(field, None)
            if policy != current.policy:
                now = resolve_now(now)
                rolled = await self._engine.roll_if_needed(owner_id, current, now)
                return await self._engine.reanchor(
                    owner_id, rolled.envelope, policy, changes=changes, now=now
                )
            if not changes:
                return current

        updated = await self._storage.update_envelope(owner_id, envelope_id, changes)
        logger.debug(
            "Updated envelope",
            extra={"owner_id": owner_id, "envelope_id": envelope_id, "fields": sorted(changes)},
        )
        return updated

    async def delete_envelope(self, owner_id: str, envelope_id: str) -> int:
        """
        Delete an envelope and all of its transactions, then close the gap it
        leaves in the display order. Returns the number of transactions
        removed.
        """
        removed = await self._storage.delete_envelope(owner_id, envelope_id)
        remaining = await self._storage.list_envelopes(owner_id)
        await self._write_order(owner_id, remaining)
        logger.debug(
            "Deleted envelope",
            extra={"owner_id": owner_id, "envelope_id": envelope_id, "transactions": removed},
        )
        return removed

    async def swap_order(self, owner_id: str, first_id: str, second_id: str) -> None:
        """Exchange the display positions of two envelopes."""
        first = await self.get_envelope(owner_id, first_id)
        second = await self.get_envelope(owner_id, second_id)
        await self._storage.set_envelope_orders(
            owner_id, {first.id: second.order, second.id: first.order}
        )

    async def move_envelope(self, owner_id: str, envelope_id: str, new_index: int) -> list[Envelope]:
        """
        Move an envelope to ``new_index`` in the display order, clamped to
        the list bounds. Returns the envelopes in their new order.
        """
        envelopes = await self._storage.list_envelopes(owner_id)
        moving = next((e for e in envelopes if e.id == envelope_id), None)
        if moving is None:
            raise EnvelopeNotFoundError(envelope_id)
        envelopes.remove(moving)
        new_index = max(0, min(new_index, len(envelopes)))
        envelopes.insert(new_index, moving)
        await self._write_order(owner_id, envelopes)
        return await self._storage.list_envelopes(owner_id)

    # ─── Cycle ────────────────────────────────────────────────────────────────

    async def roll(
        self,
        owner_id: str,
        envelope_id: str,
        now: datetime | None = None,
    ) -> RolloverResult:
        """Fold every elapsed window of one envelope into its carry."""
        envelope = await self.get_envelope(owner_id, envelope_id)
        return await self._engine.roll_if_needed(owner_id, envelope, now)

    async def roll_all(self, owner_id: str, now: datetime | None = None) -> list[RolloverResult]:
        """Roll every envelope of the owner, in display order."""
        now = resolve_now(now)
        return [
            await self._engine.roll_if_needed(owner_id, envelope, now)
            for envelope in await self._storage.list_envelopes(owner_id)
        ]

    async def balance(
        self,
        owner_id: str,
        envelope_id: str,
        now: datetime | None = None,
    ) -> BalanceSnapshot:
        """Roll the envelope, then project its available amount."""
        now = resolve_now(now)
        result = await self.roll(owner_id, envelope_id, now)
        return await project_balance(self._storage, owner_id, result.envelope, now)

    async def activate(
        self,
        owner_id: str,
        envelope_id: str,
        now: datetime | None = None,
    ) -> EnvelopeView:
        """
        Roll an envelope and load everything needed to display it.

        If the roll cannot reach storage and
        ``config.display_unrolled_on_failure`` is set, the view is built from
        the last stored envelope and ``rollover_error`` explains why. Any
        failure while loading the view itself propagates.
        """
        now = resolve_now(now)
        envelope = await self.get_envelope(owner_id, envelope_id)
        rollover: RolloverResult | None = None
        rollover_error: str | None = None

        try:
            rollover = await self._engine.roll_if_needed(owner_id, envelope, now)
            envelope = rollover.envelope
        except StorageUnavailableError as exc:
            if not self._config.display_unrolled_on_failure:
                raise
            rollover_error = exc.message
            logger.warning(
                "Rollover failed, showing last known balance",
                extra={"owner_id": owner_id, "envelope_id": envelope_id, "error": exc.message},
            )

        window = current_window(envelope, now)
        start, end = window.query_bounds()
        transactions = await self._storage.query_transactions(owner_id, envelope.id, start, end)
        return EnvelopeView(
            envelope=envelope,
            window=window,
            transactions=sort_for_display(transactions),
            balance=build_balance(envelope, window, transactions),
            rollover=rollover,
            rollover_error=rollover_error,
        )

    # ─── Transactions ─────────────────────────────────────────────────────────

    async def record_entry(
        self,
        owner_id: str,
        envelope_id: str,
        kind: EntryKind,
        amount: int,
        note: str = "",
        at: datetime | None = None,
    ) -> Transaction:
        """
        Record an inflow (``"ENTREE"``) or outflow (``"SORTIE"``).

        ``amount`` is the positive magnitude; the kind sets the sign.
        Raises ValueError if ``amount`` is not positive.
        """
        envelope = await self.get_envelope(owner_id, envelope_id)
        transaction = build_transaction(
            envelope_id=envelope.id,
            amount=signed_amount(kind, amount),
            note=note,
            at=at,
        )
        await self._storage.save_transaction(owner_id, transaction)
        return transaction

    async def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction:
        transaction = await self._storage.get_transaction(owner_id, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    async def list_transactions(
        self,
        owner_id: str,
        envelope_id: str,
        now: datetime | None = None,
    ) -> list[Transaction]:
        """Transactions of the envelope's current window, newest first."""
        envelope = await self.get_envelope(owner_id, envelope_id)
        start, end = current_window(envelope, now).query_bounds()
        transactions = await self._storage.query_transactions(owner_id, envelope.id, start, end)
        return sort_for_display(transactions)

    async def update_transaction(
        self,
        owner_id: str,
        transaction_id: str,
        update: TransactionUpdate,
    ) -> Transaction:
        """
        Edit a transaction. Editing one leg of a transfer edits the whole
        transfer, using the magnitude of the new amount.
        """
        transaction = await self.get_transaction(owner_id, transaction_id)

        if transaction.group_id is not None:
            pair = await self.get_transfer(owner_id, transaction.group_id)
            updated_pair = await self.update_transfer(
                owner_id,
                pair.group_id,
                TransferUpdate(
                    from_id=pair.from_id,
                    to_id=pair.to_id,
                    amount=abs(update.amount) if update.amount is not None else pair.amount,
                    note=update.note if update.note is not None else pair.note,
                    at=update.at if update.at is not None else pair.at,
                ),
            )
            if transaction.amount < 0:
                return updated_pair.outgoing
            return updated_pair.incoming

        changes: dict[str, Any] = update.model_dump(exclude_none=True)
        if "at" in changes:
            changes["at"] = to_local(changes["at"])
        updated = transaction.model_copy(update=changes)
        await self._storage.save_transaction(owner_id, updated)
        return updated

    async def delete_transaction(self, owner_id: str, transaction_id: str) -> int:
        """
        Delete a transaction; deleting a transfer leg deletes both legs.
        Returns the number of rows removed.
        """
        transaction = await self.get_transaction(owner_id, transaction_id)
        if transaction.group_id is not None:
            await self.delete_transfer(owner_id, transaction.group_id)
            return 2
        await self._storage.delete_transaction(owner_id, transaction_id)
        return 1

    # ─── Transfers ────────────────────────────────────────────────────────────

    async def transfer(
        self,
        owner_id: str,
        from_id: str,
        to_id: str,
        amount: int,
        note: str | None = None,
        at: datetime | None = None,
    ) -> TransferPair:
        """
        Move ``amount`` from one envelope to another as a linked pair of
        transactions, written atomically.

        Raises ValueError for a non-positive amount or identical envelopes,
        EnvelopeNotFoundError if either envelope is missing.
        """
        if amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {amount!r}")
        pair = await self._build_pair(owner_id, from_id, to_id, amount, note, at)
        await self._storage.write_transaction_group(
            owner_id, pair.group_id, [pair.outgoing, pair.incoming]
        )
        logger.debug(
            "Created transfer",
            extra={"owner_id": owner_id, "group_id": pair.group_id, "amount": amount},
        )
        return pair

    async def get_transfer(self, owner_id: str, group_id: str) -> TransferPair:
        """Raises TransferIntegrityError unless both legs are present."""
        legs = await self._storage.get_transaction_group(owner_id, group_id)
        return pair_from_legs(group_id, legs)

    async def update_transfer(
        self,
        owner_id: str,
        group_id: str,
        update: TransferUpdate,
    ) -> TransferPair:
        """
        Rewrite both legs of a transfer: envelopes, signed amounts, notes
        and date. Leg ids and creation times are kept.
        """
        existing = await self.get_transfer(owner_id, group_id)
        rebuilt = await self._build_pair(
            owner_id,
            update.from_id,
            update.to_id,
            update.amount,
            update.note if update.note is not None else existing.note,
            update.at if update.at is not None else existing.at,
            group_id=group_id,
        )
        pair = TransferPair(
            group_id=group_id,
            outgoing=rebuilt.outgoing.model_copy(
                update={"id": existing.outgoing.id, "created_at": existing.outgoing.created_at}
            ),
            incoming=rebuilt.incoming.model_copy(
                update={"id": existing.incoming.id, "created_at": existing.incoming.created_at}
            ),
        )
        await self._storage.write_transaction_group(
            owner_id, group_id, [pair.outgoing, pair.incoming]
        )
        logger.debug("Updated transfer", extra={"owner_id": owner_id, "group_id": group_id})
        return pair

    async def delete_transfer(self, owner_id: str, group_id: str) -> None:
        """Remove both legs of a transfer atomically."""
        await self.get_transfer(owner_id, group_id)
        await self._storage.delete_transaction_group(owner_id, group_id)
        logger.debug("Deleted transfer", extra={"owner_id": owner_id, "group_id": group_id})

    # ─── Private helpers ──────────────────────────────────────────────────────

    async def _build_pair(
        self,
        owner_id: str,
        from_id: str,
        to_id: str,
        amount: int,
        note: str | None,
        at: datetime | None,
        group_id: str | None = None,
    ) -> TransferPair:
        if from_id == to_id:
            raise ValueError("Cannot transfer an envelope onto itself")
        source = await self.get_envelope(owner_id, from_id)
        destination = await self.get_envelope(owner_id, to_id)
        return build_transfer_legs(
            from_id=source.id,
            to_id=destination.id,
            amount=amount,
            note=note if note is not None else self._config.default_transfer_note,
            at=at,
            from_label=source.name,
            to_label=destination.name,
            group_id=group_id,
        )

    async def _write_order(self, owner_id: str, envelopes: list[Envelope]) -> None:
        orders = {envelope.id: index for index, envelope in enumerate(envelopes)}
        if orders:
            await self._storage.set_envelope_orders(owner_id, orders)
