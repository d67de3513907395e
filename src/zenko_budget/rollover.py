# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Rollover engine.

Brings an envelope's ``carry`` and ``last_reset_at`` up to date with the
wall clock. Each elapsed window is folded exactly once::

    new_carry = carry + applied_base + sum(amounts in [start, next))

and written together with ``last_reset_at = next`` as one conditional
write, guarded by the ``last_reset_at`` the fold was computed from. A
second writer racing on the same envelope therefore gets a
StaleRolloverError instead of folding the same window twice.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from zenko_budget.config import BudgetConfig
from zenko_budget.cycle import current_window, initial_window_start, resolve_now
from zenko_budget.errors import EnvelopeNotFoundError, StaleRolloverError
from zenko_budget.storage.interface import BudgetStorage
from zenko_budget.transaction import net_amount
from zenko_budget.types import (
    Envelope,
    RecurrencePolicy,
    RolloverPatch,
    RolloverResult,
    Window,
)

logger = logging.getLogger("zenko.budget.rollover")


def _earlier(first: datetime | None, second: datetime | None) -> bool:
    """Order two lower bounds where None stands for the beginning of time."""
    if second is None:
        return False
    return first is None or first < second


def applied_base(envelope: Envelope) -> int:
    """The allowance granted for the cycle being closed."""
    if envelope.next_base is not None and envelope.next_base >= 0:
        return envelope.next_base
    return envelope.base


def build_rollover_patch(envelope: Envelope, window: Window, net: int) -> RolloverPatch:
    """
    Compute the compound write that closes ``window`` for ``envelope``.

    A pending ``next_base`` is consumed: it is cleared and, when positive,
    becomes the new ``base``. The patch records the ``base`` and
    ``next_base`` it was computed from so the write can be refused if an
    owner edits them meanwhile.
    """
    if window.next is None:
        raise ValueError("An unbounded window never closes")
    allowance = applied_base(envelope)
    promote = envelope.next_base is not None and allowance > 0
    return RolloverPatch(
        carry=envelope.carry + allowance + net,
        last_reset_at=window.next,
        base=allowance if promote else None,
        clear_next_base=envelope.next_base is not None,
        expected_base=envelope.base,
        expected_next_base=envelope.next_base,
    )


class RolloverEngine:
    """
    Folds elapsed windows into an envelope's carried balance.

    Design contract
    ---------------
    - ``roll_if_needed()`` is idempotent. When ``now`` is inside the recorded
      window it reads nothing and writes nothing.
    - Every elapsed window is folded by its own atomic, conditional write,
      so an interrupted catch-up leaves a consistent envelope behind.
    - Storage failures propagate unchanged. Nothing is retried silently
      except re-reading after a stale write.
    - A fold is refused if the owner edited ``base`` or ``next_base``
      after it was read; the engine re-reads and folds again.
    - Daily and once envelopes never roll: their window always contains
      ``now``.
    """

    def __init__(self, storage: BudgetStorage, config: BudgetConfig | None = None) -> None:
        self._storage = storage
        self._config = config if config is not None else BudgetConfig()

    async def roll_if_needed(
        self,
        owner_id: str,
        envelope: Envelope,
        now: datetime | None = None,
    ) -> RolloverResult:
        """
        Fold every window of ``envelope`` that ended at or before ``now``.

        Returns a RolloverResult whose ``window`` is the window in effect
        after the roll and whose ``envelope`` is the persisted state.

        Raises:
            StorageUnavailableError: If a query or write fails.
            StaleRolloverError: If concurrent writers keep advancing the
                envelope beyond ``config.max_stale_retries`` re-reads.
        """
        now = resolve_now(now)
        current = envelope
        window = current_window(current, now)
        cycles = 0
        stale_retries = 0

        while window.next is not None and now >= window.next:
            if cycles >= self._config.max_catchup_cycles:
                logger.warning(
                    "Rollover catch-up stopped after %d cycles",
                    cycles,
                    extra={"owner_id": owner_id, "envelope_id": current.id},
                )
                return self._result(current, window, cycles, stale_retries, caught_up=False)

            start, end = window.query_bounds()
            transactions = await self._storage.query_transactions(owner_id, current.id, start, end)
            patch = build_rollover_patch(current, window, net_amount(transactions))

            try:
                current = await self._storage.persist_envelope_rollover(
                    owner_id,
                    current.id,
                    patch,
                    expected_last_reset_at=current.last_reset_at,
                )
            except StaleRolloverError as exc:
                if stale_retries >= self._config.max_stale_retries:
                    raise
                stale_retries += 1
                logger.info(
                    "Envelope changed during rollover, re-reading",
                    extra={
                        "owner_id": owner_id,
                        "envelope_id": current.id,
                        "expected": exc.expected.isoformat(),
                        "actual": exc.actual.isoformat(),
                    },
                )
                reloaded = await self._storage.get_envelope(owner_id, current.id)
                if reloaded is None:
                    raise EnvelopeNotFoundError(current.id) from exc
                current = reloaded
            else:
                cycles += 1

            window = current_window(current, now)

        if cycles:
            logger.info(
                "Rolled envelope forward %d cycle(s)",
                cycles,
                extra={
                    "owner_id": owner_id,
                    "envelope_id": current.id,
                    "cycles": cycles,
                    "carry": current.carry,
                    "last_reset_at": current.last_reset_at.isoformat(),
                },
            )
        return self._result(current, window, cycles, stale_retries, caught_up=True)

    async def reanchor(
        self,
        owner_id: str,
        envelope: Envelope,
        policy: RecurrencePolicy,
        changes: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Envelope:
        """
        Switch ``envelope`` to a new recurrence policy.

        The envelope must already be rolled up to ``now``. Its window is
        restarted at the latest boundary of the new policy, and ``carry``
        absorbs the transactions that change sides: those the old window
        still counted but the new one drops are folded in, those already
        settled that the new window counts again are taken back out. Unless
        the allowance itself changes, the shown balance stays the same, and
        no allowance is granted for windows the old policy never opened.

        ``changes`` are further owner edits written in the same update.

        Raises:
            StaleRolloverError: If the envelope's window moved since it was
                read.
        """
        now = resolve_now(now)
        new_start = initial_window_start(policy.period, policy.reset_dow, policy.reset_dom, now)
        target = envelope.model_copy(
            update={
                "period": policy.period,
                "reset_dow": policy.reset_dow,
                "reset_dom": policy.reset_dom,
                "last_reset_at": new_start,
            }
        )
        old_from, _ = current_window(envelope, now).query_bounds()
        new_from, _ = current_window(target, now).query_bounds()

        adjustment = 0
        if _earlier(old_from, new_from):
            transactions = await self._storage.query_transactions(
                owner_id, envelope.id, old_from, new_from
            )
            adjustment = net_amount(transactions)
        elif _earlier(new_from, old_from):
            transactions = await self._storage.query_transactions(
                owner_id, envelope.id, new_from, old_from
            )
            adjustment = -net_amount(transactions)

        updated = await self._storage.update_envelope(
            owner_id,
            envelope.id,
            {
                **(changes or {}),
                "period": policy.period,
                "reset_dow": policy.reset_dow,
                "reset_dom": policy.reset_dom,
                "carry": envelope.carry + adjustment,
                "last_reset_at": new_start,
            },
            expected_last_reset_at=envelope.last_reset_at,
        )
        logger.info(
            "Re-anchored envelope on a new policy",
            extra={
                "owner_id": owner_id,
                "envelope_id": envelope.id,
                "period": policy.period,
                "last_reset_at": new_start.isoformat(),
                "carry_adjustment": adjustment,
            },
        )
        return updated

    @staticmethod
    def _result(
        envelope: Envelope,
        window: Window,
        cycles: int,
        stale_retries: int,
        caught_up: bool,
    ) -> RolloverResult:
        return RolloverResult(
            changed=cycles > 0,
            cycles=cycles,
            envelope=envelope,
            window=window,
            caught_up=caught_up,
            stale_retries=stale_retries,
        )
