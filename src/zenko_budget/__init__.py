# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
zenko-budget: envelope budgeting with recurring allowances.

Quick start::

    import asyncio

    from zenko_budget import EnvelopeBudget, EnvelopeConfig

    async def main() -> None:
        budget = EnvelopeBudget()
        food = await budget.create_envelope(
            "uid-1", EnvelopeConfig(name="Food", base=10_000, period="weekly", reset_dow=1)
        )
        await budget.record_entry("uid-1", food.id, "SORTIE", 2_000, note="Groceries")
        balance = await budget.balance("uid-1", food.id)
        print(balance.available)  # 8000

    asyncio.run(main())
"""

from zenko_budget.balance import available_balance, build_balance, project_balance
from zenko_budget.budget import EnvelopeBudget
from zenko_budget.config import BudgetConfig
from zenko_budget.cycle import (
    add_months,
    clamp_day,
    current_window,
    days_in_month,
    initial_window_start,
    is_window_elapsed,
    start_of_day,
    validate_policy,
)
from zenko_budget.errors import (
    EnvelopeNotFoundError,
    InvalidPolicyError,
    StaleRolloverError,
    StorageUnavailableError,
    TransactionNotFoundError,
    TransferIntegrityError,
    ZenkoBudgetError,
)
from zenko_budget.rollover import RolloverEngine, applied_base, build_rollover_patch
from zenko_budget.storage import BudgetStorage, FileStorage, MemoryStorage
from zenko_budget.transaction import (
    build_transaction,
    filter_transactions,
    net_amount,
    signed_amount,
    sort_for_display,
)
from zenko_budget.transfer import (
    annotate_incoming,
    annotate_outgoing,
    build_transfer_legs,
    pair_from_legs,
    strip_annotation,
    transfer_note,
)
from zenko_budget.types import (
    PERIOD_VALUES,
    BalanceSnapshot,
    EntryKind,
    Envelope,
    EnvelopeConfig,
    EnvelopeUpdate,
    EnvelopeView,
    Period,
    RecurrencePolicy,
    RolloverPatch,
    RolloverResult,
    Transaction,
    TransactionKind,
    TransactionUpdate,
    TransferPair,
    TransferUpdate,
    Window,
)

__all__ = [
    # Core classes
    "EnvelopeBudget",
    "RolloverEngine",
    "BudgetConfig",
    # Types
    "Period",
    "PERIOD_VALUES",
    "EntryKind",
    "TransactionKind",
    "RecurrencePolicy",
    "EnvelopeConfig",
    "EnvelopeUpdate",
    "Envelope",
    "Transaction",
    "TransactionUpdate",
    "Window",
    "RolloverPatch",
    "RolloverResult",
    "BalanceSnapshot",
    "TransferPair",
    "TransferUpdate",
    "EnvelopeView",
    # Errors
    "ZenkoBudgetError",
    "InvalidPolicyError",
    "StaleRolloverError",
    "TransferIntegrityError",
    "StorageUnavailableError",
    "EnvelopeNotFoundError",
    "TransactionNotFoundError",
    # Storage
    "BudgetStorage",
    "MemoryStorage",
    "FileStorage",
    # Window calculator
    "validate_policy",
    "initial_window_start",
    "current_window",
    "is_window_elapsed",
    "start_of_day",
    "days_in_month",
    "add_months",
    "clamp_day",
    # Utilities
    "applied_base",
    "build_rollover_patch",
    "available_balance",
    "build_balance",
    "project_balance",
    "build_transaction",
    "filter_transactions",
    "net_amount",
    "signed_amount",
    "sort_for_display",
    "annotate_incoming",
    "annotate_outgoing",
    "build_transfer_legs",
    "pair_from_legs",
    "strip_annotation",
    "transfer_note",
]
