# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from zenko_budget.storage.file import FileStorage
from zenko_budget.storage.interface import APPLICATION_FIELDS, REANCHOR_FIELDS, BudgetStorage
from zenko_budget.storage.memory import MemoryStorage

__all__ = [
    "APPLICATION_FIELDS",
    "REANCHOR_FIELDS",
    "BudgetStorage",
    "FileStorage",
    "MemoryStorage",
]
