# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Shared fixtures for zenko-budget tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from zenko_budget.budget import EnvelopeBudget
from zenko_budget.storage.file import FileStorage
from zenko_budget.storage.interface import BudgetStorage
from zenko_budget.storage.memory import MemoryStorage
from zenko_budget.types import Envelope, EnvelopeConfig

OWNER = "uid-001"

# 2026-10-19 is a Monday.
MONDAY = datetime(2026, 10, 19)
WEDNESDAY = MONDAY + timedelta(days=2)
FRIDAY = MONDAY + timedelta(days=4)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def budget(storage: MemoryStorage) -> EnvelopeBudget:
    """An EnvelopeBudget over a fresh in-memory store."""
    return EnvelopeBudget(storage=storage)


@pytest.fixture(params=["memory", "file"])
def any_storage(request: pytest.FixtureRequest, tmp_path: Path) -> BudgetStorage:
    """Each storage backend in turn."""
    if request.param == "memory":
        return MemoryStorage()
    return FileStorage(tmp_path / "budget.json")


@pytest.fixture
def weekly_envelope(budget: EnvelopeBudget) -> Envelope:
    """A weekly envelope of 100.00 resetting on Mondays, created on MONDAY."""
    return asyncio.run(
        budget.create_envelope(
            OWNER,
            EnvelopeConfig(name="Food", base=10_000, period="weekly", reset_dow=1),
            now=MONDAY + timedelta(hours=9),
        )
    )
